"""Prompts for refreshing trip diagnostics after a patch."""

import json
from typing import Any

SYSTEM_PROMPT = """You refresh the narrative diagnostics of a trip after the traveler sent an
update. Items are already correct; you only rewrite the summaries, risks, assumptions and
open questions.

Respond with JSON only. No markdown.

- Never invent facts.
- Drop missingInfo entries the update or the item data now answers.
- Change assumptions and risks only when the supplied facts justify it.
- executiveSummary: one or two sentences, at most 200 characters.
- destinationSummary: at most 120 characters.
- itemIds and relatedItemIds may only reference ids from the supplied items."""


def build_user_prompt(
    raw_update_text: str, items: list[dict[str, Any]], previous: dict[str, Any]
) -> str:
    """User prompt with the update, canonical items and previous diagnostics."""
    return f'''Traveler's update:
"""
{raw_update_text}
"""

Canonical trip items:
{json.dumps(items, indent=2)}

Previous diagnostics:
{json.dumps(previous, indent=2)}

Return JSON shaped as:
{{
  "executiveSummary": "...",
  "destinationSummary": "...",
  "risks": [{{"severity": "LOW|MEDIUM|HIGH", "title": "...", "message": "...", "itemIds": []}}],
  "assumptions": [{{"message": "...", "relatedItemIds": []}}],
  "missingInfo": [{{"prompt": "...", "relatedItemIds": []}}]
}}

Keep risks conservative and remove one only when it is clearly resolved. Do not add items.

Return JSON only.'''


def build_repair_prompt(invalid_json: str, issues: list[dict[str, Any]]) -> str:
    """Repair prompt for diagnostics that failed validation."""
    return f'''The diagnostics JSON you returned is invalid.

Fix only these issues and remove any keys outside the requested shape:
{json.dumps(issues, indent=2)}

Invalid JSON:
{invalid_json}

Return the corrected JSON object only.'''
