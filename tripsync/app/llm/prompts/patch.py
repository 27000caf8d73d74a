"""Prompts for follow-up patch intents."""

import json
from typing import Any

SYSTEM_PROMPT = """You translate a short follow-up message about an existing trip into patch
operations. You never rebuild the whole itinerary.

Respond with JSON only, matching the PatchIntent shape in the user message. No markdown.

- Never invent facts. When the message is unclear, emit NEED_CLARIFICATION.
- Modifying an existing item is UPDATE_ITEM.
- CANCEL_ITEM only when the traveler explicitly cancels something.
- REPLACE_ITEM when the traveler explicitly swaps an item for a different one
  ("changed to Restaurant B").
- CREATE_ITEM only for a brand-new item."""

_SHAPE = """PatchIntent shape:
{
  "ops": [
    {
      "opType": "CREATE_ITEM|UPDATE_ITEM|CANCEL_ITEM|DISMISS_ITEM|REPLACE_ITEM|NEED_CLARIFICATION",
      "targetHints": {
        "kind": "FLIGHT|LODGING|MEETING|MEAL|TRANSPORT|ACTIVITY|NOTE|OTHER",
        "localDate": "YYYY-MM-DD",
        "localTime": "HH:mm",
        "titleKeywords": ["keyword"],
        "locationKeywords": ["keyword"]
      },
      "updates": {
        "title": "string",
        "locationText": "string",
        "start": {"localDate": "YYYY-MM-DD", "localTime": "HH:mm", "timezone": "IANA zone"},
        "end": {"localDate": "YYYY-MM-DD", "localTime": "HH:mm", "timezone": "IANA zone"},
        "kind": "FLIGHT|..."
      },
      "replacement": {
        "kind": "FLIGHT|...",
        "title": "string",
        "start": {"localDate": "YYYY-MM-DD", "localTime": "HH:mm", "timezone": "IANA zone"},
        "end": {"localDate": "YYYY-MM-DD", "localTime": "HH:mm", "timezone": "IANA zone"},
        "locationText": "string"
      },
      "confidence": 0.0,
      "reason": "short factual explanation"
    }
  ]
}"""


def format_items_snapshot(items: list[dict[str, Any]]) -> str:
    """Pretty JSON listing of the current items."""
    if not items:
        return "[]"
    return json.dumps(items, indent=2)


def build_user_prompt(
    client_timezone: str, now_iso: str | None, raw_update_text: str, items_snapshot: str
) -> str:
    """User prompt with the current items and the update text."""
    return f'''Client context:
- timezone: {client_timezone}
- nowIso: {now_iso or '(not provided)'}

Current trip items:
{items_snapshot}

Traveler's update:
"""
{raw_update_text}
"""

{_SHAPE}

Guidance:
- Give targetHints whenever the update refers to an existing item.
- Emit NEED_CLARIFICATION if the update does not clearly single out one item.
- 24-hour "HH:mm" times; omit localTime when no time is stated.
- Never return item ids.
- Omit keys you have no value for; unknown keys are rejected.

Return JSON only.'''


def build_repair_prompt(invalid_json: str, issues: list[dict[str, Any]]) -> str:
    """Repair prompt for a PatchIntent that failed validation."""
    return f'''The JSON you returned does not match the PatchIntent shape.

Fix only the issues listed, keep everything else as is, and remove any keys that are not
part of the shape.

Validation issues (path, type, message):
{json.dumps(issues, indent=2)}

{_SHAPE}

Invalid JSON:
{invalid_json}

Return the corrected JSON object only.'''
