"""Prompts for full-trip reconstruction."""

import json
from typing import Any

SYSTEM_PROMPT = """You turn messy pasted travel text (booking confirmations, receipts, notes)
into one structured itinerary.

Respond with a single JSON object matching the TripReconstruction shape described in the
user message. No markdown, no commentary.

Facts:
- Only state what the pasted text supports. Never invent bookings, times or places.
- When you infer something (a year, a timezone, a relative date), set isInferred=true on
  the item and explain the inference in assumptions[].
- When you cannot infer a value, leave it null and add a missingInfo[] prompt asking the
  traveler for it.
- Merge obvious duplicates that describe the same booking.
- Reservation codes, passenger names and other booking metadata belong in the relevant
  item's sourceSnippet or locationText, not in separate items.
- Do not estimate travel times or distances.

Dates:
- With month/day but no year, infer the year from nowIso when unambiguous (usually the next
  occurrence). Stated weekdays take precedence: the chosen year must make every stated
  weekday/date pair true. If several years fit, leave localDate null and ask.
- A year-only inference does not make the item inferred; record it in assumptions[] only.
- Day labels must agree with the weekday of their localDate.

Times:
- Use a concrete time only when the text gives one. Vague wording ("morning", "around 7",
  "after lunch") means localTime=null and iso=null plus a missingInfo[] prompt.
- localTime is 24-hour "HH:mm" with two-digit hours ("07:05", never "7:05 AM").
- localDate is "YYYY-MM-DD" or null. iso is set only when date, time and timezone are all
  known.

Timezones:
- Derive zones from airports or cities where possible (SFO -> America/Los_Angeles). Flight
  departures use the origin zone, arrivals the destination zone.
- Fall back to client.timezone only when nothing in the text implies a zone.
- dateRange.timezone is usually the destination zone.

Enums (uppercase exactly):
- kind: FLIGHT | LODGING | MEETING | MEAL | TRANSPORT | ACTIVITY | NOTE | OTHER
  (a hotel is LODGING, a dinner is MEAL)
- severity: LOW | MEDIUM | HIGH

Quality:
- executiveSummary is two or three calm sentences; at most one recommendation.
- days[] are chronological. Unknown dates still get Day 1 / Day 2 groups with localDate null.
- confidence: 0.9-1.0 explicit, 0.6-0.8 strongly implied and explained; below that prefer
  null plus missingInfo.

Return valid JSON only."""


def _client_block(client_timezone: str, now_iso: str | None) -> str:
    return f"Client context:\n- timezone: {client_timezone}\n- nowIso: {now_iso or '(not provided)'}"


def build_user_prompt(client_timezone: str, now_iso: str | None, raw_text: str) -> str:
    """User prompt carrying the client clock and the raw dump."""
    return f'''{_client_block(client_timezone, now_iso)}

Pasted text:
"""
{raw_text}
"""

Return ONE JSON object with:
- tripTitle, executiveSummary, destinationSummary
- dateRange {{ startLocalDate, endLocalDate, timezone }}
- days[] {{ dayIndex, label, localDate, items[] }}
- items[] {{ id, kind, title, start {{ localDate, localTime, timezone, iso }}, end {{ ... }},
  locationText, isInferred, confidence, sourceSnippet, and optionally flight, lodging,
  meeting or meal details }}
- risks[] {{ severity, title, message, itemIds[] }}
- assumptions[] {{ message, relatedItemIds[] }}
- missingInfo[] {{ prompt, relatedItemIds[] }}
- sourceStats {{ inputCharCount, recognizedItemCount, inferredItemCount }}

Reminders: uppercase enums, 24-hour "HH:mm" times, null for anything vague.

Return JSON only.'''


def build_repair_prompt(
    client_timezone: str,
    now_iso: str | None,
    raw_text: str,
    invalid_json: str,
    issues: list[dict[str, Any]],
) -> str:
    """Repair prompt: the invalid JSON plus the exact validation issues."""
    return f'''The JSON you returned does not match the TripReconstruction shape.

Fix only what the issues below require. Keep the meaning, ids and unrelated fields
unchanged, and do not add facts or precision the pasted text does not support.

Validation issues (path, type, message):
{json.dumps(issues, indent=2)}

{_client_block(client_timezone, now_iso)}

Pasted text:
"""
{raw_text}
"""

Invalid JSON:
{invalid_json}

Return the corrected JSON object only.'''
