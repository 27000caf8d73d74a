"""Deterministic identity fingerprint for trip items."""

import hashlib


def normalize_text(value: str | None) -> str:
    """Trim, collapse internal whitespace and lower-case."""
    if not value:
        return ""
    return " ".join(value.split()).lower()


def build_item_fingerprint(
    kind: str,
    title: str,
    start_iso: str | None,
    start_local_date: str | None,
    start_local_time: str | None,
    location_text: str | None,
) -> str:
    """SHA-256 hex digest over an item's identity fields.

    Two items with the same kind, normalized title, start (instant and local
    date/time) and normalized location share a fingerprint.
    """
    material = "|".join(
        [
            kind,
            normalize_text(title),
            start_iso or "",
            start_local_date or "",
            start_local_time or "",
            normalize_text(location_text),
        ]
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
