"""Candidate resolver: map patch target hints onto existing trip items.

Filter, score, then disambiguate. A unique target is returned only when the
best score beats the runner-up by more than the ambiguity gap.
"""

import re
from dataclasses import dataclass, field
from uuid import UUID

from tripsync.app.db.models import TripItem
from tripsync.app.itinerary.fingerprint import normalize_text
from tripsync.app.itinerary.temporal import days_apart
from tripsync.app.models.common import TripItemKind, TripItemState
from tripsync.app.models.ingest import PendingCandidate
from tripsync.app.models.patch import TargetHints

CANDIDATE_MIN_SCORE = 0.5
AMBIGUOUS_SCORE_GAP = 0.1
MAX_CANDIDATES = 5
# Float slack so that 0.70 - 0.60 counts as exactly the gap
SCORE_EPSILON = 1e-9

KIND_WEIGHT = 0.30
DATE_WEIGHT = 0.25
TIME_WEIGHT = 0.15
KEYWORD_WEIGHT = 0.10
KEYWORD_CAP = 0.20

_RELATIVE_DATE_RE = re.compile(
    r"\b(today|tomorrow|yesterday|tonight|sunday|monday|tuesday|wednesday|thursday|friday|saturday)\b",
    re.IGNORECASE,
)

_CROSS_KINDS = {
    (TripItemKind.MEAL, TripItemKind.ACTIVITY),
    (TripItemKind.ACTIVITY, TripItemKind.MEAL),
}


@dataclass(frozen=True)
class ItemSnapshot:
    """The fields of an item that target resolution looks at."""

    id: UUID
    kind: TripItemKind
    title: str
    start_local_date: str | None
    start_local_time: str | None
    location_text: str | None
    state: TripItemState

    @classmethod
    def from_row(cls, row: TripItem) -> "ItemSnapshot":
        return cls(
            id=row.id,
            kind=row.kind,
            title=row.title,
            start_local_date=row.start_local_date,
            start_local_time=row.start_local_time,
            location_text=row.location_text,
            state=row.state,
        )


@dataclass(frozen=True)
class ScoredCandidate:
    item: ItemSnapshot
    score: float
    reasons: tuple[str, ...]

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons) or "Matches update hints"

    def to_pending_candidate(self) -> PendingCandidate:
        return PendingCandidate(
            item_id=self.item.id,
            kind=self.item.kind,
            title=self.item.title,
            start_local_date=self.item.start_local_date,
            start_local_time=self.item.start_local_time,
            location_text=self.item.location_text,
            state=self.item.state,
            reason=self.reason,
        )


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one op's hints."""

    target: ItemSnapshot | None = None
    candidates: list[ScoredCandidate] = field(default_factory=list)

    @property
    def ambiguous(self) -> bool:
        return self.target is None and bool(self.candidates)


def has_relative_date_language(text: str) -> bool:
    """True when the text uses words like 'tomorrow' or a weekday name."""
    return bool(_RELATIVE_DATE_RE.search(text))


def keyword_list(values: list[str] | None) -> list[str]:
    """Trimmed, lower-cased, de-duplicated keywords in input order."""
    cleaned = (value.strip().lower() for value in values or [])
    return list(dict.fromkeys(kw for kw in cleaned if kw))


def _keyword_hits(keywords: list[str], text: str | None) -> int:
    haystack = normalize_text(text)
    return sum(1 for kw in keywords if kw in haystack)


def _passes_date_filter(item: ItemSnapshot, hinted_date: str, allow_fuzz: bool) -> bool:
    if not item.start_local_date:
        return False
    if item.start_local_date == hinted_date:
        return True
    return allow_fuzz and days_apart(item.start_local_date, hinted_date) == 1


def _passes_kind_filter(item: ItemSnapshot, hints: TargetHints) -> bool:
    if hints.kind is None or item.kind == hints.kind:
        return True
    if (hints.kind, item.kind) not in _CROSS_KINDS:
        return False
    date_matches = hints.local_date is None or item.start_local_date == hints.local_date
    title_keywords = keyword_list(hints.title_keywords)
    location_keywords = keyword_list(hints.location_keywords)
    strong_text_match = bool(
        (title_keywords and title_keywords[0] in normalize_text(item.title))
        or (location_keywords and location_keywords[0] in normalize_text(item.location_text))
    )
    return date_matches and strong_text_match


def filter_candidates(
    items: list[ItemSnapshot], hints: TargetHints, raw_update_text: str
) -> list[ItemSnapshot]:
    """Drop items the hints clearly rule out."""
    candidates = items
    if hints.local_date:
        allow_fuzz = has_relative_date_language(raw_update_text)
        candidates = [
            item for item in candidates if _passes_date_filter(item, hints.local_date, allow_fuzz)
        ]
    if hints.kind is not None:
        candidates = [item for item in candidates if _passes_kind_filter(item, hints)]
    return candidates


def score_candidate(item: ItemSnapshot, hints: TargetHints) -> ScoredCandidate:
    """Additive match score with human-readable reasons."""
    score = 0.0
    reasons: list[str] = []

    if hints.kind is not None and item.kind == hints.kind:
        score += KIND_WEIGHT
        reasons.append("Matches kind")
    if hints.local_date and item.start_local_date == hints.local_date:
        score += DATE_WEIGHT
        reasons.append("Matches date")
    if hints.local_time and item.start_local_time == hints.local_time:
        score += TIME_WEIGHT
        reasons.append("Matches time")

    title_hits = _keyword_hits(keyword_list(hints.title_keywords), item.title)
    if title_hits:
        score += min(KEYWORD_CAP, title_hits * KEYWORD_WEIGHT)
        reasons.append("Title matches keywords")

    if item.location_text:
        location_hits = _keyword_hits(keyword_list(hints.location_keywords), item.location_text)
        if location_hits:
            score += min(KEYWORD_CAP, location_hits * KEYWORD_WEIGHT)
            reasons.append("Location matches keywords")

    return ScoredCandidate(item=item, score=score, reasons=tuple(reasons))


def resolve_target(
    items: list[ItemSnapshot], hints: TargetHints | None, raw_update_text: str
) -> Resolution:
    """Resolve hints to a unique target, an ambiguous candidate list, or nothing.

    Args:
        items: Non-dismissed item snapshots of the trip
        hints: Target hints from the op (None resolves to nothing)
        raw_update_text: The user's update, for relative-date detection

    Returns:
        Resolution with either a target or ranked candidates (at most five)
    """
    if hints is None:
        return Resolution()

    scored = [
        score_candidate(item, hints) for item in filter_candidates(items, hints, raw_update_text)
    ]
    scored = [entry for entry in scored if entry.score >= CANDIDATE_MIN_SCORE - SCORE_EPSILON]
    scored.sort(key=lambda entry: entry.score, reverse=True)
    if not scored:
        return Resolution()

    top = scored[0]
    ambiguous = len(scored) > 1 and top.score - scored[1].score <= AMBIGUOUS_SCORE_GAP + SCORE_EPSILON
    ranked = scored[:MAX_CANDIDATES]
    if ambiguous:
        return Resolution(target=None, candidates=ranked)
    return Resolution(target=top.item, candidates=ranked)
