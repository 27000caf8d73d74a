"""Unit tests for trip source text accumulation and ingest routing."""

from tripsync.app.db.trips import SOURCE_SEPARATOR, accumulate_source_text
from tripsync.app.models.ingest import IngestMode
from tripsync.app.orchestration.ingest import should_rebuild


def test_first_dump_is_kept_as_is() -> None:
    assert accumulate_source_text(None, "Flight UA123", 100) == ("Flight UA123", None)


def test_dumps_are_joined_with_separator() -> None:
    text, truncation = accumulate_source_text("first", "second", 100)

    assert text == f"first{SOURCE_SEPARATOR}second"
    assert truncation is None


def test_overflow_keeps_newest_tail() -> None:
    text, truncation = accumulate_source_text("a" * 50, "b" * 20, 30)

    assert text.endswith("b" * 20)
    assert len(text) == 30
    assert truncation == {
        "rawTextTruncated": True,
        "rawTextOriginalChars": 50 + len(SOURCE_SEPARATOR) + 20,
        "rawTextKeptChars": 30,
        "rawTextOmittedChars": 50 + len(SOURCE_SEPARATOR) + 20 - 30,
    }


def test_empty_trip_always_rebuilds() -> None:
    assert should_rebuild(IngestMode.PATCH, 0, 10, 2000)


def test_small_update_patches() -> None:
    assert not should_rebuild(None, 3, 30, 2000)


def test_large_dump_rebuilds_unless_forced_to_patch() -> None:
    assert should_rebuild(None, 3, 2000, 2000)
    assert not should_rebuild(IngestMode.PATCH, 3, 5000, 2000)


def test_forced_rebuild() -> None:
    assert should_rebuild(IngestMode.REBUILD, 3, 10, 2000)
