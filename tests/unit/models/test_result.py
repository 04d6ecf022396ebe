"""Tests for result models."""

from datetime import UTC, datetime

import pytest

from blossom_conformance.models.result import (
    RunManifest,
    TestError,
    TestRecord,
    new_run_id,
)


def test_passed_record() -> None:
    """Creates a passed record without details."""
    record = TestRecord(id="a#b", title="b", file="a", status="passed")

    assert record.duration_ms == 0
    assert record.requirements == ()


def test_failed_record_requires_error() -> None:
    """Rejects a failed record without error details."""
    with pytest.raises(ValueError, match="Error details"):
        TestRecord(id="a#b", title="b", file="a", status="failed")


def test_error_only_allowed_when_failed() -> None:
    """Rejects error details on a passed record."""
    with pytest.raises(ValueError, match="Error details"):
        TestRecord(
            id="a#b",
            title="b",
            file="a",
            status="passed",
            error=TestError(message="x"),
        )


def test_skip_reason_only_allowed_when_skipped() -> None:
    """Rejects skip reasons on non-skipped records and requires them otherwise."""
    with pytest.raises(ValueError, match="Skip reason"):
        TestRecord(id="a#b", title="b", file="a", status="passed", skip_reason="x")
    with pytest.raises(ValueError, match="Skip reason"):
        TestRecord(id="a#b", title="b", file="a", status="skipped")


def test_negative_duration_rejected() -> None:
    """Rejects negative durations."""
    with pytest.raises(ValueError, match="Negative duration"):
        TestRecord(id="a#b", title="b", file="a", status="passed", duration_ms=-1)


def test_new_run_id_format() -> None:
    """Formats run ids from the timestamp without colons or fractions."""
    moment = datetime(2024, 5, 1, 12, 30, 5, 123000, tzinfo=UTC)

    assert new_run_id(moment) == "2024-05-01T12-30-05"


def test_manifest_appends_in_order() -> None:
    """Keeps completed targets in the order they were added."""
    manifest = RunManifest.create(datetime(2024, 5, 1, tzinfo=UTC))

    manifest.add("one", "one")
    manifest.add("two", "two")

    assert manifest.run_id == "2024-05-01T00-00-00"
    assert [entry.id for entry in manifest.targets] == ["one", "two"]
