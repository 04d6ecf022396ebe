"""Integration tests running pytest suites through the test executor."""

from pathlib import Path

import pytest

from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import ExecutionError, SelfCheckError
from blossom_conformance.executor import TestExecutor
from blossom_conformance.extractor import load_records

MIXED_SUITE = """
import pytest


def test_passes():
    assert True


def test_fails():
    assert 1 == 2, "numbers differ"


@pytest.mark.skip(reason="not today")
def test_skipped():
    pass


async def test_async_passes():
    assert True
"""


@pytest.fixture
def suite(tmp_path: Path) -> Path:
    """A tiny suite with one test per outcome."""
    suite_dir = tmp_path / "suite"
    suite_dir.mkdir()
    (suite_dir / "test_mixed.py").write_text(MIXED_SUITE, encoding="utf-8")
    return suite_dir


async def test_runs_suite_and_extracts_records(
    environment: RuntimeEnvironment, suite: Path, tmp_path: Path
) -> None:
    """Produces JUnit XML that extracts into one record per test."""
    executor = TestExecutor(environment=environment, suite_path=suite, timeout=120)
    artifacts = tmp_path / "artifacts"

    outcome = await executor.run("mixed", "http://127.0.0.1:9", artifacts)
    records = await load_records(artifacts / "junit.xml")

    assert outcome == "pass-with-failures"
    statuses = {record.title: record.status for record in records}
    assert statuses == {
        "test_passes": "passed",
        "test_fails": "failed",
        "test_skipped": "skipped",
        "test_async_passes": "passed",
    }
    failed = next(record for record in records if record.status == "failed")
    assert failed.error is not None
    assert "numbers differ" in failed.error.message
    skipped = next(record for record in records if record.status == "skipped")
    assert skipped.skip_reason == "not today"


async def test_bundled_suite_skips_undeclared_capabilities(
    environment: RuntimeEnvironment, tmp_path: Path
) -> None:
    """Skips every gated test of a target that declares nothing."""
    executor = TestExecutor(environment=environment, timeout=120)

    outcome = await executor.run("bare", "http://127.0.0.1:9", tmp_path)
    records = await load_records(tmp_path / "junit.xml")

    assert outcome == "pass"
    assert records
    for record in records:
        assert record.status == "skipped"
        assert record.requirements
        assert record.skip_reason is not None
        assert record.skip_reason.startswith("Requires capabilities: ")


async def test_collection_error_is_a_crash(
    environment: RuntimeEnvironment, tmp_path: Path
) -> None:
    """Treats an unusable suite as a crashed runner."""
    (tmp_path / "test_broken.py").write_text("import does_not_exist\n")
    executor = TestExecutor(environment=environment, suite_path=tmp_path, timeout=120)

    with pytest.raises(ExecutionError, match="exit code 2"):
        await executor.run("broken", "http://127.0.0.1:9", tmp_path / "out")


async def test_self_check_stops_on_failure(
    environment: RuntimeEnvironment, suite: Path
) -> None:
    """Fails the self-check when one of its tests fails."""
    executor = TestExecutor(
        environment=environment, self_check_paths=(suite,), timeout=120
    )

    with pytest.raises(SelfCheckError):
        await executor.run_self_check()
