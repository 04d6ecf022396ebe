"""Models for extracted test records and run manifests."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

type TestStatus = Literal["passed", "failed", "skipped"]


@dataclass(frozen=True, kw_only=True)
class TestError:
    """Failure details for a failed test."""

    __test__ = False

    message: str
    stack: str | None = None


@dataclass(frozen=True, kw_only=True)
class TestRecord:
    """Canonical outcome of a single conformance test case.

    ``error`` is present only for failed tests and ``skip_reason`` only for
    skipped ones; any other combination is rejected at construction time.
    """

    __test__ = False

    id: str
    title: str
    file: str
    status: TestStatus
    duration_ms: int = 0
    requirements: Sequence[str] = ()
    error: TestError | None = None
    skip_reason: str | None = None

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError(f"Negative duration for {self.id}: {self.duration_ms}")
        if (self.status == "failed") != (self.error is not None):
            raise ValueError(f"Error details must be present iff failed: {self.id}")
        if (self.status == "skipped") != (self.skip_reason is not None):
            raise ValueError(f"Skip reason must be present iff skipped: {self.id}")


@dataclass(frozen=True, kw_only=True)
class ManifestEntry:
    """A completed target and the location of its result bundle."""

    id: str
    path: str


def new_run_id(now: datetime | None = None) -> str:
    """Derive a run identifier from a UTC timestamp (e.g. 2024-05-01T12-30-00)."""
    moment = now or datetime.now(UTC)
    return moment.strftime("%Y-%m-%dT%H-%M-%S")


@dataclass(kw_only=True)
class RunManifest:
    """Run-level index of every target that produced a result bundle."""

    run_id: str
    created_at: datetime
    targets: list[ManifestEntry] = field(default_factory=list)

    @classmethod
    def create(cls, now: datetime | None = None) -> "RunManifest":
        """Start a new manifest stamped with the current time."""
        moment = now or datetime.now(UTC)
        return cls(run_id=new_run_id(moment), created_at=moment)

    def add(self, target_id: str, path: str) -> None:
        """Record a completed target."""
        self.targets.append(ManifestEntry(id=target_id, path=path))
