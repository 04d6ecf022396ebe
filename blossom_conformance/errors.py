"""Exception hierarchy shared by the conformance runner components."""


class ConformanceError(Exception):
    """Base class for all conformance runner errors."""


class ConfigurationError(ConformanceError):
    """Raised when configuration is malformed or references cannot be resolved."""


class SelfCheckError(ConformanceError):
    """Raised when the internal self-check suite fails."""


class TargetError(ConformanceError):
    """Base class for errors scoped to a single target."""

    def __init__(self, target: str, message: str) -> None:
        super().__init__(f"{target}: {message}")
        self.target = target
        self.reason = message


class StartupError(TargetError):
    """Raised when a target cannot be started or never becomes healthy."""


class ExecutionError(TargetError):
    """Raised when the test runner process crashes or cannot be spawned."""


class ExtractionError(ConformanceError):
    """Raised when raw test output is missing or cannot be parsed at all."""


class CleanupError(ConformanceError):
    """Raised when every tier of a stop sequence failed."""
