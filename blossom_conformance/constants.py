"""Runner-wide constants: timeouts, limits and environment variable names."""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class Timeouts:
    """Bounds (in seconds) for every suspension point of a target lifecycle."""

    health_check_request: float = 2.0
    health_check_retry: float = 0.25
    container_start: float = 300.0
    container_start_abandon: float = 60.0
    docker_stop: float = 15.0
    docker_stop_grace: int = 5
    docker_force_remove: float = 10.0
    process_sigterm_wait: float = 5.0
    process_sigkill_wait: float = 5.0
    compose_down: float = 60.0
    log_drain: float = 1.0
    test_run: float = 1800.0


DEFAULT_TIMEOUTS = Timeouts()

# Maximum lines of target output retained per target (oldest dropped first)
MAX_LOG_ENTRIES = 1000
MAX_LINE_BYTES = 64 * 1024

SEPARATOR_LENGTH = 60

DEFAULT_ROOT_CONFIG = ".blossomrc.yml"
DEFAULT_ARTIFACTS_DIR = "artifacts"

ENV_TARGET = "BLOSSOM_TARGET"
ENV_BASE_URL = "BLOSSOM_BASE_URL"
ENV_ARTIFACTS_DIR = "BLOSSOM_ARTIFACTS_DIR"
ENV_CONFIG = "BLOSSOM_CONFIG"

JUNIT_FILENAME = "junit.xml"
RESULTS_FILENAME = "results.json"
FEATURE_MATRIX_FILENAME = "feature-matrix.md"
SERVER_INFO_FILENAME = "server-info.json"
MANIFEST_FILENAME = "manifest.json"
