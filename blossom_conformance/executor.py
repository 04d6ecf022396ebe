"""Test execution adapter running the conformance suite against one target."""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from blossom_conformance.constants import (
    DEFAULT_TIMEOUTS,
    ENV_ARTIFACTS_DIR,
    ENV_BASE_URL,
    ENV_CONFIG,
    ENV_TARGET,
    JUNIT_FILENAME,
    Timeouts,
)
from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import CleanupError, ExecutionError, SelfCheckError
from blossom_conformance.strategies.processes import (
    drain_pumps,
    spawn_managed,
    terminate_process,
)

log = logging.getLogger(__name__)

type ExitClass = Literal["pass", "pass-with-failures", "crash"]

SUITE_PATH = Path(__file__).parent / "suite"
DEFAULT_SELF_CHECK_PATHS: Sequence[Path] = (Path("tests") / "unit",)

# pytest: 0 all passed, 1 some tests failed; anything else is a runner problem
EXIT_CLASSES: Mapping[int, ExitClass] = {0: "pass", 1: "pass-with-failures"}


def classify_exit(code: int | None) -> ExitClass:
    """Classify a test runner exit code."""
    if code is None:
        return "crash"
    return EXIT_CLASSES.get(code, "crash")


@dataclass(frozen=True, kw_only=True)
class TestExecutor:
    """Runs the bundled pytest suite as a subprocess.

    Test failures are normal outcomes reported through JUnit XML; only a
    crashed, unspawnable or runaway runner is an error.
    """

    __test__ = False

    environment: RuntimeEnvironment
    suite_path: Path = SUITE_PATH
    self_check_paths: Sequence[Path] = DEFAULT_SELF_CHECK_PATHS
    config_path: Path | None = None
    timeout: float = DEFAULT_TIMEOUTS.test_run
    timeouts: Timeouts = DEFAULT_TIMEOUTS
    extra_args: Sequence[str] = ()

    def pytest_command(self, *args: str) -> list[str]:
        """Build the argv invoking pytest with the current interpreter."""
        return [
            self.environment.python_executable,
            "-m",
            "pytest",
            "-p",
            "no:cacheprovider",
            *args,
            *self.extra_args,
        ]

    def suite_env(
        self, target_id: str, base_url: str, artifacts_dir: Path
    ) -> dict[str, str]:
        """Environment handed to the suite so it can locate its target."""
        extra = {
            ENV_TARGET: target_id,
            ENV_BASE_URL: base_url,
            ENV_ARTIFACTS_DIR: str(artifacts_dir),
        }
        if self.config_path is not None:
            extra[ENV_CONFIG] = str(self.config_path.resolve())
        return self.environment.child_env(extra)

    async def run(
        self, target_id: str, base_url: str, artifacts_dir: Path
    ) -> ExitClass:
        """Run the conformance suite against a started target.

        Args:
            target_id: Name of the target under test
            base_url: Resolved base URL of the target
            artifacts_dir: Directory receiving the raw JUnit XML output

        Returns:
            ``pass`` or ``pass-with-failures``

        Raises:
            ExecutionError: If the runner crashed, could not be spawned or
                exceeded the run timeout

        """
        artifacts_dir.mkdir(parents=True, exist_ok=True)
        argv = self.pytest_command(
            str(self.suite_path),
            "-o",
            "asyncio_mode=auto",
            "-o",
            "junit_family=xunit1",
            f"--junitxml={artifacts_dir / JUNIT_FILENAME}",
        )
        env = self.suite_env(target_id, base_url, artifacts_dir)

        log.info("Running conformance suite against %s (%s)", target_id, base_url)
        try:
            code = await self._execute(f"pytest:{target_id}", argv, env)
        except OSError as exc:
            raise ExecutionError(
                target_id, f"Failed to spawn test runner: {exc}"
            ) from exc
        except TimeoutError as exc:
            raise ExecutionError(
                target_id, f"Test run exceeded {self.timeout:.0f}s and was killed"
            ) from exc

        outcome = classify_exit(code)
        if outcome == "crash":
            raise ExecutionError(
                target_id, f"Test runner crashed with exit code {code}"
            )

        log.info("Conformance suite for %s finished: %s", target_id, outcome)
        return outcome

    async def run_self_check(self) -> None:
        """Run the runner's own unit tests once, stopping at the first failure.

        Paths that do not exist (e.g. in an installed distribution) are
        ignored; with none left the self-check is skipped.

        Raises:
            SelfCheckError: If the self-check did not pass

        """
        paths = [path for path in self.self_check_paths if path.exists()]
        if not paths:
            log.warning("No self-check tests found, skipping self-check")
            return

        argv = self.pytest_command(*(str(path) for path in paths), "-x", "-q")
        log.info("Running self-check: %s", ", ".join(str(path) for path in paths))
        try:
            code = await self._execute(
                "self-check", argv, self.environment.child_env()
            )
        except (OSError, TimeoutError) as exc:
            raise SelfCheckError(f"Self-check could not complete: {exc}") from exc

        if code != 0:
            raise SelfCheckError(f"Self-check failed with exit code {code}")
        log.info("Self-check passed")

    async def _execute(
        self, name: str, argv: Sequence[str], env: Mapping[str, str]
    ) -> int | None:
        """Run a pytest subprocess to completion within the run timeout.

        Raises:
            TimeoutError: If the run timeout elapsed (the process is killed)
            OSError: If the interpreter cannot be spawned

        """
        managed = await spawn_managed(name, argv, env=env, level=logging.INFO)
        try:
            await asyncio.wait_for(managed.process.wait(), self.timeout)
        except BaseException as exc:
            if isinstance(exc, TimeoutError):
                log.error("%s exceeded %.0fs, terminating", name, self.timeout)
            try:
                await terminate_process(
                    managed,
                    grace=self.timeouts.process_sigterm_wait,
                    kill_wait=self.timeouts.process_sigkill_wait,
                    drain=self.timeouts.log_drain,
                )
            except CleanupError as cleanup_exc:
                log.error("Could not stop %s: %s", name, cleanup_exc)
            raise

        await drain_pumps(managed.pumps, self.timeouts.log_drain)
        return managed.process.returncode
