"""docker compose start strategy."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from blossom_conformance.constants import DEFAULT_TIMEOUTS, Timeouts
from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import CleanupError, StartupError
from blossom_conformance.models.config import ComposeStart, ServerConfig
from blossom_conformance.strategies.base import StartStrategy
from blossom_conformance.strategies.processes import (
    ManagedProcess,
    run_command,
    spawn_managed,
    terminate_process,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ComposeStrategy(StartStrategy[ManagedProcess]):
    """Runs the target as a docker compose project driven by ``compose up``.

    Any stack left behind under the same project name is torn down before
    starting, and teardown always runs on stop, whether or not the driving
    process responded to signals.
    """

    settings: ComposeStart
    environment: RuntimeEnvironment
    timeouts: Timeouts = DEFAULT_TIMEOUTS

    @classmethod
    def from_config(
        cls, settings: ComposeStart, environment: RuntimeEnvironment
    ) -> "ComposeStrategy":
        """Create strategy for the given start settings."""
        return cls(settings=settings, environment=environment)

    def compose_args(self, command: str, *extra: str) -> Sequence[str]:
        """Build a ``docker compose`` invocation scoped to the project."""
        return [
            "docker",
            "compose",
            "-p",
            self.settings.project,
            "-f",
            self.settings.file,
            command,
            *extra,
        ]

    async def launch(self, config: ServerConfig) -> ManagedProcess:
        """Clear stale state, then start ``docker compose up``."""
        try:
            await self.compose_down()
        except (CleanupError, OSError) as exc:
            log.warning(
                "Failed to clean docker compose project %s: %s",
                self.settings.project,
                exc,
            )

        try:
            return await spawn_managed(
                config.name,
                self.compose_args("up"),
                env=self.environment.child_env(self.settings.env),
                cwd=self.settings.cwd,
            )
        except OSError as exc:
            raise StartupError(
                config.name, f"Failed to run docker compose: {exc}"
            ) from exc

    def resolve_base_url(self, config: ServerConfig, handle: ManagedProcess) -> str:
        """Compose stacks publish fixed ports, so the URL is used as-is."""
        return config.base_url

    async def release(self, handle: ManagedProcess) -> None:
        """Signal the driving process, then always tear the stack down."""
        signal_error: CleanupError | None = None
        try:
            await terminate_process(
                handle,
                grace=self.timeouts.process_sigterm_wait,
                kill_wait=self.timeouts.process_sigkill_wait,
                drain=self.timeouts.log_drain,
            )
        except CleanupError as exc:
            log.warning("%s", exc)
            signal_error = exc

        try:
            await self.compose_down()
        except (CleanupError, OSError) as exc:
            message = (
                f"Failed to stop docker compose project {self.settings.project}: {exc}"
            )
            if signal_error is not None:
                message += f" (driving process: {signal_error})"
            raise CleanupError(message) from exc

    async def compose_down(self) -> None:
        """Remove the project's containers, volumes and orphans.

        Raises:
            CleanupError: If ``down`` fails or exceeds its bound

        """
        log.info("Tearing down docker compose project %s", self.settings.project)
        try:
            code, output = await run_command(
                self.compose_args("down", "-v", "--remove-orphans"),
                env=self.environment.child_env(self.settings.env),
                cwd=self.settings.cwd,
                timeout=self.timeouts.compose_down,
            )
        except TimeoutError as exc:
            raise CleanupError(
                f"docker compose down timed out after {self.timeouts.compose_down}s"
            ) from exc
        if code != 0:
            raise CleanupError(f"docker compose down exited with code {code}: {output}")

    def describe(self, handle: ManagedProcess) -> dict[str, Any]:
        """Compose project metadata, including retained output."""
        return {
            "project": self.settings.project,
            "file": self.settings.file,
            "pid": handle.pid,
            "logs": handle.logs,
        }
