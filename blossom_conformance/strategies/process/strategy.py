"""Local command start strategy."""

import logging
from dataclasses import dataclass
from typing import Any

from blossom_conformance.constants import DEFAULT_TIMEOUTS, Timeouts
from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import StartupError
from blossom_conformance.models.config import ProcessStart, ServerConfig
from blossom_conformance.strategies.base import StartStrategy
from blossom_conformance.strategies.processes import (
    ManagedProcess,
    spawn_managed,
    terminate_process,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ProcessStrategy(StartStrategy[ManagedProcess]):
    """Runs the target as a child process of the runner."""

    settings: ProcessStart
    environment: RuntimeEnvironment
    timeouts: Timeouts = DEFAULT_TIMEOUTS

    @classmethod
    def from_config(
        cls, settings: ProcessStart, environment: RuntimeEnvironment
    ) -> "ProcessStrategy":
        """Create strategy for the given start settings."""
        return cls(settings=settings, environment=environment)

    async def launch(self, config: ServerConfig) -> ManagedProcess:
        """Spawn the configured command."""
        argv = [self.settings.command, *self.settings.args]
        try:
            return await spawn_managed(
                config.name,
                argv,
                env=self.environment.child_env(self.settings.env),
                cwd=self.settings.cwd,
            )
        except OSError as exc:
            raise StartupError(
                config.name, f"Failed to spawn '{self.settings.command}': {exc}"
            ) from exc

    def resolve_base_url(self, config: ServerConfig, handle: ManagedProcess) -> str:
        """Local processes listen on the configured URL as-is."""
        return config.base_url

    async def release(self, handle: ManagedProcess) -> None:
        """Terminate the process, escalating to SIGKILL after the grace window."""
        await terminate_process(
            handle,
            grace=self.timeouts.process_sigterm_wait,
            kill_wait=self.timeouts.process_sigkill_wait,
            drain=self.timeouts.log_drain,
        )
        if handle.logs.dropped:
            log.info(
                "Dropped %d early log line(s) of %s", handle.logs.dropped, handle.name
            )

    def describe(self, handle: ManagedProcess) -> dict[str, Any]:
        """Process metadata, including retained output."""
        return {
            "pid": handle.pid,
            "command": self.settings.command,
            "logs": handle.logs,
        }
