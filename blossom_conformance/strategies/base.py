"""Abstract base class for target start strategies and the started-target handle."""

import asyncio
import enum
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from blossom_conformance.errors import StartupError
from blossom_conformance.health import HealthCheckError, HealthProber
from blossom_conformance.models.config import ServerConfig

log = logging.getLogger(__name__)

PORT_PLACEHOLDER = re.compile(r"\$\{PORT_(\d+)\}")


class LifecycleState(enum.StrEnum):
    """Lifecycle of a target within a single run."""

    UNSTARTED = "unstarted"
    STARTING = "starting"
    READY = "ready"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


def substitute_ports(template: str, port_map: Mapping[int, int]) -> str:
    """Replace ``${PORT_<n>}`` placeholders with mapped host ports.

    Placeholders without a mapping are left untouched.
    """

    def replace(match: re.Match[str]) -> str:
        port = int(match.group(1))
        return str(port_map[port]) if port in port_map else match.group(0)

    return PORT_PLACEHOLDER.sub(replace, template)


@dataclass(kw_only=True)
class StartedTarget:
    """A running target owned by the lifecycle controller.

    ``stop()`` is idempotent: the underlying release chain runs at most once
    no matter how often, or how concurrently, it is called. Errors raised by
    the release chain are logged and never propagated.
    """

    name: str
    base_url: str
    capabilities: Sequence[str]
    meta: Mapping[str, Any]
    release: Callable[[], Awaitable[None]] = field(repr=False)
    state: LifecycleState = LifecycleState.STARTING
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def mark_ready(self) -> None:
        """Record that the readiness probe succeeded."""
        self.state = LifecycleState.READY

    def mark_running(self) -> None:
        """Record that tests are being executed against the target."""
        self.state = LifecycleState.RUNNING

    async def stop(self) -> None:
        """Release the target's resources exactly once."""
        async with self._lock:
            if self.state in {LifecycleState.STOPPING, LifecycleState.STOPPED}:
                return
            self.state = LifecycleState.STOPPING
            log.info("Stopping target %s...", self.name)
            try:
                await self.release()
            except Exception as exc:
                log.error("Failed to stop target %s: %s", self.name, exc, exc_info=exc)
            finally:
                self.state = LifecycleState.STOPPED
                log.info("Target %s stopped", self.name)


@dataclass(frozen=True, kw_only=True)
class StartStrategy[HandleT](ABC):
    """Abstract base for the ways a target can be started.

    Generic type HandleT is whatever the strategy needs to keep in order to
    tear the target down again: a container, a subprocess, a compose project.
    """

    @abstractmethod
    async def launch(self, config: ServerConfig) -> HandleT:
        """Allocate the target's resources and return a handle to them.

        Raises:
            StartupError: If the resources could not be allocated

        """

    @abstractmethod
    def resolve_base_url(self, config: ServerConfig, handle: HandleT) -> str:
        """Return the base URL with every placeholder resolved."""

    @abstractmethod
    async def release(self, handle: HandleT) -> None:
        """Tear the target down, escalating as needed.

        Raises:
            CleanupError: If every escalation tier failed

        """

    @abstractmethod
    def describe(self, handle: HandleT) -> dict[str, Any]:
        """Strategy-specific metadata about the running target."""

    async def start(self, config: ServerConfig, prober: HealthProber) -> StartedTarget:
        """Launch the target and wait until it is healthy.

        Partially allocated resources are released before a readiness failure
        is reported.

        Args:
            config: Target configuration
            prober: Health prober used to gate readiness

        Returns:
            Handle to the ready target

        Raises:
            StartupError: If launching failed or the target never became ready

        """
        log.info("Starting target %s (%s)", config.name, config.start.type)
        try:
            handle = await self.launch(config)
        except StartupError:
            raise
        except Exception as exc:
            raise StartupError(config.name, f"{type(exc).__name__}: {exc}") from exc

        async def release() -> None:
            await self.release(handle)

        try:
            meta = {
                "type": config.start.type,
                "started_at": datetime.now(UTC).isoformat(),
                **self.describe(handle),
            }
            base_url = self.resolve_base_url(config, handle)
        except Exception as exc:
            try:
                await release()
            except Exception as release_exc:
                log.error(
                    "Failed to release target %s: %s",
                    config.name,
                    release_exc,
                    exc_info=release_exc,
                )
            raise StartupError(
                config.name, f"Failed to inspect launched target: {exc}"
            ) from exc

        target = StartedTarget(
            name=config.name,
            base_url=base_url,
            capabilities=tuple(config.capabilities),
            meta=meta,
            release=release,
        )

        probe = config.probe
        try:
            await prober.wait(
                target.base_url + probe.path, probe.status, probe.timeout_ms
            )
        except HealthCheckError as exc:
            await target.stop()
            raise StartupError(config.name, str(exc)) from exc
        except BaseException:
            await target.stop()
            raise

        target.mark_ready()
        log.info("Target %s ready at %s", config.name, target.base_url)
        return target
