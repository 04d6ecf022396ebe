"""Container image start strategy."""

import asyncio
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from testcontainers.core.container import DockerContainer

from blossom_conformance.constants import DEFAULT_TIMEOUTS, Timeouts
from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import CleanupError, StartupError
from blossom_conformance.models.config import DockerStart, ServerConfig
from blossom_conformance.strategies.base import StartStrategy, substitute_ports
from blossom_conformance.strategies.processes import run_command

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class RunningContainer:
    """A started container and its host port mappings."""

    container: DockerContainer = field(repr=False)
    name: str
    container_id: str
    port_map: Mapping[int, int]


@dataclass(frozen=True, kw_only=True)
class DockerStrategy(StartStrategy[RunningContainer]):
    """Runs the target from a container image with ephemeral host ports.

    Stopping is two-tier: a bounded graceful stop and removal, then a bounded
    ``docker rm -f`` if the first tier failed or hung.
    """

    settings: DockerStart
    environment: RuntimeEnvironment
    timeouts: Timeouts = DEFAULT_TIMEOUTS

    @classmethod
    def from_config(
        cls, settings: DockerStart, environment: RuntimeEnvironment
    ) -> "DockerStrategy":
        """Create strategy for the given start settings."""
        return cls(settings=settings, environment=environment)

    def build_container(self, name: str) -> DockerContainer:
        """Describe the container to run; nothing is started yet."""
        client_kw = (
            {"environment": self.environment.child_env()}
            if self.environment.docker_host
            else None
        )
        container = DockerContainer(self.settings.image, docker_client_kw=client_kw)
        container = container.with_name(name)

        ports = self.settings.container_ports()
        if ports:
            container = container.with_exposed_ports(*ports)

        for key, value in self.settings.env.items():
            container = container.with_env(key, value)

        run_kwargs: dict[str, Any] = {}
        if self.settings.platform:
            run_kwargs["platform"] = self.settings.platform
        if self.settings.volumes:
            run_kwargs["tmpfs"] = {
                volume.target: "rw" for volume in self.settings.volumes
            }
        if run_kwargs:
            container = container.with_kwargs(**run_kwargs)

        return container

    async def launch(self, config: ServerConfig) -> RunningContainer:
        """Start the container and resolve its mapped ports."""
        name = f"blossom-{config.name}-{uuid.uuid4().hex[:8]}"
        container = self.build_container(name)
        log.info("Starting Docker container %s from %s", name, self.settings.image)

        # the start thread outlives a timeout; _abandon() cleans up after it
        start = asyncio.ensure_future(asyncio.to_thread(container.start))
        try:
            await asyncio.wait_for(asyncio.shield(start), self.timeouts.container_start)
        except TimeoutError as exc:
            await self._abandon(name, start)
            raise StartupError(
                config.name,
                f"Container start timed out after {self.timeouts.container_start}s",
            ) from exc
        except Exception as exc:
            await self._discard(name)
            raise StartupError(
                config.name, f"Failed to start image {self.settings.image}: {exc}"
            ) from exc

        container_id = container.get_wrapped_container().id
        try:
            port_map = {
                port: int(container.get_exposed_port(port))
                for port in self.settings.container_ports()
            }
        except Exception as exc:
            await self._discard(container_id)
            raise StartupError(
                config.name, f"Failed to resolve mapped ports: {exc}"
            ) from exc

        return RunningContainer(
            container=container,
            name=name,
            container_id=container_id,
            port_map=port_map,
        )

    def resolve_base_url(self, config: ServerConfig, handle: RunningContainer) -> str:
        """Substitute mapped host ports into the base URL template."""
        return substitute_ports(config.base_url, handle.port_map)

    async def release(self, handle: RunningContainer) -> None:
        """Stop gracefully within a bound, otherwise force-remove."""
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._stop_and_remove, handle),
                self.timeouts.docker_stop,
            )
            return
        except TimeoutError:
            log.warning(
                "Graceful stop of container %s timed out after %ss, forcing removal",
                handle.name,
                self.timeouts.docker_stop,
            )
        except Exception as exc:
            log.warning(
                "Graceful stop of container %s failed (%s), forcing removal",
                handle.name,
                exc,
            )

        await self.force_remove(handle.container_id)

    async def _abandon(self, name: str, start: asyncio.Future[None]) -> None:
        """Remove a container whose start timed out once the start call returns."""
        done, _ = await asyncio.wait(
            {start}, timeout=self.timeouts.container_start_abandon
        )
        if not done:
            log.error(
                "Start of container %s still running after %ss, removing anyway",
                name,
                self.timeouts.container_start_abandon,
            )
        elif not start.cancelled() and (exc := start.exception()) is not None:
            log.debug("Abandoned start of container %s failed: %s", name, exc)
        await self._discard(name)

    async def _discard(self, reference: str) -> None:
        try:
            await self.force_remove(reference)
        except CleanupError as exc:
            log.error("Failed to remove container %s: %s", reference, exc)

    def _stop_and_remove(self, handle: RunningContainer) -> None:
        wrapped = handle.container.get_wrapped_container()
        wrapped.stop(timeout=self.timeouts.docker_stop_grace)
        wrapped.remove(v=True)

    async def force_remove(self, reference: str) -> None:
        """Force-remove a container by id or name.

        Raises:
            CleanupError: If ``docker rm -f`` fails or exceeds its bound

        """
        log.info("Force removing Docker container %s...", reference)
        try:
            code, output = await run_command(
                ["docker", "rm", "-f", "-v", reference],
                env=self.environment.child_env(),
                timeout=self.timeouts.docker_force_remove,
            )
        except TimeoutError as exc:
            raise CleanupError(
                f"Force removal timed out after {self.timeouts.docker_force_remove}s "
                f"for container {reference}"
            ) from exc
        except OSError as exc:
            raise CleanupError(f"docker rm -f could not be spawned: {exc}") from exc
        if code != 0:
            raise CleanupError(
                f"docker rm -f exited with code {code} "
                f"for container {reference}: {output}"
            )

    def describe(self, handle: RunningContainer) -> dict[str, Any]:
        """Container metadata."""
        return {
            "container_id": handle.container_id,
            "container_name": handle.name,
            "image": self.settings.image,
            "ports": {str(port): host for port, host in handle.port_map.items()},
        }
