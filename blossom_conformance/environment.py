"""One-time resolution of the host runtime the runner talks to."""

import logging
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)


def docker_socket_candidates(home: Path) -> Sequence[Path]:
    """Well-known Docker socket locations, most specific first."""
    return (
        home / ".orbstack" / "run" / "docker.sock",
        home / ".docker" / "run" / "docker.sock",
        Path("/var/run/docker.sock"),
    )


@dataclass(frozen=True, kw_only=True)
class RuntimeEnvironment:
    """Resolved host settings passed down to strategies and the executor."""

    docker_host: str | None = None
    python_executable: str = sys.executable
    base_env: Mapping[str, str] = field(default_factory=dict, repr=False)

    def child_env(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        """Build the environment for a child process.

        Starts from the captured host environment, applies the resolved
        Docker host and finally any per-call overrides.
        """
        env = dict(self.base_env)
        if self.docker_host:
            env["DOCKER_HOST"] = self.docker_host
        if extra:
            env.update(extra)
        return env


def resolve_runtime_environment(
    environ: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> RuntimeEnvironment:
    """Detect the Docker host once, honouring an explicit DOCKER_HOST.

    Args:
        environ: Environment to inspect (defaults to ``os.environ``)
        home: Home directory used to locate per-user sockets

    Returns:
        Runtime environment value to hand to the components that need it

    """
    env = dict(os.environ if environ is None else environ)
    docker_host = env.get("DOCKER_HOST")

    if docker_host:
        log.debug("Using DOCKER_HOST from environment: %s", docker_host)
    else:
        for socket_path in docker_socket_candidates(home or Path.home()):
            if socket_path.exists():
                docker_host = f"unix://{socket_path}"
                log.info("Using Docker socket: %s", socket_path)
                break
        else:
            log.warning("Could not detect a Docker socket; container targets may fail")

    return RuntimeEnvironment(
        docker_host=docker_host,
        python_executable=sys.executable,
        base_env=env,
    )
