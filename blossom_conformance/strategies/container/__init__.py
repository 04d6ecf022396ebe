"""Container image start strategy module."""

from blossom_conformance.strategies.container.manifest import docker_manifest
from blossom_conformance.strategies.container.strategy import (
    DockerStrategy,
    RunningContainer,
)

__all__ = ["DockerStrategy", "RunningContainer", "docker_manifest"]
