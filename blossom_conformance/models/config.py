"""Models for target configuration loaded from YAML files."""

from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Literal

from pydantic import BeforeValidator, Field, field_validator

from blossom_conformance.models.base import Model


def _stringify_values(value: Any) -> Any:
    """Coerce scalar YAML values (ports, flags) to strings for env mappings."""
    if isinstance(value, Mapping):
        return {str(key): str(item) for key, item in value.items()}
    return value


EnvMapping = Annotated[Mapping[str, str], BeforeValidator(_stringify_values)]


class HttpWait(Model):
    """Readiness probe definition."""

    path: str = Field(..., description="Path appended to the base URL")
    status: int = Field(default=200, description="Expected HTTP status")
    timeout_ms: int = Field(
        default=20_000, alias="timeoutMs", gt=0, description="Overall probe budget"
    )


class WaitConfig(Model):
    """Wait strategy used to decide when a target is ready."""

    http: HttpWait


class TempVolume(Model):
    """Ephemeral writable volume mounted into a container."""

    type: Literal["temp"] = "temp"
    target: str = Field(..., description="Mount point inside the container")


class DockerStart(Model):
    """Start a target from a container image."""

    type: Literal["docker"]
    image: str
    platform: str | None = None
    env: EnvMapping = Field(default_factory=dict)
    ports: Sequence[str] = Field(default_factory=list)
    volumes: Sequence[TempVolume] = Field(default_factory=list)
    wait: WaitConfig

    @field_validator("ports", mode="before")
    @classmethod
    def _ports_as_strings(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            return [str(item) for item in value]
        return value

    @field_validator("ports")
    @classmethod
    def _ports_are_numeric(cls, value: Sequence[str]) -> Sequence[str]:
        for spec in value:
            if not spec.split("/")[0].isdigit():
                raise ValueError(f"Invalid port specification '{spec}'")
        return value

    def container_ports(self) -> Sequence[int]:
        """Container-side port numbers, with protocol suffixes stripped."""
        return [int(spec.split("/")[0]) for spec in self.ports]

    def descriptor(self) -> dict[str, Any]:
        """Describe the start strategy for server metadata."""
        return {
            "type": self.type,
            "image": self.image,
            "platform": self.platform,
            "ports": list(self.ports),
        }


class ComposeStart(Model):
    """Start a target as a docker compose project."""

    type: Literal["docker-compose"]
    file: str
    project: str
    cwd: str | None = None
    env: EnvMapping = Field(default_factory=dict)
    wait: WaitConfig

    def descriptor(self) -> dict[str, Any]:
        """Describe the start strategy for server metadata."""
        return {"type": self.type, "project": self.project, "file": self.file}


class ProcessStart(Model):
    """Start a target as a local process."""

    type: Literal["process"]
    command: str
    args: Sequence[str] = Field(default_factory=list)
    cwd: str | None = None
    env: EnvMapping = Field(default_factory=dict)
    wait: WaitConfig

    def descriptor(self) -> dict[str, Any]:
        """Describe the start strategy for server metadata."""
        return {"type": self.type, "command": self.command, "args": list(self.args)}


StartConfig = Annotated[
    DockerStart | ComposeStart | ProcessStart, Field(discriminator="type")
]


class ServerConfig(Model):
    """Complete description of one server implementation under test."""

    name: str
    start: StartConfig
    base_url: str = Field(..., alias="baseUrl")
    spec_version: str | None = Field(default=None, alias="specVersion")
    capabilities: Sequence[str] = Field(default_factory=list)
    limits: Mapping[str, Any] = Field(default_factory=dict)
    secrets: Mapping[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def probe(self) -> HttpWait:
        """Readiness probe of the configured start strategy."""
        return self.start.wait.http


class TargetRef(Model):
    """Named reference from the root configuration to a server config file."""

    name: str
    config: str


class RootConfig(Model):
    """Root configuration listing all known targets."""

    default_target: str | None = Field(default=None, alias="defaultTarget")
    targets: Sequence[TargetRef] = Field(default_factory=list)

    def find(self, name: str) -> TargetRef | None:
        """Return the target reference with the given name, if any."""
        return next((target for target in self.targets if target.name == name), None)
