"""Loading of start strategies from entry points."""

from importlib.metadata import entry_points
from typing import Any

from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import ConfigurationError
from blossom_conformance.models.config import ServerConfig
from blossom_conformance.strategies.base import StartStrategy
from blossom_conformance.strategies.manifest import StrategyManifest

ENTRY_POINT_GROUP = "blossom_conformance.strategies"


class StrategyNotFoundError(ConfigurationError):
    """Raised when no strategy is registered for a start type."""


def load_strategy_manifest(key: str) -> StrategyManifest[Any]:
    """Load a strategy manifest by key.

    Args:
        key: The start type as registered in pyproject.toml
             (e.g., "docker", "docker-compose", "process")

    Returns:
        The strategy manifest instance

    Raises:
        StrategyNotFoundError: If no strategy with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: StrategyManifest[Any] = entry.load()
            return manifest

    available = [e.name for e in entries]
    raise StrategyNotFoundError(
        f"Strategy '{key}' not found. Available strategies: {available}"
    )


def resolve_strategy(
    config: ServerConfig, environment: RuntimeEnvironment
) -> StartStrategy[Any]:
    """Build the strategy for a target from its start configuration.

    Raises:
        ConfigurationError: If the strategy is unknown or does not accept
            the configured start settings

    """
    manifest = load_strategy_manifest(config.start.type)
    if not isinstance(config.start, manifest.config_cls):
        raise ConfigurationError(
            f"Strategy '{config.start.type}' expects {manifest.config_cls.__name__}, "
            f"got {type(config.start).__name__}"
        )
    return manifest.strategy_factory(config.start, environment)
