"""Container image strategy manifest."""

from blossom_conformance.models.config import DockerStart
from blossom_conformance.strategies.container.strategy import DockerStrategy
from blossom_conformance.strategies.manifest import StrategyManifest

docker_manifest = StrategyManifest(
    config_cls=DockerStart,
    strategy_factory=DockerStrategy.from_config,
)
