"""docker compose strategy manifest."""

from blossom_conformance.models.config import ComposeStart
from blossom_conformance.strategies.compose.strategy import ComposeStrategy
from blossom_conformance.strategies.manifest import StrategyManifest

compose_manifest = StrategyManifest(
    config_cls=ComposeStart,
    strategy_factory=ComposeStrategy.from_config,
)
