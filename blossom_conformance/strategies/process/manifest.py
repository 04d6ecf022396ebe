"""Local command strategy manifest."""

from blossom_conformance.models.config import ProcessStart
from blossom_conformance.strategies.manifest import StrategyManifest
from blossom_conformance.strategies.process.strategy import ProcessStrategy

process_manifest = StrategyManifest(
    config_cls=ProcessStart,
    strategy_factory=ProcessStrategy.from_config,
)
