"""Strategy manifest definition for the plugin system."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.strategies.base import StartStrategy


@dataclass(frozen=True, kw_only=True)
class StrategyManifest[StartT: BaseModel]:
    """Manifest describing a start strategy plugin.

    The manifest pairs the start configuration model a strategy accepts with
    the factory building the strategy, so strategies are resolved once per
    target from the configured ``start.type`` key.
    """

    config_cls: type[StartT]
    strategy_factory: Callable[[StartT, RuntimeEnvironment], StartStrategy[Any]]
