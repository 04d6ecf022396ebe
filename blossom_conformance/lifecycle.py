"""Target lifecycle controller."""

import logging
from dataclasses import dataclass, field
from typing import Any

from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.health import HealthProber
from blossom_conformance.models.config import ServerConfig
from blossom_conformance.strategies.base import StartedTarget, StartStrategy
from blossom_conformance.strategies.loading import resolve_strategy

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TargetController:
    """Starts targets through their configured strategy.

    The controller never exposes a separate stop operation: the only way to
    tear a target down is the ``stop()`` handle on the returned target.
    """

    environment: RuntimeEnvironment
    prober: HealthProber = field(default_factory=HealthProber)

    def strategy_for(self, config: ServerConfig) -> StartStrategy[Any]:
        """Resolve the start strategy of a target.

        Raises:
            ConfigurationError: If no strategy matches the start type

        """
        return resolve_strategy(config, self.environment)

    async def start(
        self, config: ServerConfig, strategy: StartStrategy[Any] | None = None
    ) -> StartedTarget:
        """Start a target and wait until it is ready.

        Args:
            config: Target configuration
            strategy: Pre-resolved strategy; resolved from config when omitted

        Raises:
            StartupError: If the target could not be started
            ConfigurationError: If no strategy matches the start type

        """
        strategy = strategy or self.strategy_for(config)
        return await strategy.start(config, self.prober)
