"""The server under test as seen from inside the suite."""

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from blossom_conformance.config_loader import read_target_config
from blossom_conformance.constants import ENV_BASE_URL, ENV_CONFIG, ENV_TARGET
from blossom_conformance.errors import ConfigurationError
from blossom_conformance.models.config import ServerConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class SuiteTarget:
    """Name, address and declared capabilities of the target."""

    name: str
    base_url: str
    capabilities: Sequence[str]
    config: ServerConfig | None = None

    def url(self, path: str) -> str:
        """Absolute URL of a path on the target."""
        return self.base_url.rstrip("/") + path


def load_suite_target(environ: Mapping[str, str] | None = None) -> SuiteTarget:
    """Build the target description from the executor's environment.

    Raises:
        ConfigurationError: If the suite was not started by the test executor
            or the target's configuration cannot be loaded

    """
    env = os.environ if environ is None else environ
    name = env.get(ENV_TARGET)
    base_url = env.get(ENV_BASE_URL)
    if not name or not base_url:
        raise ConfigurationError(
            f"{ENV_TARGET} and {ENV_BASE_URL} must be set; "
            "run the suite through blossom-conformance"
        )

    config_path = env.get(ENV_CONFIG)
    if not config_path:
        log.warning("%s not set; no capabilities declared for %s", ENV_CONFIG, name)
        return SuiteTarget(name=name, base_url=base_url, capabilities=())

    config = read_target_config(Path(config_path), name)
    return SuiteTarget(
        name=name,
        base_url=base_url,
        capabilities=tuple(config.capabilities),
        config=config,
    )
