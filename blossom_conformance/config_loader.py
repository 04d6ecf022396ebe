"""Loading of root and per-target configuration files."""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from blossom_conformance.capabilities import is_known_capability
from blossom_conformance.errors import ConfigurationError
from blossom_conformance.models.config import RootConfig, ServerConfig, TargetRef

log = logging.getLogger(__name__)


def _read_yaml(path: Path) -> Any:
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        raise ConfigurationError(f"Empty configuration file: {path}")
    return data


def _validate[ModelT: BaseModel](model: type[ModelT], path: Path, data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration schema in {path}: {exc}"
        ) from exc


def read_root_config(path: Path) -> RootConfig:
    """Parse the root configuration synchronously.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid

    """
    return _validate(RootConfig, path, _read_yaml(path))


def read_server_config(path: Path) -> ServerConfig:
    """Parse a target configuration synchronously.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid

    """
    config = _validate(ServerConfig, path, _read_yaml(path))
    for token in config.capabilities:
        if not is_known_capability(token):
            log.warning("Unknown capability '%s' declared in %s", token, path)
    return config


async def load_root_config(path: Path) -> RootConfig:
    """Load the root configuration listing all targets."""
    return await asyncio.to_thread(read_root_config, path)


async def load_server_config(path: Path) -> ServerConfig:
    """Load a single target configuration."""
    return await asyncio.to_thread(read_server_config, path)


def server_config_path(root_path: Path, target: TargetRef) -> Path:
    """Resolve a target's config path relative to the root configuration."""
    config_path = Path(target.config)
    if config_path.is_absolute():
        return config_path
    return root_path.parent / config_path


def select_targets(
    root: RootConfig, target_name: str | None = None, *, all_targets: bool = False
) -> Sequence[TargetRef]:
    """Choose which targets to run.

    An explicit name wins; ``all_targets`` selects everything; otherwise the
    configured default target is used, falling back to every target.

    Raises:
        ConfigurationError: If the selection matches no target

    """
    if target_name and not all_targets:
        target = root.find(target_name)
        if target is None:
            raise ConfigurationError(f"No targets found matching '{target_name}'")
        return [target]

    if not all_targets and root.default_target:
        target = root.find(root.default_target)
        if target is None:
            raise ConfigurationError(
                f"Default target '{root.default_target}' is not defined"
            )
        return [target]

    if not root.targets:
        raise ConfigurationError("No targets configured")
    return list(root.targets)


async def load_target_configs(
    root_path: Path, targets: Sequence[TargetRef]
) -> Sequence[ServerConfig]:
    """Load every selected target configuration before anything starts.

    Raises:
        ConfigurationError: If any target configuration cannot be loaded or
            its name does not match the root reference

    """
    configs: list[ServerConfig] = []
    for target in targets:
        config = await load_server_config(server_config_path(root_path, target))
        if config.name != target.name:
            log.warning(
                "Target '%s' config declares name '%s'; using '%s'",
                target.name,
                config.name,
                target.name,
            )
            config = config.model_copy(update={"name": target.name})
        configs.append(config)
    return configs


def read_target_config(root_path: Path, target_name: str) -> ServerConfig:
    """Parse the configuration of a single named target synchronously.

    Raises:
        ConfigurationError: If the target is unknown or its config is invalid

    """
    target = read_root_config(root_path).find(target_name)
    if target is None:
        raise ConfigurationError(f"Target not found: {target_name}")
    return read_server_config(server_config_path(root_path, target))
