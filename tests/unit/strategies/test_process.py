"""Tests for the local command start strategy."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.errors import StartupError
from blossom_conformance.models.config import ProcessStart, ServerConfig
from blossom_conformance.strategies.logs import LogBuffer
from blossom_conformance.strategies.process import ProcessStrategy
from blossom_conformance.testing.configs import process_start, server_config

MODULE = "blossom_conformance.strategies.process.strategy"


@pytest.fixture
def config() -> ServerConfig:
    """Create a process target config."""
    return server_config(
        name="local",
        start=process_start(
            command="node", args=["server.js"], cwd="/srv", env={"PORT": "3000"}
        ),
        base_url="http://127.0.0.1:3000",
    )


@pytest.fixture
def strategy(config: ServerConfig) -> ProcessStrategy:
    """Create the strategy under test."""
    assert isinstance(config.start, ProcessStart)
    return ProcessStrategy.from_config(
        config.start, RuntimeEnvironment(base_env={"PATH": "/usr/bin"})
    )


async def test_launch_spawns_with_merged_env(
    strategy: ProcessStrategy, config: ServerConfig
) -> None:
    """Spawns the command in its cwd with host and target env merged."""
    with patch(f"{MODULE}.spawn_managed", new_callable=AsyncMock) as spawn:
        await strategy.launch(config)

    spawn.assert_awaited_once_with(
        "local",
        ["node", "server.js"],
        env={"PATH": "/usr/bin", "PORT": "3000"},
        cwd="/srv",
    )


async def test_launch_missing_command(
    strategy: ProcessStrategy, config: ServerConfig
) -> None:
    """Raises StartupError when the command cannot be spawned."""
    with (
        patch(
            f"{MODULE}.spawn_managed",
            new_callable=AsyncMock,
            side_effect=FileNotFoundError("node"),
        ),
        pytest.raises(StartupError, match="Failed to spawn 'node'"),
    ):
        await strategy.launch(config)


async def test_release_terminates_with_bounds(strategy: ProcessStrategy) -> None:
    """Terminates with the SIGTERM and SIGKILL bounds."""
    handle = Mock(logs=LogBuffer(target="local"))

    with patch(f"{MODULE}.terminate_process", new_callable=AsyncMock) as terminate:
        await strategy.release(handle)

    terminate.assert_awaited_once_with(handle, grace=5.0, kill_wait=5.0, drain=1.0)


def test_base_url_used_as_is(strategy: ProcessStrategy, config: ServerConfig) -> None:
    """Uses the configured base URL without substitution."""
    assert strategy.resolve_base_url(config, Mock()) == "http://127.0.0.1:3000"


def test_describe(strategy: ProcessStrategy) -> None:
    """Describes pid, command and retained logs."""
    logs = LogBuffer(target="local")
    handle = Mock(pid=4242, logs=logs)

    assert strategy.describe(handle) == {"pid": 4242, "command": "node", "logs": logs}
