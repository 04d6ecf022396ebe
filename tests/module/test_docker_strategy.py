"""Module tests for the docker start strategy and full runs against containers."""

import json
from pathlib import Path

import pytest

from blossom_conformance.environment import resolve_runtime_environment
from blossom_conformance.errors import StartupError
from blossom_conformance.executor import TestExecutor
from blossom_conformance.lifecycle import TargetController
from blossom_conformance.orchestrator import ConformanceOrchestrator
from blossom_conformance.strategies.base import LifecycleState
from blossom_conformance.strategies.processes import run_command
from blossom_conformance.testing.configs import docker_start, server_config

from .conftest import WIREMOCK_IMAGE

ADMIN_WAIT = {"http": {"path": "/__admin/mappings", "status": 200, "timeoutMs": 60000}}


async def container_exists(name: str) -> bool:
    code, _ = await run_command(
        ["docker", "inspect", name],
        env=resolve_runtime_environment().child_env(),
        timeout=30.0,
    )
    return code == 0


def wiremock_config() -> dict[str, object]:
    return {
        "name": "wiremock",
        "start": docker_start(image=WIREMOCK_IMAGE, ports=("8080",), wait=ADMIN_WAIT),
        "base_url": "http://localhost:${PORT_8080}",
        "capabilities": [],
    }


async def test_starts_probes_and_removes_container() -> None:
    """Maps an ephemeral port, waits for readiness and cleans up on stop."""
    controller = TargetController(environment=resolve_runtime_environment())

    target = await controller.start(server_config(**wiremock_config()))
    try:
        assert target.state == LifecycleState.READY
        assert "${PORT_8080}" not in target.base_url
        assert target.meta["ports"]["8080"] > 0
        assert await container_exists(target.meta["container_name"])
    finally:
        await target.stop()

    assert not await container_exists(target.meta["container_name"])


async def test_missing_image_fails_startup() -> None:
    """Reports a startup error for images that cannot be pulled."""
    controller = TargetController(environment=resolve_runtime_environment())
    config = server_config(
        name="ghost",
        start=docker_start(image="blossom-conformance/does-not-exist:never"),
    )

    with pytest.raises(StartupError, match="ghost"):
        await controller.start(config)


async def test_full_run_writes_artifacts(tmp_path: Path) -> None:
    """Runs a container target end to end and indexes it in the manifest."""
    environment = resolve_runtime_environment()
    orchestrator = ConformanceOrchestrator(
        controller=TargetController(environment=environment),
        executor=TestExecutor(environment=environment, timeout=300),
        artifacts_root=tmp_path,
        self_check=False,
    )

    summary = await orchestrator.run_targets([server_config(**wiremock_config())])

    assert summary.completed == ["wiremock"]
    assert summary.successful
    target_dir = summary.run_dir / "wiremock"
    bundle = json.loads((target_dir / "results.json").read_text())
    assert bundle["target"] == "wiremock"
    assert bundle["summary"]["failed"] == 0
    assert bundle["summary"]["skipped"] == len(bundle["tests"])
    info = json.loads((target_dir / "server-info.json").read_text())
    assert info["start"]["image"] == WIREMOCK_IMAGE
    manifest = json.loads((summary.run_dir / "manifest.json").read_text())
    assert manifest["targets"] == [{"id": "wiremock", "path": "wiremock/results.json"}]
