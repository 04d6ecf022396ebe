"""Fixtures for module tests using WireMock testcontainers."""

from collections.abc import Generator
from pathlib import Path

import pytest
import yaml
from testcontainers.core import testcontainers_config
from wiremock.client import (
    HttpMethods,
    Mapping,
    MappingRequest,
    MappingResponse,
    Mappings,
)
from wiremock.constants import Config
from wiremock.testing.testcontainer import WireMockContainer

from blossom_conformance.testing.configs import docker_start, server_payload

WIREMOCK_IMAGE = "wiremock/wiremock:3.9.1"


@pytest.fixture(scope="session", autouse=True)
def _disable_ryuk() -> None:
    """Disable the extra cleanup instance, we use contexts to clean containers."""
    testcontainers_config.ryuk_disabled = True


@pytest.fixture(scope="session")
def wiremock_server() -> Generator[WireMockContainer]:
    """Start WireMock container using wiremock's testcontainer support."""
    with WireMockContainer(image=WIREMOCK_IMAGE, secure=False) as wm:
        Config.base_url = wm.get_url("__admin")
        yield wm
        print(wm.get_logs())


@pytest.fixture
def wiremock_url(wiremock_server: WireMockContainer) -> str:
    """Base URL of WireMock from the host."""
    return wiremock_server.get_url("").rstrip("/")


@pytest.fixture
def blossom_stub(wiremock_server: WireMockContainer) -> None:
    """Stub the root and upload preflight of a Blossom server."""
    Mappings.delete_all_mappings()

    Mappings.create_mapping(
        Mapping(
            request=MappingRequest(method=HttpMethods.GET, url="/"),
            response=MappingResponse(
                status=200,
                headers={
                    "Content-Type": "text/plain",
                    "Access-Control-Allow-Origin": "*",
                },
                body="Blossom server",
            ),
        )
    )

    Mappings.create_mapping(
        Mapping(
            request=MappingRequest(method=HttpMethods.OPTIONS, url="/upload"),
            response=MappingResponse(
                status=204,
                headers={
                    "Access-Control-Allow-Origin": "*",
                    "Access-Control-Allow-Methods": "GET, HEAD, PUT, DELETE",
                    "Access-Control-Allow-Headers": "Authorization, Content-Type",
                },
            ),
        )
    )


@pytest.fixture
def root_config(tmp_path: Path, wiremock_url: str) -> Path:
    """Root configuration declaring a WireMock target with core:health only."""
    server = server_payload(
        name="wiremock",
        start=docker_start(image=WIREMOCK_IMAGE, ports=("8080",)),
        base_url=wiremock_url,
        capabilities=["core:health"],
    )
    (tmp_path / "wiremock.yaml").write_text(yaml.safe_dump(server), encoding="utf-8")

    root = tmp_path / "blossom.yaml"
    root.write_text(
        yaml.safe_dump({"targets": [{"name": "wiremock", "config": "wiremock.yaml"}]}),
        encoding="utf-8",
    )
    return root
