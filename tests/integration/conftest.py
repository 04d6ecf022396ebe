"""Fixtures for integration tests."""

import socket
import sys

import pytest

from blossom_conformance.environment import (
    RuntimeEnvironment,
    resolve_runtime_environment,
)


@pytest.fixture
def environment() -> RuntimeEnvironment:
    """Runtime environment of the current host."""
    return resolve_runtime_environment()


@pytest.fixture
def python() -> str:
    """Interpreter running the tests."""
    return sys.executable


@pytest.fixture
def free_port() -> int:
    """A TCP port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
