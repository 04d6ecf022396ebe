"""Wires the conformance suite to the target selected by the test executor.

Tests declare the capabilities they exercise with ``@pytest.mark.requires``.
Requirements are recorded as a ``requirements`` JUnit property, and tests
whose requirements the target does not declare are skipped before they run.
"""

from collections.abc import AsyncIterator, Sequence

import aiohttp
import pytest

from blossom_conformance.capabilities import requires, skip_reason
from blossom_conformance.errors import ConfigurationError
from blossom_conformance.suite.target import SuiteTarget, load_suite_target

REQUIREMENTS_PROPERTY = "requirements"
REQUEST_TIMEOUT = 30.0

TARGET_KEY = pytest.StashKey[SuiteTarget]()


def required_capabilities(item: pytest.Item) -> Sequence[str]:
    """Collect ``requires`` markers of a test, closest first, without repeats."""
    required: list[str] = []
    for marker in item.iter_markers("requires"):
        required.extend(token for token in marker.args if token not in required)
    return required


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "requires(*capabilities): capabilities the target must declare",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    try:
        target = load_suite_target()
    except ConfigurationError as exc:
        raise pytest.UsageError(str(exc)) from exc
    config.stash[TARGET_KEY] = target

    for item in items:
        required = required_capabilities(item)
        if not required:
            continue
        item.user_properties.append((REQUIREMENTS_PROPERTY, ",".join(required)))
        if not requires(*required)(target.capabilities):
            item.add_marker(pytest.mark.skip(reason=skip_reason(required)))


@pytest.fixture(scope="session")
def target(pytestconfig: pytest.Config) -> SuiteTarget:
    """The server under test."""
    return pytestconfig.stash[TARGET_KEY]


@pytest.fixture
async def http() -> AsyncIterator[aiohttp.ClientSession]:
    """HTTP client session for talking to the target."""
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        yield session
