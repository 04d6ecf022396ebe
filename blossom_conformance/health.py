"""HTTP readiness probing for freshly started targets."""

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

from blossom_conformance.constants import DEFAULT_TIMEOUTS

log = logging.getLogger(__name__)


class HealthCheckError(TimeoutError):
    """Raised when an endpoint never reported the expected status in time."""

    def __init__(self, url: str, timeout_ms: int, last_error: str | None) -> None:
        super().__init__(
            f"Health check failed for {url} after {timeout_ms}ms: "
            f"{last_error or 'timeout'}"
        )
        self.url = url
        self.last_error = last_error


@dataclass(frozen=True, kw_only=True)
class HealthProber:
    """Polls an HTTP endpoint until it answers with the expected status.

    Startup is racy: containers and processes accept connections at some
    unknown point after launch. Individual attempts may be refused, reset or
    time out; those are retried until the overall budget runs out.
    """

    retry_interval: float = DEFAULT_TIMEOUTS.health_check_retry
    request_timeout: float = DEFAULT_TIMEOUTS.health_check_request

    async def wait(self, url: str, expected_status: int, timeout_ms: int) -> None:
        """Wait for ``url`` to return ``expected_status``.

        Args:
            url: Absolute URL to GET
            expected_status: Status code that marks the target as ready
            timeout_ms: Overall budget in milliseconds

        Raises:
            HealthCheckError: If the budget is exhausted, carrying the last
                observed error for diagnostics

        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        last_error: str | None = None
        attempts = 0

        async with aiohttp.ClientSession() as session:
            while (remaining := deadline - loop.time()) > 0:
                attempts += 1
                try:
                    status = await self._probe(
                        session, url, min(self.request_timeout, remaining)
                    )
                except (aiohttp.ClientError, TimeoutError) as exc:
                    last_error = f"{type(exc).__name__}: {exc}"
                else:
                    if status == expected_status:
                        log.info(
                            "Health check passed for %s (%d attempt(s))", url, attempts
                        )
                        return
                    last_error = f"Expected status {expected_status}, got {status}"

                log.debug(
                    "Health check attempt %d for %s: %s", attempts, url, last_error
                )
                pause = min(self.retry_interval, max(deadline - loop.time(), 0))
                await asyncio.sleep(pause)

        raise HealthCheckError(url, timeout_ms, last_error)

    async def _probe(
        self, session: aiohttp.ClientSession, url: str, timeout: float
    ) -> int:
        """Issue a single bounded GET and return its status code."""
        async with session.get(
            url, timeout=aiohttp.ClientTimeout(total=timeout), allow_redirects=False
        ) as response:
            await response.read()
            return response.status
