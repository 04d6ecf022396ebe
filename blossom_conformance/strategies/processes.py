"""Subprocess helpers shared by the process and compose strategies."""

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from blossom_conformance.errors import CleanupError
from blossom_conformance.strategies.logs import LogBuffer, pump_stream

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class ManagedProcess:
    """A long-lived child process whose output feeds a log buffer."""

    name: str
    process: asyncio.subprocess.Process
    logs: LogBuffer
    pumps: Sequence[asyncio.Task[None]] = field(default_factory=list, repr=False)

    @property
    def pid(self) -> int:
        """Operating system process identifier."""
        return self.process.pid

    @property
    def running(self) -> bool:
        """Whether the process has not exited yet."""
        return self.process.returncode is None


async def spawn_managed(
    name: str,
    argv: Sequence[str],
    *,
    env: Mapping[str, str],
    cwd: str | os.PathLike[str] | None = None,
    logs: LogBuffer | None = None,
    level: int = logging.DEBUG,
) -> ManagedProcess:
    """Spawn a process with both output streams pumped into a log buffer.

    Raises:
        OSError: If the executable cannot be found or spawned

    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        cwd=cwd,
        env=dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    buffer = logs or LogBuffer(target=name)
    assert process.stdout is not None and process.stderr is not None
    pumps = [
        asyncio.create_task(pump_stream(process.stdout, buffer, level)),
        asyncio.create_task(pump_stream(process.stderr, buffer, level)),
    ]
    log.info("Spawned %s (pid=%d): %s", name, process.pid, " ".join(argv))
    return ManagedProcess(name=name, process=process, logs=buffer, pumps=pumps)


async def terminate_process(
    managed: ManagedProcess,
    *,
    grace: float,
    kill_wait: float,
    drain: float = 1.0,
) -> None:
    """Stop a process with SIGTERM, escalating to SIGKILL after ``grace``.

    Raises:
        CleanupError: If the process is still alive after SIGKILL

    """
    process = managed.process
    try:
        if process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), grace)
            except TimeoutError:
                log.warning(
                    "%s (pid=%d) did not respond to SIGTERM, sending SIGKILL",
                    managed.name,
                    managed.pid,
                )
                process.kill()
                try:
                    await asyncio.wait_for(process.wait(), kill_wait)
                except TimeoutError as exc:
                    raise CleanupError(
                        f"{managed.name} (pid={managed.pid}) survived SIGKILL"
                    ) from exc
    except ProcessLookupError:
        log.debug("%s already exited", managed.name)
    finally:
        await drain_pumps(managed.pumps, drain)

    log.info("%s exited with code %s", managed.name, process.returncode)


async def drain_pumps(pumps: Sequence[asyncio.Task[None]], timeout: float) -> None:
    """Give output pumps a moment to flush, then cancel stragglers."""
    if not pumps:
        return
    done, pending = await asyncio.wait(pumps, timeout=timeout)
    for task in done:
        if not task.cancelled() and (exc := task.exception()) is not None:
            log.warning("Output pump failed: %r", exc)
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)


async def run_command(
    argv: Sequence[str],
    *,
    env: Mapping[str, str],
    cwd: str | os.PathLike[str] | None = None,
    timeout: float,
) -> tuple[int, str]:
    """Run a short-lived command to completion within ``timeout``.

    Returns:
        Exit code and combined output

    Raises:
        TimeoutError: If the command did not finish in time (it is killed)
        OSError: If the executable cannot be spawned

    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        cwd=cwd,
        env=dict(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout)
    except TimeoutError:
        if process.returncode is None:
            process.kill()
        try:
            await asyncio.wait_for(process.wait(), timeout)
        except TimeoutError:
            log.warning("%s (pid=%d) did not exit after SIGKILL", argv[0], process.pid)
        raise
    return process.returncode or 0, stdout.decode(errors="replace").strip()
