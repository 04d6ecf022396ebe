"""Integration tests for subprocess management with real child processes."""

import asyncio

import pytest

from blossom_conformance.environment import RuntimeEnvironment
from blossom_conformance.strategies.processes import (
    run_command,
    spawn_managed,
    terminate_process,
)

IGNORE_SIGTERM = """
import signal, sys, time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
print("ready", flush=True)
time.sleep(60)
"""


async def test_captures_output_of_both_streams(
    environment: RuntimeEnvironment, python: str
) -> None:
    """Feeds stdout and stderr lines into the log buffer."""
    script = "import sys; print('out'); print('err', file=sys.stderr)"
    managed = await spawn_managed(
        "echo", [python, "-c", script], env=environment.child_env()
    )

    await managed.process.wait()
    await terminate_process(managed, grace=1.0, kill_wait=1.0)

    assert sorted(managed.logs.snapshot()) == ["[echo] err", "[echo] out"]
    assert not managed.running


async def test_escalates_to_sigkill(
    environment: RuntimeEnvironment, python: str
) -> None:
    """Kills a child that ignores SIGTERM once the grace window elapses."""
    managed = await spawn_managed(
        "stubborn", [python, "-c", IGNORE_SIGTERM], env=environment.child_env()
    )
    async with asyncio.timeout(10):
        while "[stubborn] ready" not in managed.logs.snapshot():
            await asyncio.sleep(0.05)

    await terminate_process(managed, grace=0.5, kill_wait=5.0)

    assert managed.process.returncode == -9


async def test_missing_executable(environment: RuntimeEnvironment) -> None:
    """Raises OSError for commands that do not exist."""
    with pytest.raises(OSError):
        await spawn_managed(
            "ghost", ["/nonexistent/blossom-server"], env=environment.child_env()
        )


async def test_run_command_returns_output(
    environment: RuntimeEnvironment, python: str
) -> None:
    """Returns the exit code and combined output."""
    code, output = await run_command(
        [python, "-c", "import sys; print('hello'); sys.exit(3)"],
        env=environment.child_env(),
        timeout=10.0,
    )

    assert code == 3
    assert output == "hello"


async def test_run_command_timeout(
    environment: RuntimeEnvironment, python: str
) -> None:
    """Kills commands that exceed their bound."""
    with pytest.raises(TimeoutError):
        await run_command(
            [python, "-c", "import time; time.sleep(30)"],
            env=environment.child_env(),
            timeout=0.5,
        )


LONG_LINE_THEN_CHATTER = """
import sys
sys.stdout.write("x" * 200_000)
sys.stdout.flush()
for index in range(20_000):
    print(f"line {index}")
"""


async def test_overlong_line_does_not_block_producer(
    environment: RuntimeEnvironment, python: str
) -> None:
    """Keeps draining output after a line longer than the stream limit."""
    managed = await spawn_managed(
        "chatty", [python, "-c", LONG_LINE_THEN_CHATTER], env=environment.child_env()
    )

    try:
        code = await asyncio.wait_for(managed.process.wait(), 30.0)
    finally:
        await terminate_process(managed, grace=1.0, kill_wait=5.0, drain=10.0)

    assert code == 0
    assert managed.logs.snapshot()[-1] == "[chatty] line 19999"
    assert all(task.exception() is None for task in managed.pumps)
