"""Tests for the bounded log buffer."""

import asyncio

import pytest

from blossom_conformance.constants import MAX_LOG_ENTRIES
from blossom_conformance.strategies.logs import LogBuffer, pump_stream


def test_tags_lines_with_target() -> None:
    """Prefixes each line with the target name."""
    buffer = LogBuffer(target="acme")

    buffer.append("listening on 3000")

    assert buffer.snapshot() == ["[acme] listening on 3000"]


def test_drops_oldest_when_full() -> None:
    """Evicts the oldest line once capacity is reached."""
    buffer = LogBuffer(target="acme", capacity=3)

    for index in range(5):
        buffer.append(f"line {index}")

    assert buffer.snapshot() == ["[acme] line 2", "[acme] line 3", "[acme] line 4"]
    assert buffer.dropped == 2
    assert len(buffer) == 3


def test_default_capacity() -> None:
    """Retains MAX_LOG_ENTRIES lines by default."""
    buffer = LogBuffer(target="acme")

    for index in range(MAX_LOG_ENTRIES + 10):
        buffer.append(str(index))

    assert len(buffer) == MAX_LOG_ENTRIES
    assert buffer.snapshot()[0] == "[acme] 10"


def test_rejects_non_positive_capacity() -> None:
    """Rejects empty buffers."""
    with pytest.raises(ValueError, match="capacity"):
        LogBuffer(target="acme", capacity=0)


async def test_pump_stream_reads_until_eof() -> None:
    """Copies decoded lines from a stream into the buffer."""
    stream = asyncio.StreamReader()
    stream.feed_data(b"first\r\nsecond\n\xffthird")
    stream.feed_eof()
    buffer = LogBuffer(target="acme")

    await pump_stream(stream, buffer)

    assert buffer.snapshot() == [
        "[acme] first",
        "[acme] second",
        "[acme] �third",
    ]


async def test_pump_stream_splits_overlong_lines() -> None:
    """Stores lines longer than the limit in pieces and keeps reading."""
    stream = asyncio.StreamReader()
    stream.feed_data(b"x" * 25 + b"\nafter\n")
    stream.feed_eof()
    buffer = LogBuffer(target="acme")

    await pump_stream(stream, buffer, max_line=10)

    assert buffer.snapshot() == [
        "[acme] " + "x" * 10,
        "[acme] " + "x" * 10,
        "[acme] " + "x" * 5,
        "[acme] after",
    ]


async def test_pump_stream_reads_past_default_stream_limit() -> None:
    """Handles a single line larger than the stream reader limit."""
    stream = asyncio.StreamReader(limit=1024)
    stream.feed_data(b"y" * 5000 + b"\ndone\n")
    stream.feed_eof()
    buffer = LogBuffer(target="acme")

    await pump_stream(stream, buffer, max_line=1024)

    lines = buffer.snapshot()
    assert lines[-1] == "[acme] done"
    assert sum(line.count("y") for line in lines) == 5000
