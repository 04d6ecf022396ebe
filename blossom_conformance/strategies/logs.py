"""Bounded capture of target process output."""

import asyncio
import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field

from blossom_conformance.constants import MAX_LINE_BYTES, MAX_LOG_ENTRIES

log = logging.getLogger(__name__)


@dataclass(kw_only=True)
class LogBuffer:
    """Fixed-capacity ring buffer of output lines tagged with the target name.

    Once full, each new line evicts the oldest one, so memory stays bounded
    for noisy or long-running targets.
    """

    target: str
    capacity: int = MAX_LOG_ENTRIES
    dropped: int = 0
    _lines: deque[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError(f"Log buffer capacity must be positive: {self.capacity}")
        self._lines = deque(maxlen=self.capacity)

    def append(self, line: str) -> None:
        """Store a line, evicting the oldest one when at capacity."""
        if len(self._lines) == self.capacity:
            self.dropped += 1
        self._lines.append(f"[{self.target}] {line}")

    def snapshot(self) -> Sequence[str]:
        """Return the retained lines, oldest first."""
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


async def pump_stream(
    stream: asyncio.StreamReader,
    buffer: LogBuffer,
    level: int = logging.DEBUG,
    max_line: int = MAX_LINE_BYTES,
) -> None:
    """Copy lines from a subprocess stream into a buffer until EOF.

    The stream is read in chunks rather than by line, so output without line
    breaks keeps flowing: a line longer than ``max_line`` bytes is stored in
    ``max_line`` sized pieces.
    """
    pending = b""
    while chunk := await stream.read(max_line):
        *lines, pending = (pending + chunk).split(b"\n")
        for line in lines:
            _store(buffer, line, level)
        while len(pending) >= max_line:
            _store(buffer, pending[:max_line], level)
            pending = pending[max_line:]
    if pending:
        _store(buffer, pending, level)


def _store(buffer: LogBuffer, raw: bytes, level: int) -> None:
    text = raw.decode(errors="replace").rstrip("\r")
    buffer.append(text)
    log.log(level, "[%s] %s", buffer.target, text)
