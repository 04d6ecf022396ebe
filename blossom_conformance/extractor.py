"""Extraction of canonical test records from JUnit XML output.

The raw output is treated as semi-structured text rather than a document:
each ``<testcase>`` is matched on its own, so a truncated file (for example
when the test runner was killed mid-write) still yields every complete test
case, and malformed fragments are skipped instead of aborting extraction.
"""

import asyncio
import bisect
import logging
import math
import re
from collections.abc import Mapping, Sequence
from pathlib import Path

from blossom_conformance.errors import ExtractionError
from blossom_conformance.models.result import TestError, TestRecord, TestStatus

log = logging.getLogger(__name__)

REQUIREMENTS_PROPERTY = "requirements"

TESTSUITE_PATTERN = re.compile(r"<testsuite\b(?P<attrs>[^>]*)>")
TESTCASE_PATTERN = re.compile(
    r"<testcase\b(?P<attrs>[^>]*?)"
    r"(?:/>|>(?P<body>(?:(?!<testcase\b).)*?)</testcase>)",
    re.DOTALL,
)
ATTRIBUTE_PATTERN = re.compile(
    r"(?P<name>[\w:.-]+)\s*=\s*(?:\"(?P<double>[^\"]*)\"|'(?P<single>[^']*)')"
)
FAILURE_PATTERN = re.compile(
    r"<(?P<tag>failure|error)\b(?P<attrs>[^>]*?)(?P<closed>/?)>"
)
SKIPPED_PATTERN = re.compile(r"<(?P<tag>skipped)\b(?P<attrs>[^>]*?)(?P<closed>/?)>")
PROPERTY_PATTERN = re.compile(r"<property\b(?P<attrs>[^>]*?)/?>")
CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)

ENTITIES: Mapping[str, str] = {
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&apos;": "'",
    "&#39;": "'",
    "&#10;": "\n",
    "&#13;": "\r",
    "&#9;": "\t",
    "&amp;": "&",
}
ENTITY_PATTERN = re.compile("|".join(re.escape(entity) for entity in ENTITIES))


def decode_entities(text: str) -> str:
    """Decode the fixed set of XML escapes in a single pass."""
    return ENTITY_PATTERN.sub(lambda match: ENTITIES[match.group(0)], text)


def decode_text(text: str) -> str:
    """Turn escaped element content into readable text.

    CDATA wrappers are stripped and their content kept verbatim; text outside
    CDATA sections has its escapes decoded.
    """
    parts: list[str] = []
    position = 0
    for match in CDATA_PATTERN.finditer(text):
        parts.append(decode_entities(text[position : match.start()]))
        parts.append(match.group(1))
        position = match.end()
    parts.append(decode_entities(text[position:]))
    return "".join(parts).strip()


def parse_attributes(raw: str) -> dict[str, str]:
    """Parse ``name="value"`` pairs, decoding escaped values."""
    return {
        match.group("name"): decode_entities(
            match.group("double")
            if match.group("double") is not None
            else match.group("single")
        )
        for match in ATTRIBUTE_PATTERN.finditer(raw)
    }


def parse_duration_ms(value: str | None) -> int:
    """Convert fractional seconds to whole milliseconds.

    Missing, unparsable, negative or non-finite values yield 0.
    """
    if value is None:
        return 0
    try:
        seconds = float(value)
    except ValueError:
        return 0
    if not math.isfinite(seconds) or seconds < 0:
        return 0
    return math.floor(seconds * 1000 + 0.5)


def _marker(
    pattern: re.Pattern[str], body: str
) -> tuple[dict[str, str], str] | None:
    """Find a marker element and return its attributes and decoded content."""
    match = pattern.search(body)
    if match is None:
        return None

    attrs = parse_attributes(match.group("attrs"))
    content = ""
    if not match.group("closed"):
        closing = body.find(f"</{match.group('tag')}>", match.end())
        if closing != -1:
            content = decode_text(body[match.end() : closing])
    return attrs, content


def _requirements(body: str) -> Sequence[str]:
    for match in PROPERTY_PATTERN.finditer(body):
        attrs = parse_attributes(match.group("attrs"))
        if attrs.get("name") == REQUIREMENTS_PROPERTY:
            return tuple(
                token.strip()
                for token in attrs.get("value", "").split(",")
                if token.strip()
            )
    return ()


def _suite_names(text: str) -> tuple[list[int], list[str]]:
    positions: list[int] = []
    names: list[str] = []
    for match in TESTSUITE_PATTERN.finditer(text):
        positions.append(match.start())
        names.append(parse_attributes(match.group("attrs")).get("name", ""))
    return positions, names


def parse_junit(text: str) -> list[TestRecord]:
    """Parse JUnit XML text into records, in document order.

    Status precedence: a failure (or error) marker makes a test failed even
    when a skip marker is also present; otherwise a skip marker makes it
    skipped; otherwise it passed.
    """
    suite_positions, suite_names = _suite_names(text)
    records: list[TestRecord] = []
    seen: set[str] = set()

    for ordinal, match in enumerate(TESTCASE_PATTERN.finditer(text), start=1):
        attrs = parse_attributes(match.group("attrs"))
        body = match.group("body") or ""

        suite_index = bisect.bisect_right(suite_positions, match.start()) - 1
        suite = suite_names[suite_index] if suite_index >= 0 else ""
        group = attrs.get("classname") or suite or "unknown"
        name = attrs.get("name")

        test_id = f"{group}#{name}" if name else f"{group}#{ordinal}"
        if test_id in seen:
            suffix = 2
            while f"{test_id}#{suffix}" in seen:
                suffix += 1
            test_id = f"{test_id}#{suffix}"
        seen.add(test_id)

        status: TestStatus = "passed"
        error: TestError | None = None
        skip: str | None = None

        if (failure := _marker(FAILURE_PATTERN, body)) is not None:
            failure_attrs, content = failure
            status = "failed"
            message = failure_attrs.get("message") or (
                content.splitlines()[0] if content else "Test failed"
            )
            error = TestError(message=message, stack=content or None)
        elif (skipped := _marker(SKIPPED_PATTERN, body)) is not None:
            skipped_attrs, content = skipped
            status = "skipped"
            skip = skipped_attrs.get("message") or content or "Skipped"

        records.append(
            TestRecord(
                id=test_id,
                title=name or f"Test {ordinal}",
                file=attrs.get("file") or group,
                status=status,
                duration_ms=parse_duration_ms(attrs.get("time")),
                requirements=_requirements(body),
                error=error,
                skip_reason=skip,
            )
        )

    return records


def read_records(path: Path) -> list[TestRecord]:
    """Read and parse a JUnit XML file.

    Raises:
        ExtractionError: If the file is missing or holds no test suite at all

    """
    if not path.is_file():
        raise ExtractionError(f"Raw test output not found: {path}")

    text = path.read_text(encoding="utf-8", errors="replace")
    records = parse_junit(text)
    if not records and not TESTSUITE_PATTERN.search(text):
        raise ExtractionError(f"No test suites found in {path}")

    log.info("Extracted %d test record(s) from %s", len(records), path)
    return records


async def load_records(path: Path) -> list[TestRecord]:
    """Read and parse a JUnit XML file without blocking the event loop."""
    return await asyncio.to_thread(read_records, path)
