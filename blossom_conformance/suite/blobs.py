"""Blob helpers shared by the conformance tests."""

import hashlib
import json
import re
from dataclasses import dataclass
from typing import Any

import aiohttp

HASH_IN_URL = re.compile(r"([a-f0-9]{64})(?:\.[a-z0-9]+)?$", re.IGNORECASE)
DEFAULT_BLOB = b"Conformance blob fixture"


@dataclass(frozen=True, kw_only=True)
class UploadResult:
    """Outcome of uploading a blob."""

    hash: str
    data: bytes
    status: int
    descriptor: dict[str, Any] | None = None


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


async def upload_blob(
    http: aiohttp.ClientSession,
    url: str,
    data: bytes = DEFAULT_BLOB,
    *,
    content_type: str = "application/octet-stream",
) -> UploadResult:
    """PUT a blob and parse the returned descriptor when there is one."""
    headers = {"Content-Type": content_type}
    async with http.put(url, data=data, headers=headers) as response:
        body = await response.text()

    try:
        descriptor = json.loads(body)
    except json.JSONDecodeError:
        descriptor = None

    return UploadResult(
        hash=sha256_hex(data),
        data=data,
        status=response.status,
        descriptor=descriptor if isinstance(descriptor, dict) else None,
    )


def extract_hash_from_url(url: str) -> str | None:
    """Return the sha256 a blob URL points at, ignoring any extension."""
    match = HASH_IN_URL.search(url)
    return match.group(1).lower() if match else None
