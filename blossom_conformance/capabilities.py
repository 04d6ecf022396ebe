"""Capability tokens and the predicates that gate tests on them.

A capability token is a namespaced string (``core:upload``, ``bud04:mirror``)
identifying one protocol feature. Servers declare the tokens they support in
their configuration; each test declares the tokens it requires. A test runs
only when every required token is declared.

Tokens under the ``vendor:`` namespace are server-specific extensions. They are
compared as opaque strings like any other token.
"""

from collections.abc import Callable, Collection, Iterable, Sequence

type Predicate = Callable[[Collection[str]], bool]

VENDOR_PREFIX = "vendor:"

CORE_CAPABILITIES: Sequence[str] = (
    "core:health",
    "core:upload",
    "core:download",
    "core:list",
    "core:delete",
)

OPTIONAL_CAPABILITIES: Sequence[str] = (
    "http:range-requests",
    "auth:nip98",
    "media:thumbnails",
    "bud04:mirror",
    "bud05:media",
    "bud06:upload-head",
    "bud07:payments",
    "bud08:nip94",
    "bud09:report",
)

KNOWN_CAPABILITIES = frozenset((*CORE_CAPABILITIES, *OPTIONAL_CAPABILITIES))


def requires(*capabilities: str) -> Predicate:
    """Create a predicate checking that a server declares all capabilities.

    Matching is exact and case-sensitive. With no arguments the predicate is
    always true.

    Example:
        has_upload = requires("core:upload", "auth:nip98")(target.capabilities)

    """
    required = tuple(capabilities)

    def predicate(declared: Collection[str]) -> bool:
        return all(capability in declared for capability in required)

    return predicate


def is_vendor_capability(capability: str) -> bool:
    """Check whether a token belongs to the vendor extension namespace."""
    return capability.startswith(VENDOR_PREFIX)


def is_known_capability(capability: str) -> bool:
    """Check whether a token is a protocol token or a vendor extension."""
    return capability in KNOWN_CAPABILITIES or is_vendor_capability(capability)


def skip_reason(capabilities: Iterable[str]) -> str:
    """Human readable reason attached to tests skipped for missing capabilities."""
    return f"Requires capabilities: {', '.join(capabilities)}"
