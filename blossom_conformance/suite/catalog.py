"""Catalogue of the capabilities exercised by the bundled suite."""

from collections.abc import Sequence
from dataclasses import dataclass

from blossom_conformance.capabilities import CORE_CAPABILITIES


@dataclass(frozen=True, kw_only=True)
class CatalogEntry:
    """A protocol capability and the suite modules that exercise it."""

    capability: str
    description: str
    modules: Sequence[str] = ()

    @property
    def core(self) -> bool:
        """Whether every conforming server is expected to support it."""
        return self.capability in CORE_CAPABILITIES


CATALOG: Sequence[CatalogEntry] = (
    CatalogEntry(
        capability="core:health",
        description="Server answers GET / and sets permissive CORS headers",
        modules=("test_health", "test_cors"),
    ),
    CatalogEntry(
        capability="core:upload",
        description="PUT /upload stores a blob and returns its descriptor",
        modules=("test_upload_download", "test_range_requests"),
    ),
    CatalogEntry(
        capability="core:download",
        description="GET and HEAD /<sha256> serve stored blobs",
        modules=("test_upload_download",),
    ),
    CatalogEntry(
        capability="core:list",
        description="GET /list/<pubkey> lists blobs of an uploader",
    ),
    CatalogEntry(
        capability="core:delete",
        description="DELETE /<sha256> removes a blob",
    ),
    CatalogEntry(
        capability="http:range-requests",
        description="Range requests are answered with 206 Partial Content",
        modules=("test_range_requests",),
    ),
    CatalogEntry(
        capability="auth:nip98",
        description="Requests are authorized with signed Nostr events",
    ),
    CatalogEntry(
        capability="media:thumbnails",
        description="Server produces thumbnails for uploaded media",
    ),
    CatalogEntry(
        capability="bud04:mirror", description="PUT /mirror copies a remote blob"
    ),
    CatalogEntry(capability="bud05:media", description="PUT /media optimizes media"),
    CatalogEntry(
        capability="bud06:upload-head",
        description="HEAD /upload reports upload requirements",
    ),
    CatalogEntry(capability="bud07:payments", description="Paid uploads and downloads"),
    CatalogEntry(capability="bud08:nip94", description="Descriptors carry NIP-94 tags"),
    CatalogEntry(capability="bud09:report", description="PUT /report flags a blob"),
)


def covered_capabilities() -> Sequence[str]:
    """Capabilities exercised by at least one bundled suite module."""
    return [entry.capability for entry in CATALOG if entry.modules]
