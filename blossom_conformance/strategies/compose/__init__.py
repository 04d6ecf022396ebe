"""docker compose start strategy module."""

from blossom_conformance.strategies.compose.manifest import compose_manifest
from blossom_conformance.strategies.compose.strategy import ComposeStrategy

__all__ = ["ComposeStrategy", "compose_manifest"]
