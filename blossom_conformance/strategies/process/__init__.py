"""Local command start strategy module."""

from blossom_conformance.strategies.process.manifest import process_manifest
from blossom_conformance.strategies.process.strategy import ProcessStrategy

__all__ = ["ProcessStrategy", "process_manifest"]
