"""Report emission: feature matrix, result bundle, server info and manifest.

Every writer is deterministic: identical inputs produce byte-identical files,
so re-running the emitter on the same records leaves artifacts unchanged.
"""

import json
import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from blossom_conformance.constants import (
    FEATURE_MATRIX_FILENAME,
    MANIFEST_FILENAME,
    RESULTS_FILENAME,
    SERVER_INFO_FILENAME,
)
from blossom_conformance.models.config import ServerConfig
from blossom_conformance.models.result import RunManifest, TestRecord

log = logging.getLogger(__name__)

SUPPORTED_SYMBOL = "✅"
UNSUPPORTED_SYMBOL = "❌"


@dataclass(frozen=True, kw_only=True)
class CoverageRow:
    """One capability referenced by the suite and whether the target has it."""

    capability: str
    supported: bool
    notes: str = ""


@dataclass(frozen=True, kw_only=True)
class Summary:
    """Aggregate counts of a target's test records."""

    passed: int
    failed: int
    skipped: int
    duration_ms: int


def summarize(records: Sequence[TestRecord]) -> Summary:
    """Count records per status and sum their durations."""
    return Summary(
        passed=sum(1 for record in records if record.status == "passed"),
        failed=sum(1 for record in records if record.status == "failed"),
        skipped=sum(1 for record in records if record.status == "skipped"),
        duration_ms=sum(record.duration_ms for record in records),
    )


def coverage_rows(
    records: Sequence[TestRecord], declared: Collection[str]
) -> Sequence[CoverageRow]:
    """Build one row per capability required by any record, sorted by token."""
    referenced = {token for record in records for token in record.requirements}
    return [
        CoverageRow(capability=token, supported=token in declared)
        for token in sorted(referenced)
    ]


def render_feature_matrix(
    target: str, declared: Sequence[str], records: Sequence[TestRecord]
) -> str:
    """Render the Markdown capability coverage table of a target."""
    lines = [
        "# Feature Matrix",
        "",
        f"**Target**: {target}",
        f"**Capabilities Declared**: {len(declared)}",
        "",
        "| Capability | Supported | Notes |",
        "| --- | --- | --- |",
    ]
    for row in coverage_rows(records, declared):
        symbol = SUPPORTED_SYMBOL if row.supported else UNSUPPORTED_SYMBOL
        lines.append(f"| {row.capability} | {symbol} | {row.notes} |")
    return "\n".join(lines) + "\n"


def record_to_dict(record: TestRecord) -> dict[str, Any]:
    """Serialise a record with camelCase keys, omitting absent details."""
    data: dict[str, Any] = {
        "id": record.id,
        "title": record.title,
        "file": record.file,
        "status": record.status,
        "durationMs": record.duration_ms,
        "requirements": list(record.requirements),
    }
    if record.skip_reason is not None:
        data["skipReason"] = record.skip_reason
    if record.error is not None:
        error: dict[str, Any] = {"message": record.error.message}
        if record.error.stack is not None:
            error["stack"] = record.error.stack
        data["error"] = error
    return data


def build_result_bundle(
    *,
    run_id: str,
    config: ServerConfig,
    base_url: str,
    records: Sequence[TestRecord],
) -> dict[str, Any]:
    """Assemble the machine-readable result document of a target."""
    summary = summarize(records)
    bundle: dict[str, Any] = {
        "runId": run_id,
        "target": config.name,
    }
    if config.spec_version is not None:
        bundle["specVersion"] = config.spec_version
    bundle |= {
        "baseUrl": base_url,
        "capabilities": list(config.capabilities),
        "summary": {
            "passed": summary.passed,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "durationMs": summary.duration_ms,
        },
        "tests": [record_to_dict(record) for record in records],
    }
    return bundle


def build_server_info(config: ServerConfig, base_url: str) -> dict[str, Any]:
    """Describe a target for humans and tooling. Secrets are never included."""
    info: dict[str, Any] = {
        "name": config.name,
        "baseUrl": base_url,
        "start": config.start.descriptor(),
    }
    if config.spec_version is not None:
        info["specVersion"] = config.spec_version
    info["capabilities"] = list(config.capabilities)
    info["limits"] = dict(config.limits)
    return info


def _write_text(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    log.debug("Wrote %s", path)
    return path


def _write_json(path: Path, payload: Any) -> Path:
    return _write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def write_feature_matrix(
    target_dir: Path, config: ServerConfig, records: Sequence[TestRecord]
) -> Path:
    """Write ``feature-matrix.md`` into a target's artifact directory."""
    content = render_feature_matrix(config.name, config.capabilities, records)
    return _write_text(target_dir / FEATURE_MATRIX_FILENAME, content)


def write_result_bundle(
    target_dir: Path,
    *,
    run_id: str,
    config: ServerConfig,
    base_url: str,
    records: Sequence[TestRecord],
) -> Path:
    """Write ``results.json`` into a target's artifact directory."""
    bundle = build_result_bundle(
        run_id=run_id, config=config, base_url=base_url, records=records
    )
    return _write_json(target_dir / RESULTS_FILENAME, bundle)


def write_server_info(target_dir: Path, config: ServerConfig, base_url: str) -> Path:
    """Write ``server-info.json`` into a target's artifact directory."""
    return _write_json(
        target_dir / SERVER_INFO_FILENAME, build_server_info(config, base_url)
    )


def write_manifest(run_dir: Path, manifest: RunManifest) -> Path:
    """Write the run-level ``manifest.json`` indexing completed targets."""
    payload = {
        "runId": manifest.run_id,
        "createdAt": manifest.created_at.isoformat(timespec="milliseconds"),
        "targets": [{"id": entry.id, "path": entry.path} for entry in manifest.targets],
    }
    return _write_json(run_dir / MANIFEST_FILENAME, payload)
