"""Conformance orchestrator coordinating targets through a single run."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from blossom_conformance.constants import JUNIT_FILENAME
from blossom_conformance.errors import ExecutionError, ExtractionError, StartupError
from blossom_conformance.executor import ExitClass, TestExecutor
from blossom_conformance.extractor import load_records
from blossom_conformance.lifecycle import TargetController
from blossom_conformance.models.config import ServerConfig
from blossom_conformance.models.result import RunManifest, TestRecord
from blossom_conformance.report import (
    Summary,
    summarize,
    write_feature_matrix,
    write_manifest,
    write_result_bundle,
    write_server_info,
)
from blossom_conformance.strategies.base import StartStrategy

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TargetOutcome:
    """Result of running the conformance suite against one target."""

    target: str
    status: ExitClass
    summary: Summary
    path: Path
    bundle: Path


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """What happened across all targets of a run."""

    run_id: str
    run_dir: Path
    configured: int
    outcomes: Sequence[TargetOutcome] = ()
    failures: Mapping[str, str] = field(default_factory=dict)

    @property
    def completed(self) -> Sequence[str]:
        """Names of targets that produced a result bundle."""
        return [outcome.target for outcome in self.outcomes]

    @property
    def successful(self) -> bool:
        """Whether every target completed and no test failed."""
        return not self.failures and all(
            outcome.summary.failed == 0 for outcome in self.outcomes
        )


@dataclass(frozen=True, kw_only=True)
class ConformanceOrchestrator:
    """Runs the conformance suite against targets, strictly one at a time.

    Each target is started, tested, reported and stopped before the next one
    starts. A target that cannot be started or tested is recorded as a
    failure and the run moves on; its resources are always released.
    """

    controller: TargetController
    executor: TestExecutor
    artifacts_root: Path
    self_check: bool = True

    async def run_targets(self, configs: Sequence[ServerConfig]) -> RunSummary:
        """Run the suite against every target and write the run manifest.

        Args:
            configs: Target configurations, in run order

        Returns:
            Summary of completed and failed targets

        Raises:
            ConfigurationError: If a target has no matching start strategy
            SelfCheckError: If the internal self-check failed (no target is
                started in that case)

        """
        strategies = [self.controller.strategy_for(config) for config in configs]
        if self.self_check:
            await self.executor.run_self_check()

        manifest = RunManifest.create()
        run_dir = self.artifacts_root / manifest.run_id
        log.info("Starting run %s with %d target(s)", manifest.run_id, len(configs))

        outcomes: list[TargetOutcome] = []
        failures: dict[str, str] = {}
        for config, strategy in zip(configs, strategies, strict=True):
            try:
                outcome = await self._run_target(
                    manifest.run_id, run_dir, config, strategy
                )
            except StartupError as exc:
                log.error("Failed to start target %s: %s", config.name, exc.reason)
                failures[config.name] = f"startup: {exc.reason}"
                continue
            except ExecutionError as exc:
                log.error("Test execution failed for %s: %s", config.name, exc.reason)
                failures[config.name] = f"execution: {exc.reason}"
                continue
            except Exception as exc:
                log.error(
                    "Unexpected error for target %s: %s", config.name, exc, exc_info=exc
                )
                failures[config.name] = f"error: {exc}"
                continue

            outcomes.append(outcome)
            manifest.add(config.name, outcome.bundle.relative_to(run_dir).as_posix())

        write_manifest(run_dir, manifest)
        log.info(
            "Run %s finished: %d of %d target(s) completed",
            manifest.run_id,
            len(outcomes),
            len(configs),
        )
        return RunSummary(
            run_id=manifest.run_id,
            run_dir=run_dir,
            configured=len(configs),
            outcomes=outcomes,
            failures=failures,
        )

    async def _run_target(
        self,
        run_id: str,
        run_dir: Path,
        config: ServerConfig,
        strategy: StartStrategy[Any],
    ) -> TargetOutcome:
        """Start, test, report and stop a single target."""
        target_dir = run_dir / config.name
        target = await self.controller.start(config, strategy)
        try:
            target.mark_running()
            write_server_info(target_dir, config, target.base_url)

            status = await self.executor.run(config.name, target.base_url, target_dir)
            records = await self._extract(config.name, target_dir / JUNIT_FILENAME)

            bundle = write_result_bundle(
                target_dir,
                run_id=run_id,
                config=config,
                base_url=target.base_url,
                records=records,
            )
            write_feature_matrix(target_dir, config, records)
        finally:
            await target.stop()

        summary = summarize(records)
        log.info(
            "Target %s: %d passed, %d failed, %d skipped",
            config.name,
            summary.passed,
            summary.failed,
            summary.skipped,
        )
        return TargetOutcome(
            target=config.name,
            status=status,
            summary=summary,
            path=target_dir,
            bundle=bundle,
        )

    async def _extract(self, target: str, junit_path: Path) -> Sequence[TestRecord]:
        """Extract records, degrading to an empty result when output is unusable."""
        try:
            return await load_records(junit_path)
        except ExtractionError as exc:
            log.error("Could not extract results for %s: %s", target, exc)
            return []
