"""CLI entry point for the Blossom conformance runner."""

import argparse
import asyncio
import logging
import os
import shutil
import sys
from collections.abc import Sequence
from pathlib import Path

from testcontainers.core import testcontainers_config

from blossom_conformance.config_loader import (
    load_root_config,
    load_target_configs,
    select_targets,
)
from blossom_conformance.constants import (
    DEFAULT_ARTIFACTS_DIR,
    DEFAULT_ROOT_CONFIG,
    ENV_ARTIFACTS_DIR,
    SEPARATOR_LENGTH,
)
from blossom_conformance.environment import resolve_runtime_environment
from blossom_conformance.errors import ConfigurationError, SelfCheckError
from blossom_conformance.executor import DEFAULT_SELF_CHECK_PATHS, TestExecutor
from blossom_conformance.lifecycle import TargetController
from blossom_conformance.orchestrator import ConformanceOrchestrator, RunSummary
from blossom_conformance.strategies.processes import run_command
from blossom_conformance.suite.catalog import CATALOG, covered_capabilities

MINIMUM_PYTHON = (3, 12)
DOCKER_VERSION_TIMEOUT = 10.0

STATUS_SYMBOLS = {
    "pass": "✅",
    "pass-with-failures": "❌",
    "error": "❗",
}


def log_results_summary(log: logging.Logger, summary: RunSummary) -> None:
    """Log a formatted summary of every target of a run."""
    log.info("=" * SEPARATOR_LENGTH)
    log.info("Conformance Results Summary (run %s):", summary.run_id)
    log.info("=" * SEPARATOR_LENGTH)

    for outcome in summary.outcomes:
        status = "pass" if outcome.summary.failed == 0 else "pass-with-failures"
        log.info(
            "%s %s: %d passed, %d failed, %d skipped (%.2fs)",
            STATUS_SYMBOLS[status],
            outcome.target,
            outcome.summary.passed,
            outcome.summary.failed,
            outcome.summary.skipped,
            outcome.summary.duration_ms / 1000,
        )
        log.info("  Results: %s", outcome.path)

    for target, reason in summary.failures.items():
        log.info("%s %s: %s", STATUS_SYMBOLS["error"], target, reason)

    log.info(
        "Completed %d of %d target(s); artifacts in %s",
        len(summary.outcomes),
        summary.configured,
        summary.run_dir,
    )


async def run(
    config_path: Path,
    artifacts_dir: Path,
    target_name: str | None = None,
    all_targets: bool = False,
    self_check: bool = True,
    self_check_paths: Sequence[Path] = DEFAULT_SELF_CHECK_PATHS,
) -> int:
    """Run the conformance suite against the selected targets and return exit code."""
    log = logging.getLogger("blossom_conformance")

    log.info("Loading configuration: %s", config_path)
    root = await load_root_config(config_path)
    selected = select_targets(root, target_name, all_targets=all_targets)
    log.info("Selected target(s): %s", ", ".join(target.name for target in selected))
    configs = await load_target_configs(config_path, selected)

    environment = resolve_runtime_environment()
    orchestrator = ConformanceOrchestrator(
        controller=TargetController(environment=environment),
        executor=TestExecutor(
            environment=environment,
            config_path=config_path,
            self_check_paths=self_check_paths,
        ),
        artifacts_root=artifacts_dir,
        self_check=self_check,
    )
    summary = await orchestrator.run_targets(configs)

    log_results_summary(log, summary)
    return 0 if summary.successful else 1


def list_capabilities() -> int:
    """Print the capability catalogue of the bundled suite."""
    width = max(len(entry.capability) for entry in CATALOG)
    for entry in CATALOG:
        coverage = ", ".join(entry.modules) if entry.modules else "not covered"
        kind = "core" if entry.core else "optional"
        print(f"{entry.capability:<{width}}  {kind:<8}  {entry.description}")
        print(f"{'':<{width}}  {'':<8}  tests: {coverage}")
    print(f"{len(covered_capabilities())} of {len(CATALOG)} capabilities covered")
    return 0


async def doctor(config_path: Path) -> int:
    """Check that the host can run conformance targets and return exit code."""
    checks: list[tuple[bool, str]] = []

    python_ok = sys.version_info >= MINIMUM_PYTHON
    version = ".".join(str(part) for part in sys.version_info[:3])
    checks.append((python_ok, f"Python {version}"))

    environment = resolve_runtime_environment()
    checks.append(
        (
            environment.docker_host is not None,
            f"Docker host: {environment.docker_host or 'not detected'}",
        )
    )

    docker = shutil.which("docker")
    if docker is None:
        checks.append((False, "Docker CLI not found on PATH"))
    else:
        try:
            code, output = await run_command(
                [docker, "version", "--format", "{{.Server.Version}}"],
                env=environment.child_env(),
                timeout=DOCKER_VERSION_TIMEOUT,
            )
        except (OSError, TimeoutError) as exc:
            checks.append((False, f"Docker daemon unreachable: {exc}"))
        else:
            checks.append((code == 0, f"Docker daemon: {output or 'no output'}"))

    try:
        root = await load_root_config(config_path)
        configs = await load_target_configs(config_path, root.targets)
    except ConfigurationError as exc:
        checks.append((False, str(exc)))
    else:
        names = ", ".join(config.name for config in configs) or "none"
        checks.append((True, f"Configuration {config_path}: targets {names}"))

    for ok, message in checks:
        print(f"{STATUS_SYMBOLS['pass'] if ok else STATUS_SYMBOLS['error']} {message}")
    return 0 if all(ok for ok, _ in checks) else 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        description="Run the Blossom conformance suite against server implementations"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_ROOT_CONFIG),
        help=f"Root configuration file (default: {DEFAULT_ROOT_CONFIG})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the suite against targets")
    selection = run_parser.add_mutually_exclusive_group()
    selection.add_argument("--target", help="Name of the single target to run")
    selection.add_argument(
        "--all", action="store_true", dest="all_targets", help="Run every target"
    )
    run_parser.add_argument(
        "--artifacts-dir",
        type=Path,
        default=Path(os.environ.get(ENV_ARTIFACTS_DIR, DEFAULT_ARTIFACTS_DIR)),
        help="Directory receiving run artifacts",
    )
    run_parser.add_argument(
        "--skip-self-check",
        action="store_true",
        help="Do not run the runner's own unit tests before starting targets",
    )
    run_parser.add_argument(
        "--self-check-path",
        type=Path,
        action="append",
        dest="self_check_paths",
        help="Test path for the self-check (repeatable, default: tests/unit)",
    )

    subparsers.add_parser("list", help="List the capabilities the suite knows about")
    subparsers.add_parser("doctor", help="Check the host environment")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # targets are always removed by their stop handle, so no reaper sidecar
    testcontainers_config.ryuk_disabled = True
    log = logging.getLogger("blossom_conformance")

    try:
        if args.command == "list":
            exit_code = list_capabilities()
        elif args.command == "doctor":
            exit_code = asyncio.run(doctor(args.config))
        else:
            exit_code = asyncio.run(
                run(
                    config_path=args.config,
                    artifacts_dir=args.artifacts_dir,
                    target_name=args.target,
                    all_targets=args.all_targets,
                    self_check=not args.skip_self_check,
                    self_check_paths=args.self_check_paths or DEFAULT_SELF_CHECK_PATHS,
                )
            )
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)
        exit_code = 2
    except SelfCheckError as exc:
        log.error("Self-check failed, no target was started: %s", exc)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
