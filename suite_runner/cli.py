"""CLI entry point for the test suite runner."""

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from suite_runner.models.config import RunConfiguration
from suite_runner.models.suite import CATEGORY_ORDER, Category
from suite_runner.runner import Runner
from suite_runner.settings_loader import load_run_configuration

EXIT_INTERRUPTED = 130

# CLI options that map one to one onto RunConfiguration fields.
CONFIG_OPTIONS = (
    "categories",
    "mode",
    "jobs",
    "coverage",
    "verbose",
    "debug",
    "cleanup",
    "report_format",
    "timeout",
    "tests_root",
    "reports_dir",
)

TRUE_VALUES = {"1", "true", "yes", "on"}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Options left unset stay None so that values from settings files and
    environment variables are kept.
    """
    parser = argparse.ArgumentParser(
        description="Run categorized test suites and report their results",
        epilog=(
            "examples:\n"
            "  %(prog)s                          run all tests\n"
            "  %(prog)s --unit --verbose         run unit tests with output\n"
            "  %(prog)s --integration --parallel run integration tests in parallel\n"
            "  %(prog)s --coverage --report html run with coverage and HTML report"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    for category in CATEGORY_ORDER:
        parser.add_argument(
            f"--{category}",
            dest="categories",
            action="store_const",
            const=(category,),
            help=f"Run only {category} tests",
        )
    parser.add_argument(
        "--all",
        dest="categories",
        action="store_const",
        const=CATEGORY_ORDER,
        help="Run all tests (default)",
    )
    parser.add_argument(
        "--parallel",
        dest="mode",
        action="store_const",
        const="parallel",
        help="Run the suites of a category in parallel",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        help="Maximum number of suites running at once with --parallel",
    )
    parser.add_argument(
        "--coverage",
        action="store_const",
        const=True,
        help="Enable coverage reporting",
    )
    parser.add_argument(
        "--verbose",
        action="store_const",
        const=True,
        help="Show the output of successful suites too",
    )
    parser.add_argument(
        "--debug",
        action="store_const",
        const=True,
        help="Enable debug output",
    )
    parser.add_argument(
        "--cleanup",
        dest="cleanup",
        action="store_const",
        const=True,
        help="Clean up test artifacts after run (default)",
    )
    parser.add_argument(
        "--no-cleanup",
        dest="cleanup",
        action="store_const",
        const=False,
        help="Keep test artifacts after run",
    )
    parser.add_argument(
        "--report",
        dest="report_format",
        metavar="FORMAT",
        help="Report format: console, junit, html (default: console)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Per-suite timeout in seconds (default: 300)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML settings file with run configuration",
    )
    parser.add_argument(
        "--tests-dir",
        dest="tests_root",
        type=Path,
        help="Directory holding the unit, integration and validation dirs",
    )
    parser.add_argument(
        "--reports-dir",
        type=Path,
        help="Directory for report artifacts",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        help="Project whose configuration files are snapshotted",
    )
    return parser


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Configuration values taken from environment variables."""
    overrides: dict[str, Any] = {}
    if "TEST_PARALLEL" in env:
        parallel = _is_true(env["TEST_PARALLEL"])
        overrides["mode"] = "parallel" if parallel else "sequential"
    if "TEST_TIMEOUT" in env:
        overrides["timeout"] = env["TEST_TIMEOUT"]
    if "REPORT_FORMAT" in env:
        overrides["report_format"] = env["REPORT_FORMAT"]
    for key, name in (
        ("cleanup", "TEST_CLEANUP"),
        ("coverage", "COVERAGE_ENABLED"),
        ("verbose", "TEST_VERBOSE"),
        ("debug", "TEST_DEBUG"),
    ):
        if name in env:
            overrides[key] = _is_true(env[name])

    selected: list[Category] = [
        category
        for category in CATEGORY_ORDER
        if _is_true(env.get(f"RUN_{category.upper()}", "true"))
    ]
    if any(f"RUN_{category.upper()}" in env for category in CATEGORY_ORDER):
        overrides["categories"] = selected
    return overrides


def build_configuration(
    args: argparse.Namespace,
    env: Mapping[str, str],
    base: RunConfiguration | None = None,
) -> RunConfiguration:
    """Merge settings file, environment variables and CLI flags, in that order."""
    data: dict[str, Any] = base.model_dump() if base else {}
    data.update(env_overrides(env))
    data.update(
        {
            option: value
            for option in CONFIG_OPTIONS
            if (value := getattr(args, option)) is not None
        }
    )
    if args.project_root is not None:
        data["environment"] = {
            **data.get("environment", {}),
            "project_root": args.project_root,
        }
    return RunConfiguration.model_validate(data)


def log_configuration(log: logging.Logger, config: RunConfiguration) -> None:
    """Log the effective configuration of the run."""
    log.info("Starting test suite run")
    log.info("Categories: %s", ", ".join(config.categories) or "none")
    log.info(
        "Mode: %s, timeout: %gs, report: %s, cleanup: %s",
        config.mode,
        config.timeout,
        config.report_format,
        config.cleanup,
    )


async def run(config: RunConfiguration) -> int:
    """Run the configured tests and return exit code."""
    log = logging.getLogger("suite_runner")
    log_configuration(log, config)

    task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if task is not None:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    try:
        return await Runner(config).run()
    finally:
        loop.remove_signal_handler(signal.SIGTERM)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        base = None
        if args.config is not None:
            base = asyncio.run(load_run_configuration(args.config))
        config = build_configuration(args, os.environ, base)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        exit_code = asyncio.run(run(config))
    except (KeyboardInterrupt, asyncio.CancelledError):
        logging.getLogger("suite_runner").error("Test run interrupted")
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


def _is_true(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


if __name__ == "__main__":  # pragma: no cover
    main()
