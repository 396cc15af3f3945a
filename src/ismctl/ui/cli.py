# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from ismctl.app import check_targets, govern_targets, load_config, plan_targets
from ismctl.config import ConfigurationError, configure_logging
from ismctl.domain.model import ConfigValidationError, format_path
from ismctl.domain.reconciliation.report import (
    format_table,
    outcome_rows,
    plan_rows,
    summarize,
    violation_rows,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_VALIDATION = 2
EXIT_VIOLATIONS = 3
EXIT_APPLY_FAILED = 4


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile deployed security modules")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("check", "Report violations of the desired config"),
        ("plan", "Print the operations that would converge each target"),
        ("govern", "Apply the operations converging each target"),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument(
            "--config",
            type=str,
            required=True,
            help="Path to the JSON desired-state config file",
        )
        command.add_argument(
            "--target",
            type=str,
            help="Restrict the run to one target (defaults to every active target)",
        )

    govern = subparsers.choices["govern"]
    govern.add_argument(
        "--dry-run",
        action="store_true",
        help="Apply against a disposable fork of the observed state",
    )
    govern.add_argument(
        "--as-signer",
        type=str,
        help="Impersonate this address on the fork (implies --dry-run)",
    )
    govern.add_argument(
        "--verify",
        action="store_true",
        help="Re-read applied targets and confirm they converged",
    )

    return parser.parse_args(list(argv))


def _run_check(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if args.target is not None:
        config.target(args.target)
    checker = check_targets(config, target=args.target)
    table = format_table(violation_rows(checker.violations))
    if table:
        print(table)
    for failure in checker.read_failures.values():
        print(f"unreadable: {failure}")
    if checker.violations or checker.read_failures:
        return EXIT_VIOLATIONS
    print("No violations found")
    return EXIT_OK


def _run_plan(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if args.target is not None:
        config.target(args.target)
    results = plan_targets(config, target=args.target)
    divergent = False
    for name, result in sorted(results.items()):
        if result.plan is None:
            print(f"{name}: {result.status}" + (f" ({result.error})" if result.error else ""))
            divergent = divergent or result.error is not None
            continue
        divergent = True
        print(f"{name}: {len(result.plan)} operations")
        print(format_table(plan_rows(result.plan)))
        for path in result.plan.skipped:
            print(f"  skipped {format_path(path)}: domain outside the declared universe")
    return EXIT_VIOLATIONS if divergent else EXIT_OK


def _run_govern(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if args.target is not None:
        config.target(args.target)
    result = govern_targets(
        config,
        target=args.target,
        dry_run=args.dry_run,
        as_signer=args.as_signer,
        verify=args.verify,
    )
    for target in result.targets.values():
        table = format_table(outcome_rows(target))
        if table:
            print(table)
    print(summarize(result))
    if result.failure_count:
        return EXIT_APPLY_FAILED
    if any(target.unremediated or target.converged is False for target in result.targets.values()):
        return EXIT_VIOLATIONS
    return EXIT_OK


_COMMANDS = {
    "check": _run_check,
    "plan": _run_plan,
    "govern": _run_govern,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging(verbose=parsed_args.verbose)
        code = _COMMANDS[parsed_args.command](parsed_args)
    except (ConfigValidationError, ConfigurationError, ValueError):
        log.exception("Configuration error")
        sys.exit(EXIT_VALIDATION)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(EXIT_FATAL)
    sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
