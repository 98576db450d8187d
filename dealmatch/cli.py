"""Operator entry point: run one resolution batch and print its summary."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime

from dealmatch.core.exceptions import ConfigurationError, ResolutionSetupError
from dealmatch.core.startup import bootstrap
from dealmatch.resolution.batch_runner import run_resolution_batch

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SETUP_ERROR = 2


def _iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dealmatch-resolve",
        description="Resolve legacy deals into canonical companies and contacts.",
    )
    parser.add_argument(
        "--limit", type=int, default=None, help="Maximum number of deals to process; omit for a full pass."
    )
    parser.add_argument(
        "--min-created-at",
        type=_iso_datetime,
        default=None,
        help="Only process deals created at or after this ISO-8601 timestamp (UTC when no offset).",
    )
    parser.add_argument("--dry-run", action="store_true", help="Run the full pipeline but persist nothing.")
    parser.add_argument(
        "--no-maintenance",
        action="store_true",
        help="Keep audit listeners active during the run.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        bootstrap()
        summary = run_resolution_batch(
            limit=args.limit,
            min_created_at=args.min_created_at,
            dry_run=args.dry_run,
            maintenance=not args.no_maintenance,
        )
    except (ConfigurationError, ResolutionSetupError, RuntimeError) as exc:
        logger.error("cli.setup_failed", extra={"event": "cli.setup_failed", "reason": str(exc)})
        print(json.dumps({"status": "setup_error", "detail": str(exc)}), file=sys.stderr)
        return EXIT_SETUP_ERROR

    print(json.dumps(summary.as_dict(), indent=2, default=str))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
