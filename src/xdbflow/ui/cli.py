from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from xdbflow.app import run_inactive_purge, run_single_entity_walkthrough
from xdbflow.config import configure_logging, get_orchestration_config
from xdbflow.domain.model import ExternalKey

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got {value}")
    return number


def _external_key(value: str) -> ExternalKey:
    try:
        key = ExternalKey.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    if key.is_blank:
        raise argparse.ArgumentTypeError(f"expected a non-blank source and value, got {value!r}")
    return key


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Walk through xDB entity workflows")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log poll iterations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    onboard = subparsers.add_parser(
        "onboard",
        help="Create, update, track, search for and delete a single entity",
    )
    key_options = onboard.add_mutually_exclusive_group()
    key_options.add_argument(
        "--key-value",
        type=str,
        help="External key value for the entity (defaults to a generated one)",
    )
    key_options.add_argument(
        "--key",
        type=_external_key,
        metavar="SOURCE:VALUE",
        help="Full external key, overriding the configured key source",
    )

    purge = subparsers.add_parser(
        "purge",
        help="Create entities with old activity, wait for the index, then delete them",
    )
    purge.add_argument(
        "--count",
        type=_positive_int,
        default=5,
        help="Number of inactive entities to create (default: %(default)s)",
    )
    purge.add_argument(
        "--max-attempts",
        type=_positive_int,
        help="Maximum number of index queries before giving up (defaults to config)",
    )
    purge.add_argument(
        "--poll-interval",
        type=_non_negative_float,
        help="Seconds to wait between index queries (defaults to config)",
    )

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "onboard":
            result = run_single_entity_walkthrough(parsed_args.key_value, key=parsed_args.key)
            log.info(
                "Walkthrough finished: entity=%s, stages=%s, discovered=%s",
                result.deleted,
                ",".join(result.stages),
                len(result.discovered.expanded) if result.discovered is not None else 0,
            )
        elif parsed_args.command == "purge":
            orchestration = get_orchestration_config()
            if parsed_args.poll_interval is not None:
                orchestration = replace(
                    orchestration, poll_interval_seconds=parsed_args.poll_interval
                )
            run_inactive_purge(
                parsed_args.count,
                orchestration=orchestration,
                max_attempts=parsed_args.max_attempts,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


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
