"""
Command line entry point.

Usage:
    job-breaker --command "python make_tasks.py" --queue ezq-input
    job-breaker --job-file job.json --repeat 2 --repeat-mode inline
    python -m job_breaker --job-document '{"tasks": [{"n": 1}]}' --dry-run

Flags override JOB_BREAKER_* / AWS_* environment values (and .env).
The process exits with the run's exit status.

Dependencies: argparse, python-dotenv, pydantic
System role: Process boundary for the job breaker
"""

import argparse
import json
import logging
import sys
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from job_breaker import __version__
from job_breaker.configs.breaker import BreakerSettings, RepeatMode
from job_breaker.configs.settings import get_settings
from job_breaker.core.job_breaker import JobBreaker
from job_breaker.core.models import EXIT_FAILURE, EXIT_INTERRUPTED
from job_breaker.observability.logger import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="job-breaker",
        description="Break a job into tasks and enqueue them for EZQ workers.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--command", help="Generator command speaking the task protocol")
    source.add_argument("--job-document", help='Literal JSON job: {"tasks": [...]}')
    source.add_argument("--job-file", help="Path to a JSON job document")

    parser.add_argument("--queue", dest="queue_name", help="Initial destination queue")
    parser.add_argument(
        "--result-queue", dest="result_queue_name", help="Result queue for the preamble"
    )
    parser.add_argument("--preamble", help="Run preamble as a JSON object")
    parser.add_argument(
        "--repeat", dest="repeat_count", type=int, help="Additional copies of every task"
    )
    parser.add_argument(
        "--repeat-mode",
        choices=[mode.value for mode in RepeatMode],
        help="Replicate each task immediately (inline) or replay the whole set (collection)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Print messages to stdout instead of calling SQS/S3",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides = {
        name: getattr(args, name)
        for name in (
            "command",
            "job_document",
            "job_file",
            "queue_name",
            "result_queue_name",
            "repeat_count",
            "repeat_mode",
            "dry_run",
        )
        if getattr(args, name) is not None
    }
    if args.preamble is not None:
        try:
            overrides["preamble"] = json.loads(args.preamble)
        except json.JSONDecodeError as e:
            raise ValueError(f"--preamble is not valid JSON: {e}") from e
    # A source given on the command line replaces any source from the environment
    if {"command", "job_document", "job_file"} & overrides.keys():
        for name in ("command", "job_document", "job_file"):
            overrides.setdefault(name, None)
    return overrides


def resolve_settings(args: argparse.Namespace, base: BreakerSettings) -> BreakerSettings:
    """
    Apply command line overrides to environment settings.

    Args:
        args: Parsed arguments
        base: Settings loaded from the environment

    Returns:
        BreakerSettings: Validated run settings

    Raises:
        ValueError: Invalid override (ValidationError included)
    """
    overrides = _cli_overrides(args)
    return BreakerSettings.model_validate({**base.model_dump(), **overrides})


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging(args.log_level or logging.INFO)
        logger.error("%s:main - Invalid environment configuration: %s", __name__, e)
        sys.exit(EXIT_FAILURE)

    level = args.log_level or ("DEBUG" if settings.debug else settings.log_level)
    configure_logging(level)

    try:
        breaker_settings = resolve_settings(args, settings.breaker)
    except ValueError as e:
        logger.error("%s:main - Invalid configuration: %s", __name__, e)
        sys.exit(EXIT_FAILURE)

    breaker = JobBreaker(breaker_settings, aws_settings=settings.aws)
    try:
        outcome = breaker.run()
    except KeyboardInterrupt:
        logger.warning("%s:main - Interrupted", __name__)
        sys.exit(EXIT_INTERRUPTED)

    sys.exit(outcome.exit_status)
