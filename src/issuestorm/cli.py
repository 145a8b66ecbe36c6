#!/usr/bin/env python3
# cli.py: command line entry point for issuestorm

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv
from rich.console import Console

from issuestorm.config import build_config, load_config
from issuestorm.core import RunOrchestrator
from issuestorm.errors import IssueStormError
from issuestorm.logging_config import setup_logging

COMMANDS = {
    "create": RunOrchestrator.create_issues,
    "crawl-issues": RunOrchestrator.crawl_project_issues,
    "crawl-all-issues": RunOrchestrator.crawl_all_projects_issues,
}


def positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {n}")
    return n


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="issuestorm",
        description="Create synthetic issues or crawl issues of an issue tracker, with latency stats",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="FILE.toml",
        help="TOML configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("create", help="Create issues into the project specified in the config file")
    subparsers.add_parser("crawl-issues", help="Crawl all issues of the configured project")
    subparsers.add_parser("crawl-all-issues", help="Crawl all issues from all visible projects")

    # Concurrency & Resilience
    parser.add_argument(
        "--concurrency",
        type=positive_int,
        default=None,
        help="Maximum simultaneous requests (overrides config; unbounded when unset)",
    )
    parser.add_argument(
        "--retries",
        type=non_negative_int,
        default=None,
        help="Retries per request on connection errors, 429 and 5xx (overrides config)",
    )

    # Output
    parser.add_argument(
        "--no-echo",
        action="store_true",
        help="Do not print each successful request",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while requests are in flight",
    )
    parser.add_argument(
        "--histogram",
        action="store_true",
        help="Print a latency histogram after the summary",
    )
    parser.add_argument(
        "--timeline",
        action="store_true",
        help="Print a per-worker request timeline after the summary (one row per request unless --concurrency is set)",
    )

    # Logging & Debugging
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable info-level logging",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional file to write logs to (e.g., issuestorm.log)",
    )

    return parser.parse_args(argv)


async def run(args) -> None:
    config = load_config(args.config)

    overrides = {}
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    if args.retries is not None:
        overrides["max_retries"] = args.retries
    if overrides:
        config = build_config({**config.model_dump(), **overrides})

    orchestrator = RunOrchestrator(
        config,
        console=Console(),
        echo=not args.no_echo,
        use_progress_bar=args.progress,
        show_histogram=args.histogram,
        show_timeline=args.timeline,
    )

    logging.info(f"Starting {args.command} for project {config.project_id}")
    await COMMANDS[args.command](orchestrator)


def main(argv=None) -> int:
    args = parse_args(argv)

    log_level = "DEBUG" if args.debug else "INFO" if args.verbose else "WARNING"
    setup_logging(level=log_level, log_file=args.log_file)
    load_dotenv()

    try:
        asyncio.run(run(args))
    except IssueStormError as e:
        print(f"Application error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n[!] Interrupted.", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
