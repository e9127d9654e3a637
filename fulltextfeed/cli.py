#!/usr/bin/env python3
"""
Full-text feed proxy command line.

Usage:
    fulltextfeed -c config.json serve                       # HTTP service
    fulltextfeed makefulltext https://example.com/feed.xml  # Print a full-text feed
    fulltextfeed -vv makefulltext URL --max-items 5 --no-keep-failed
"""

import argparse
import asyncio
import os
import sys
from datetime import UTC, datetime

from .config import Config
from .errors import FeedError
from .extractor import create_session
from .logging_config import (
    create_execution_logger,
    setup_structured_logging,
    verbosity_to_level,
)
from .models import ExtractionOverrides
from .policy import resolve_policy
from .rss import FeedProcessor
from .webserver import build_extractor, serve


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {value}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="fulltextfeed",
        description="Replace feed summaries with full-text articles",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to the JSON config file",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Silence all log output",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose mode (-v, -vv, -vvv)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the HTTP service")

    make = subparsers.add_parser(
        "makefulltext", help="Print the full-text version of a feed"
    )
    make.add_argument("url", help="Feed URL")
    make.add_argument(
        "--max-items",
        type=non_negative_int,
        default=None,
        help="Only patch the first N items (bounded by the configured limit)",
    )
    make.add_argument(
        "--keep-failed",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Keep items whose extraction fails",
    )
    make.add_argument(
        "--keep-original-content",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Prepend the original summary to the article",
    )

    return parser.parse_args(argv)


async def make_fulltext(config: Config, args: argparse.Namespace) -> str:
    """Fetch and patch the feed named on the command line."""
    execution_id = f"cli_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    policy = resolve_policy(
        config.get_extraction_defaults(),
        ExtractionOverrides(
            max_items=args.max_items,
            keep_failed=args.keep_failed,
            keep_original_content=args.keep_original_content,
        ),
        config.get_extraction_limits(),
    )
    with create_session() as session:
        processor = FeedProcessor(
            build_extractor(config, session),
            timeout=config.http_timeout,
            session=session,
            execution_id=execution_id,
        )
        document = await processor.get_fulltext_feed(args.url, policy)
    return document.serialize()


def main(argv: list[str] | None = None) -> int:
    """Entry point of the ``fulltextfeed`` command."""
    args = parse_args(argv)

    if args.quiet or args.verbose:
        log_level = verbosity_to_level(args.quiet, args.verbose)
    elif args.command == "serve":
        log_level = os.getenv("LOG_LEVEL", "INFO")
    else:
        log_level = verbosity_to_level()
    setup_structured_logging(log_level)
    logger = create_execution_logger("cli")

    try:
        config = Config.load(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Reading config failed: {e}")
        print(f"Reading config failed: {e}", file=sys.stderr)
        return 2
    logger.debug("Configuration loaded", config_file=args.config)

    if args.command == "serve":
        serve(config)
        return 0

    try:
        output = asyncio.run(make_fulltext(config, args))
    except FeedError as e:
        logger.info(f"Failed to extract feed {args.url}: {e}", feed_url=args.url)
        print(str(e), file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
