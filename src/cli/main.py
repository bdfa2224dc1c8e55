"""
Koinly Export CLI

Exports every transaction of an authenticated Koinly portfolio to
"Koinly Transactions.csv".

Copy the API_KEY and PORTFOLIO_ID cookies from a logged-in app.koinly.io tab
(or the whole cookie string) and pass them as flags or environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from src.exports import ExportService, EXPORT_FILENAME
from src.koinly import ExportConfig, KoinlyCredentials, KoinlyExportError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    defaults = ExportConfig()
    parser = argparse.ArgumentParser(
        prog="koinly-export",
        description="Koinly Export - slow, rate-limited transaction export to CSV",
    )
    parser.add_argument("--api-key", help="API_KEY cookie value (or KOINLY_API_KEY)")
    parser.add_argument("--portfolio-id", help="PORTFOLIO_ID cookie value (or KOINLY_PORTFOLIO_ID)")
    parser.add_argument("--cookie", help="Full browser cookie string (or KOINLY_COOKIE)")
    parser.add_argument("--user-agent", help="User agent to send (or KOINLY_USER_AGENT)")
    parser.add_argument("--output-dir", default=".", help="Directory to save the CSV in")
    parser.add_argument("--filename", default=EXPORT_FILENAME, help="Name of the CSV file")
    parser.add_argument("--min-delay-ms", type=int, default=defaults.min_delay_ms)
    parser.add_argument("--max-delay-ms", type=int, default=defaults.max_delay_ms)
    parser.add_argument(
        "--checkpoint-interval",
        type=int,
        default=defaults.checkpoint_interval_pages,
        help="Take a longer break after every N pages",
    )
    parser.add_argument("--checkpoint-delay-ms", type=int, default=defaults.checkpoint_delay_ms)
    parser.add_argument("--page-size", type=int, default=defaults.page_size)
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ExportConfig(
            min_delay_ms=args.min_delay_ms,
            max_delay_ms=args.max_delay_ms,
            checkpoint_interval_pages=args.checkpoint_interval,
            checkpoint_delay_ms=args.checkpoint_delay_ms,
            page_size=args.page_size,
        )
    except ValueError as e:
        logger.error(f"Invalid options: {e}")
        return 2

    try:
        credentials = KoinlyCredentials.resolve(
            api_key=args.api_key,
            portfolio_id=args.portfolio_id,
            cookie=args.cookie,
            user_agent=args.user_agent,
        )
        service = ExportService(credentials, output_dir=args.output_dir, config=config)
        result = asyncio.run(service.generate_export(filename=args.filename))
    except KoinlyExportError as e:
        logger.error(f"Export aborted: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Export interrupted, no file written")
        return 130

    print(f"Saved {result['transaction_count']} transactions to {result['filepath']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
