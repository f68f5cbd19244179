# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""quotepage CLI: history and print commands.

Usage:
    quotepage history SYMBOL [--start DATE] [--end DATE] [--frequency FREQ] [-o PATH] [--preset NAME]
    quotepage print SYMBOL [--page summary|news|chart|history] -o PATH [--preset NAME]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

from . import Frequency
from .browser_session import BrowserConfig
from .errors import QuotePageError
from .home_page import HomePageModel
from .page_classifier import SUBPAGE_KINDS, PageKind
from .quote_pages import QuoteSubPageModel

logger = logging.getLogger(__name__)

_PRESET_NAMES = ("default", "headless", "debug")
_PRESET_HELP = "Browser launch preset (default: 'default', 'headless' for print)"


def _iso_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {text!r}, expected YYYY-MM-DD") from None


async def _open_quote(home: HomePageModel, symbol: str) -> QuoteSubPageModel:
    """Landing page -> validated quote summary for *symbol*."""
    await home.open()
    await home.validate_page()
    summary = await home.go_to_quote(symbol)
    await summary.validate_page()
    return summary


async def _run_history(args: argparse.Namespace, config: BrowserConfig) -> str:
    from .serializer import to_csv, to_json

    async with HomePageModel(config=config) as home:
        summary = await _open_quote(home, args.symbol)
        history = await summary.open_historical_data()
        await history.validate_page()

        if args.start or args.end:
            end = args.end or date.today()
            start = args.start or end - timedelta(days=365)
            result = await history.configure_period(start, end)
            if not result.applied:
                logger.warning("Date range not applied (%s): %s", result.step, result.reason)
        await history.configure_frequency(args.frequency)
        records = await history.extract_historical_data()

    output = Path(args.output) if args.output else None
    text = to_csv(records) if output and output.suffix.lower() == ".csv" else to_json(records)
    if output:
        output.write_text(text, encoding="utf-8")
        return f"{len(records)} records saved to {output}"
    return text


async def _run_print(args: argparse.Namespace, config: BrowserConfig) -> str:
    from .printable import PrintablePage

    async with HomePageModel(config=config) as home:
        summary = await _open_quote(home, args.symbol)
        target = summary if args.page == PageKind.SUMMARY else await summary.open_subpage(args.page)
        await target.validate_page()
        pdf = await PrintablePage(target).print_page(args.output)
    return f"{len(pdf)} bytes saved to {args.output}"


def cmd_history(args: argparse.Namespace) -> None:
    """Extract historical prices for a symbol."""
    print(asyncio.run(_run_history(args, _config_from_args(args))))


def cmd_print(args: argparse.Namespace) -> None:
    """Export a quote subpage as PDF."""
    print(asyncio.run(_run_print(args, _config_from_args(args))))


def _config_from_args(args: argparse.Namespace) -> BrowserConfig:
    preset = args.preset or ("headless" if args.command == "print" else "default")
    return BrowserConfig.from_env(BrowserConfig.preset(preset))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Quote page scraper",
        prog="quotepage",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr")
    parser.add_argument("--preset", choices=_PRESET_NAMES, help=_PRESET_HELP)
    # Also accepted after the subcommand; when absent there, the top-level value stands.
    browser_opts = argparse.ArgumentParser(add_help=False)
    browser_opts.add_argument("--preset", choices=_PRESET_NAMES, default=argparse.SUPPRESS, help=_PRESET_HELP)
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_history = subparsers.add_parser(
        "history",
        parents=[browser_opts],
        help="Extract historical prices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s AAPL                                        Current table as JSON
  %(prog)s AAPL --start 2025-01-01 --end 2025-06-30    Custom range
  %(prog)s AAPL --frequency Weekly -o aapl.csv         Weekly rows as CSV""",
    )
    p_history.add_argument("symbol", help="Ticker symbol, e.g. AAPL")
    p_history.add_argument("--start", type=_iso_date, metavar="YYYY-MM-DD")
    p_history.add_argument("--end", type=_iso_date, metavar="YYYY-MM-DD")
    p_history.add_argument(
        "--frequency",
        choices=[f.value for f in Frequency],
        default=Frequency.DAILY.value,
    )
    p_history.add_argument("-o", "--output", metavar="PATH", help="Write .json or .csv instead of printing JSON")

    p_print = subparsers.add_parser("print", parents=[browser_opts], help="Export a quote page as PDF")
    p_print.add_argument("symbol", help="Ticker symbol, e.g. AAPL")
    p_print.add_argument("--page", choices=[k.value for k in SUBPAGE_KINDS], default=PageKind.SUMMARY.value)
    p_print.add_argument("-o", "--output", required=True, metavar="PATH")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from .logging_config import configure

    configure(
        json_output=args.json_logs,
        level="DEBUG" if args.verbose else "INFO",
        command=args.command,
        symbol=args.symbol.upper(),
    )

    commands = {"history": cmd_history, "print": cmd_print}
    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except (QuotePageError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
