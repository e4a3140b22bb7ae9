"""
Command-line import: run a CSV export through the importer and print the result.

Usage:
    tradeingest trades.csv
    tradeingest trades.csv --json
    tradeingest trades.csv --map symbol=Ticker --map entry_price="Avg Px"
    python -m tradeingest trades.csv --split-mode csv --max-rows 5000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config import SPLIT_MODES, configure_logging, get_settings
from .parsers.trade_importer import ImportReport, TradeImporter

logger = logging.getLogger(__name__)


def _parse_overrides(pairs: Sequence[str]) -> dict[str, str]:
    overrides = {}
    for pair in pairs:
        field_name, sep, header = pair.partition("=")
        if not sep or not field_name.strip() or not header.strip():
            raise ValueError(f"Expected FIELD=HEADER, got '{pair}'")
        overrides[field_name.strip()] = header.strip()
    return overrides


def fmt_money(amount: Optional[float]) -> str:
    if amount is None:
        return "-"
    if amount < 0:
        return f"-${abs(amount):,.2f}"
    return f"${amount:,.2f}"


def print_report(report: ImportReport, preview_size: int) -> None:
    print("=" * 70)
    market = report.detected_market.label if report.detected_market else "Unknown"
    print(f"  Market:   {market}")
    print(f"  Rows:     {report.total_rows}")
    print(f"  Accepted: {len(report.accepted)}  Skipped: {report.skipped_count}  "
          f"Failed: {report.failed_count}")
    print("=" * 70)

    if report.mapping is not None:
        print("\nColumn mapping:")
        for field_name, header in report.mapping.as_dict().items():
            print(f"  {field_name:<12} <- {header}")

    if report.warnings:
        print("\nWarnings:")
        for warning in report.warnings:
            print(f"  - {warning}")

    if report.error is not None:
        print(f"\nERROR: {report.error.message}")
        if report.error.hint:
            print(f"  Expected columns for {report.error.detected_market}: "
                  f"{', '.join(report.error.hint)}")
        return

    trades = report.preview(preview_size)
    if trades:
        print(f"\nFirst {len(trades)} trades:")
        for t in trades:
            print(f"  {t.timestamp:%Y-%m-%d}  {t.side.value:<4}  {t.quantity:>10g}  "
                  f"{t.symbol:<12}  entry={t.entry_price}  exit={t.exit_price}  "
                  f"pnl={fmt_money(t.effective_pnl)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tradeingest",
        description="Import a broker trade export and normalize it into trades with P&L.",
    )
    parser.add_argument("path", help="CSV file to import")
    parser.add_argument(
        "--json", action="store_true",
        help="Print the full report (all accepted trades) as JSON",
    )
    parser.add_argument(
        "--split-mode", choices=SPLIT_MODES, default=None,
        help="Line splitting: naive comma split or quote-aware csv (default: from settings)",
    )
    parser.add_argument(
        "--max-rows", type=int, default=None,
        help="Maximum data rows to import (default: from settings)",
    )
    parser.add_argument(
        "--map", action="append", default=[], metavar="FIELD=HEADER",
        help="Bind a field to a column explicitly; repeatable",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Debug logging",
    )
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else None)

    path = Path(args.path)
    if not path.exists():
        print(f"ERROR: File not found: {path}", file=sys.stderr)
        return 2

    settings = get_settings()
    if args.max_rows is not None:
        if args.max_rows < 1:
            print("ERROR: --max-rows must be >= 1", file=sys.stderr)
            return 2
        settings = replace(settings, max_rows=args.max_rows)

    try:
        overrides = _parse_overrides(args.map)
        report = TradeImporter(settings).parse_string(
            path.read_text(encoding="utf-8-sig"),
            mapping_overrides=overrides or None,
            split_mode=args.split_mode,
        )
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        print_report(report, settings.preview_size)

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
