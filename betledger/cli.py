#!/usr/bin/env python3
"""Command line entry point for the betting ledger."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from .aggregate import calculate_totals, effective_date, monthly_breakdown, recent_records, totals_as_dict
from .config import LedgerSettings, load_settings
from .export import export_monthly_csv, export_records_csv, monthly_frame
from .extract import HISTORY_URL_FRAGMENT, inspect_rows, is_history_page, rows_from_html
from .models import Record
from .pipeline import record_rows
from .store import JsonFileStore, LedgerStore, StoreError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_PAGE_URL = f"https://{HISTORY_URL_FRAGMENT}"
RECENT_LIMIT = 5


def _read_html(path: Path) -> str:
    with path.expanduser().open("r", encoding="utf-8") as handle:
        return handle.read()


def _ledger(settings: LedgerSettings, store_path: Optional[Path]) -> LedgerStore:
    return LedgerStore(JsonFileStore(store_path or settings.storage_path), key=settings.storage_key)


def _print_totals(totals: dict) -> None:
    for status, bucket in totals.items():
        print(f"{status:<10} count={bucket['count']:<6} bet=${bucket['betTotal']:,.2f}  profit=${bucket['profitTotal']:,.2f}")


def _print_recent(records: Sequence[Record], min_year: int) -> None:
    recent = recent_records(records, RECENT_LIMIT, min_year=min_year)
    if not recent:
        return
    print(f"===== RECENT BETS ({len(recent)}) =====")
    for record in recent:
        when = effective_date(record, min_year=min_year).strftime("%b %d %H:%M")
        print(f"{when:<13} {record.slip_id:<14} {record.status:<10} ${record.profit:,.2f}  {record.game}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="betledger", description="Record betting history pages and summarise the ledger.")
    parser.add_argument("--config", type=Path, default=None, help="YAML config (default $BETLEDGER_CONFIG or config/defaults.yaml).")
    parser.add_argument("--store", type=Path, default=None, help="Ledger JSON file (overrides storage.path).")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (overrides logging.level).",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("record", help="Extract settled bets from a saved history page and merge them into the ledger")
    r.add_argument("--html", type=Path, required=True)
    r.add_argument("--url", default=DEFAULT_PAGE_URL, help="Address the page was saved from.")

    i = sub.add_parser("inspect", help="Print every row of a saved history page (open bets included); nothing is stored")
    i.add_argument("--html", type=Path, required=True)

    sub.add_parser("summary", help="Totals by status")
    sub.add_parser("monthly", help="Totals by month, most recent first")

    e = sub.add_parser("export", help="Write the ledger and/or monthly breakdown as CSV")
    e.add_argument("--records", type=Path, default=None)
    e.add_argument("--monthly", type=Path, default=None)

    sub.add_parser("clear", help="Delete every recorded bet")
    return parser


async def _run(args: argparse.Namespace, settings: LedgerSettings) -> int:
    ledger = _ledger(settings, args.store)

    if args.cmd == "record":
        html = _read_html(args.html)
        if not is_history_page(args.url, html):
            logger.warning("%s does not look like a betting history page (%s)", args.html, args.url)
        rows = rows_from_html(html)
        report = await record_rows(
            rows,
            ledger,
            statuses=settings.tracked_statuses,
            epsilon=settings.profit_epsilon,
        )
        print(report.message)
        return 0 if report.success else 1

    if args.cmd == "inspect":
        report = inspect_rows(rows_from_html(_read_html(args.html)), epsilon=settings.profit_epsilon)
        print("===== SUMMARY =====")
        _print_totals(report.summary)
        print(f"===== DETAILED ROWS ({report.count}) =====")
        for row in report.rows:
            print(f"{row['slipId'] or '-':<14} {row['status']:<10} bet={row['bet']:<10} profit={row['profit']:<10} {row['game']}")
        return 0

    if args.cmd == "clear":
        await ledger.clear_all()
        print("All data cleared")
        return 0

    records = await ledger.load_all()
    if args.cmd == "summary":
        _print_totals(totals_as_dict(calculate_totals(records)))
        _print_recent(records, settings.min_plausible_year)
    elif args.cmd == "monthly":
        months = monthly_breakdown(records, min_year=settings.min_plausible_year)
        frame = monthly_frame(months)
        print(frame.to_string(index=False) if not frame.empty else "No betting data recorded")
    elif args.cmd == "export":
        if args.records is None and args.monthly is None:
            print("[warn] Nothing to export; pass --records and/or --monthly.")
            return 1
        if args.records is not None:
            print(f"[info] Wrote {export_records_csv(records, args.records)} ({len(records)} bets)")
        if args.monthly is not None:
            months = monthly_breakdown(records, min_year=settings.min_plausible_year)
            print(f"[info] Wrote {export_monthly_csv(months, args.monthly)} ({len(months)} months)")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    level = (args.log_level or settings.log_level).upper()
    if level not in LOG_LEVELS:
        parser.error(f"unknown logging level {level!r} in settings")
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(name)-20s  %(levelname)-5s  %(message)s",
    )
    try:
        return asyncio.run(_run(args, settings))
    except StoreError as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
