"""CSV exports of the ledger and its monthly breakdown."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from .aggregate import MonthBucket
from .models import Record

RECORD_COLUMNS = ["Game", "Slip ID", "Bet", "Profit", "Status", "Created", "Recorded At"]
MONTHLY_COLUMNS = [
    "Month",
    "Count",
    "Bet Total",
    "Profit Total",
    "Won Count",
    "Won Profit",
    "Lost Count",
    "Lost Profit",
    "Cancelled Count",
    "Cancelled Profit",
]


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    rows = [
        {
            "Game": record.game,
            "Slip ID": record.slip_id,
            "Bet": record.bet,
            "Profit": record.profit,
            "Status": record.status,
            "Created": record.created,
            "Recorded At": record.recorded_at,
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def monthly_frame(months: Iterable[MonthBucket]) -> pd.DataFrame:
    rows = []
    for month in months:
        row = {
            "Month": month.month_name,
            "Count": month.count,
            "Bet Total": month.bet_total,
            "Profit Total": month.profit_total,
        }
        for status in ("won", "lost", "cancelled"):
            bucket = month.by_status[status]
            row[f"{status.title()} Count"] = bucket.count
            row[f"{status.title()} Profit"] = bucket.profit_total
        rows.append(row)
    return pd.DataFrame(rows, columns=MONTHLY_COLUMNS)


def _write_csv(frame: pd.DataFrame, path: Path | str) -> Path:
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(target, index=False, float_format="%.2f")
    return target


def export_records_csv(records: Iterable[Record], path: Path | str) -> Path:
    return _write_csv(records_frame(records), path)


def export_monthly_csv(months: Iterable[MonthBucket], path: Path | str) -> Path:
    return _write_csv(monthly_frame(months), path)
