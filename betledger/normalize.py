"""Helpers for turning rendered table text into canonical numbers."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal

import numpy as np

NBSP = "\u00a0"
UNICODE_MINUS = "\u2212"
PROFIT_EPSILON = 1e-9

NON_NUMERIC_PATTERN = re.compile(r"[^0-9.\-]")
# Longest leading decimal literal, the way a lenient float reader consumes it.
LEADING_NUMBER_PATTERN = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")
_CENT = Decimal("0.01")


def to_number(text: object) -> float:
    """Return the number shown in ``text`` (``0.0`` when none can be read).

    Display noise (currency symbols, thousands separators, non-breaking
    spaces, the unicode minus sign) is removed before parsing. Only the
    leading numeric literal of what remains is used, so ``"12.5.3"`` reads
    as ``12.5``.
    """

    if text is None:
        return 0.0
    cleaned = str(text).replace(NBSP, " ").replace(UNICODE_MINUS, "-")
    cleaned = NON_NUMERIC_PATTERN.sub("", cleaned)
    match = LEADING_NUMBER_PATTERN.match(cleaned)
    if not match:
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    return value if np.isfinite(value) else 0.0


def normalize_status(text: str | None) -> str:
    if not text:
        return ""
    return str(text).strip().lower()


def round2(value: float) -> float:
    """Round to cents, half away from zero on the exact binary value.

    ``round()`` uses banker's rounding, which disagrees with the ledger's
    historical values on exact ties such as ``0.125``.
    """

    if not np.isfinite(value):
        return 0.0
    # "+ 0.0" folds -0.0 into 0.0
    return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)) + 0.0


def infer_profit(raw_profit: float, bet: float, status: str, *, epsilon: float = PROFIT_EPSILON) -> float:
    """Return the net profit for a row.

    A non-zero profit cell is already a net figure and is trusted as-is. A
    zero cell is a placeholder: a lost stake nets ``-bet`` and anything
    else (open, cancelled) nets zero.

    A win that genuinely paid nothing is indistinguishable from the
    placeholder and is reported as zero profit.
    """

    if abs(raw_profit) > epsilon:
        return raw_profit
    if status == "lost":
        return -bet
    return 0.0
