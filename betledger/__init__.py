"""Betting-history capture, ledger merging and summary statistics."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config import LedgerSettings


def load_settings(path: Optional[str | Path] = None) -> "LedgerSettings":
    """Ledger settings, importing the YAML layer only when first asked for.

    The parsing, merge and summary modules do not need PyYAML at import time.
    """

    from .config import load_settings as _load_settings

    return _load_settings(path)


__all__ = ["load_settings"]
