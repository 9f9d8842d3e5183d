"""Configuration helpers for the betting ledger."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "defaults.yaml"


def resolve_config_path(path: Optional[str | Path] = None, *, env_var: str = "BETLEDGER_CONFIG") -> Path:
    """Which ledger settings file applies: ``path``, then ``$env_var``, then the bundled defaults."""

    candidate = path or os.environ.get(env_var)
    return Path(candidate).expanduser() if candidate else DEFAULT_CONFIG_PATH


def load_config(path: Optional[str | Path] = None, *, env_var: str = "BETLEDGER_CONFIG") -> Dict[str, Any]:
    """Raw ledger settings mapping read from the YAML file chosen by :func:`resolve_config_path`.

    A blank file yields ``{}``; the storage, extraction, aggregation and
    logging sections are interpreted by :class:`LedgerSettings`.
    """

    settings_file = resolve_config_path(path, env_var=env_var)
    if not settings_file.exists():
        raise FileNotFoundError(f"Ledger settings file not found: {settings_file}")

    with settings_file.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Ledger settings must be a YAML mapping; got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class LedgerSettings:
    """Typed view over the configuration mapping."""

    storage_path: Path = Path("tracking") / "betting_data.json"
    storage_key: str = "bettingData"
    tracked_statuses: Tuple[str, ...] = ("won", "lost", "cancelled")
    profit_epsilon: float = 1e-9
    min_plausible_year: int = 2020
    log_level: str = "INFO"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LedgerSettings":
        storage = data.get("storage") or {}
        extraction = data.get("extraction") or {}
        aggregation = data.get("aggregation") or {}
        logging_cfg = data.get("logging") or {}
        defaults = cls()
        statuses = extraction.get("tracked_statuses")
        return cls(
            storage_path=Path(storage.get("path", defaults.storage_path)).expanduser(),
            storage_key=str(storage.get("key", defaults.storage_key)),
            tracked_statuses=(
                tuple(str(s).strip().lower() for s in statuses) if statuses else defaults.tracked_statuses
            ),
            profit_epsilon=float(extraction.get("profit_epsilon", defaults.profit_epsilon)),
            min_plausible_year=int(aggregation.get("min_plausible_year", defaults.min_plausible_year)),
            log_level=str(logging_cfg.get("level", defaults.log_level)).upper(),
        )


def load_settings(path: Optional[str | Path] = None, *, env_var: str = "BETLEDGER_CONFIG") -> LedgerSettings:
    return LedgerSettings.from_mapping(load_config(path, env_var=env_var))
