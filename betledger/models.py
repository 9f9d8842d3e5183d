"""Record type shared by the extractor, the ledger store and the aggregator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping

from .normalize import round2

# Keys used in the persisted ledger document. They match the exports of the
# browser extension so existing ledgers load unchanged.
STORAGE_KEYS = {
    "game": "game",
    "slip_id": "slipId",
    "bet": "bet",
    "profit": "profit",
    "status": "status",
    "created": "created",
    "recorded_at": "recordedAt",
}


@dataclass(frozen=True)
class Record:
    """One settled wager captured from the history table."""

    game: str
    slip_id: str
    bet: float
    profit: float
    status: str
    created: str
    recorded_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {STORAGE_KEYS[name]: value for name, value in asdict(self).items()}

    def normalized(self) -> "Record":
        """Copy with a trimmed slip id and amounts rounded to cents."""

        return replace(
            self,
            slip_id=self.slip_id.strip(),
            bet=round2(self.bet),
            profit=round2(self.profit),
        )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Record":
        def _text(key: str) -> str:
            value = payload.get(key)
            return "" if value is None else str(value)

        def _number(key: str) -> float:
            value = payload.get(key)
            try:
                return float(value)
            except (TypeError, ValueError):
                return 0.0

        return cls(
            game=_text("game"),
            slip_id=_text("slipId"),
            bet=_number("bet"),
            profit=_number("profit"),
            status=_text("status"),
            created=_text("created"),
            recorded_at=_text("recordedAt"),
        )
