"""Ledger persistence and the merge-by-slip-id rule.

The ledger is one document (a list of record dicts) held under a single key
of an async key-value store. Every save rewrites the whole document.
Callers are expected to run one load/merge/save cycle at a time; nothing
here locks.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .models import Record

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "bettingData"


class StoreError(RuntimeError):
    """Raised when the underlying key-value store cannot be read or written."""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store; values are deep-copied through JSON on the way in."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.loads(json.dumps(value))

    async def get(self, key: str) -> Any:
        value = self._data.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Key-value store backed by a single JSON file.

    Writes go to a sibling ``.tmp`` file that then replaces the target, so a
    reader never observes a half-written document.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read ledger store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError(f"Ledger store {self.path} must hold a JSON object; got {type(data).__name__}")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            tmp.replace(self.path)
        except OSError as exc:
            raise StoreError(f"Could not write ledger store {self.path}: {exc}") from exc

    async def get(self, key: str) -> Any:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        data = await asyncio.to_thread(self._read)
        data[key] = value
        await asyncio.to_thread(self._write, data)

    def _unlink(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Could not delete ledger store {self.path}: {exc}") from exc

    async def remove(self, key: str) -> None:
        try:
            data = await asyncio.to_thread(self._read)
        except StoreError as exc:
            logger.warning("Discarding unreadable ledger store: %s", exc)
            await asyncio.to_thread(self._unlink)
            return
        if key not in data:
            return
        del data[key]
        if data:
            await asyncio.to_thread(self._write, data)
        else:
            await asyncio.to_thread(self._unlink)


@dataclass(frozen=True)
class MergeResult:
    records: List[Record]
    new_count: int
    updated_count: int
    skipped_count: int = 0

    @property
    def total_count(self) -> int:
        return len(self.records)


def merge_records(existing: Iterable[Record], incoming: Iterable[Record]) -> MergeResult:
    """Merge ``incoming`` into ``existing`` keyed by slip id.

    A known slip id is replaced in place (last write wins); unknown ones are
    appended in arrival order. Incoming records are stored with amounts
    rounded to cents, and records without a slip id are skipped.
    """

    by_slip: Dict[str, Record] = {}
    for record in existing:
        by_slip[record.slip_id] = record

    new_count = 0
    updated_count = 0
    skipped_count = 0
    for record in incoming:
        record = record.normalized()
        if not record.slip_id:
            skipped_count += 1
            continue
        if record.slip_id in by_slip:
            updated_count += 1
        else:
            new_count += 1
        by_slip[record.slip_id] = record
    if skipped_count:
        logger.warning("Skipped %d incoming record(s) without a slip id", skipped_count)
    return MergeResult(
        records=list(by_slip.values()),
        new_count=new_count,
        updated_count=updated_count,
        skipped_count=skipped_count,
    )


class LedgerStore:
    """Load, save and merge the whole ledger through a key-value store."""

    def __init__(self, kv: KeyValueStore, *, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.kv = kv
        self.key = key

    async def load_all(self) -> List[Record]:
        try:
            payload = await self.kv.get(self.key)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Failed to load ledger: {exc}") from exc
        if not payload:
            return []
        if not isinstance(payload, list):
            raise StoreError(f"Ledger under {self.key!r} must be a list; got {type(payload).__name__}")
        return [Record.from_dict(item) for item in payload if isinstance(item, dict)]

    async def save_all(self, records: Iterable[Record]) -> None:
        payload = [record.to_dict() for record in records]
        try:
            await self.kv.set(self.key, payload)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Failed to save ledger: {exc}") from exc
        logger.debug("Saved %d record(s) under %r", len(payload), self.key)

    async def clear_all(self) -> None:
        try:
            await self.kv.remove(self.key)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Failed to clear ledger: {exc}") from exc
        logger.info("Cleared ledger %r", self.key)

    async def merge(self, incoming: Iterable[Record]) -> MergeResult:
        existing = await self.load_all()
        result = merge_records(existing, incoming)
        await self.save_all(result.records)
        logger.info(
            "Merged ledger: %d new, %d updated, %d total",
            result.new_count,
            result.updated_count,
            result.total_count,
        )
        return result
