"""Exam history: the most recent finished exams, newest first."""

from __future__ import annotations

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from src.quizdrill.models import HistoryRecord
from src.quizdrill.store import Store

HISTORY_KEY = "exam_records"
DEFAULT_LIMIT = 10

_records_adapter = TypeAdapter(list[HistoryRecord])


class HistoryStore:
    def __init__(self, store: Store, limit: int = DEFAULT_LIMIT):
        self.store = store
        self.limit = limit

    def list(self, bank_id: str | None = None) -> list[HistoryRecord]:
        raw = self.store.get(HISTORY_KEY)
        if raw is None:
            return []
        try:
            records = _records_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Exam history is unreadable, starting over: {e}")
            return []
        if bank_id is not None:
            records = [record for record in records if record.bank_id == bank_id]
        return records

    def append(self, record: HistoryRecord) -> None:
        records = [record, *self.list()][: self.limit]
        self._write(records)

    def remove_bank(self, bank_id: str) -> None:
        self._write([record for record in self.list() if record.bank_id != bank_id])

    def clear(self) -> None:
        self.store.remove(HISTORY_KEY)

    def _write(self, records: list[HistoryRecord]) -> None:
        self.store.set(HISTORY_KEY, _records_adapter.dump_json(records).decode("utf-8"))
