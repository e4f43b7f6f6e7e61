"""
Question bank repository.

Banks live as one JSON list under the "question_banks" key. Sessions copy
the questions they use, so editing or removing a bank never touches a
session in flight.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from src.quizdrill.clock import Clock, now_ms
from src.quizdrill.errors import BankNotFound, InvalidConfig
from src.quizdrill.models import Bank
from src.quizdrill.store import Store

BANKS_KEY = "question_banks"

_banks_adapter = TypeAdapter(list[Bank])


class BankRepository:
    """Lookup and bookkeeping for question banks."""

    def __init__(self, store: Store, clock: Clock = now_ms):
        self.store = store
        self.clock = clock

    def list_banks(self) -> list[Bank]:
        raw = self.store.get(BANKS_KEY)
        if raw is None:
            return []
        try:
            return _banks_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Stored question banks are unreadable, treating as empty: {e}")
            return []

    def get(self, bank_id: str) -> Bank:
        for bank in self.list_banks():
            if bank.id == bank_id:
                return bank
        raise BankNotFound(bank_id)

    def find(self, bank_id: str) -> Bank | None:
        try:
            return self.get(bank_id)
        except BankNotFound:
            return None

    def add(self, bank: Bank) -> Bank:
        """
        Store a new bank (or replace one with the same id).

        A name already used by another bank gets a timestamp suffix.
        """
        banks = [existing for existing in self.list_banks() if existing.id != bank.id]
        if any(existing.name == bank.name for existing in banks):
            bank = bank.model_copy(update={"name": f"{bank.name}_{self.clock()}"})
        bank = bank.model_copy(update={"updated_at": self.clock()})
        banks.append(bank)
        self._write(banks)
        logger.info(f"Saved bank {bank.id} '{bank.name}' ({len(bank.questions)} questions)")
        return bank

    def remove(self, bank_id: str) -> bool:
        banks = self.list_banks()
        remaining = [bank for bank in banks if bank.id != bank_id]
        if len(remaining) == len(banks):
            return False
        self._write(remaining)
        logger.info(f"Removed bank {bank_id}")
        return True

    def load_file(self, path: Path) -> Bank:
        """
        Import a bank from a JSON file.

        The file holds either one bank object ({"name": ..., "questions": [...]})
        or a bare list of questions. Missing bank names fall back to the file
        name and missing question ids are generated. Question fields are
        standardized by the Question model.

        Raises:
            InvalidConfig: unreadable JSON, no questions, or an invalid question
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidConfig(f"{path.name} is not valid JSON: {e}") from e

        if isinstance(data, list):
            data = {"questions": data}
        if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
            raise InvalidConfig(f"{path.name} must hold a bank object or a list of questions")
        if not data["questions"]:
            raise InvalidConfig(f"{path.name} has no questions")
        if not data.get("name"):
            data["name"] = path.stem

        questions = []
        for position, question in enumerate(data["questions"], start=1):
            if not isinstance(question, dict):
                raise InvalidConfig(f"Question {position} in {path.name} is not an object")
            if question.get("id") in (None, ""):
                question = {**question, "id": str(uuid.uuid4())[:8]}
            questions.append(question)
        data["questions"] = questions

        try:
            bank = Bank.model_validate(data)
        except ValidationError as e:
            raise InvalidConfig(f"{path.name} has invalid questions: {e}") from e
        return self.add(bank)

    def _write(self, banks: list[Bank]) -> None:
        self.store.set(BANKS_KEY, _banks_adapter.dump_json(banks).decode("utf-8"))
