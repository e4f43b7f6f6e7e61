"""
Per-bank learning progress.

Tracks the latest answer status of every question a learner has been graded
on, across sessions, so a bank can report how much of it has been covered
and which questions are still answered wrong.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field

from loguru import logger

from src.quizdrill.clock import Clock, now_ms
from src.quizdrill.models import Bank
from src.quizdrill.store import Store

PROGRESS_KEY = "bank_progress"


@dataclass
class QuestionRecord:
    answer: str
    correct: bool
    answered_at: int


@dataclass
class BankProgress:
    completed: int = 0
    correct: int = 0
    incorrect: int = 0
    last_studied: int | None = None
    study_count: int = 0
    answered: dict[str, QuestionRecord] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> BankProgress:
        answered = {
            question_id: QuestionRecord(**record)
            for question_id, record in data.get("answered", {}).items()
        }
        return cls(
            completed=data.get("completed", 0),
            correct=data.get("correct", 0),
            incorrect=data.get("incorrect", 0),
            last_studied=data.get("last_studied"),
            study_count=data.get("study_count", 0),
            answered=answered,
        )


@dataclass
class BankStats:
    total_questions: int
    completed: int
    correct: int
    incorrect: int
    last_studied: int | None

    @property
    def accuracy(self) -> float:
        """Correct answers as a percentage of the whole bank, one decimal."""
        if not self.total_questions:
            return 0.0
        return round(self.correct / self.total_questions * 100, 1)


class ProgressTracker:
    """Keeps BankProgress records for every bank in one Store entry."""

    def __init__(self, store: Store, clock: Clock = now_ms):
        self.store = store
        self.clock = clock

    def _read(self) -> dict[str, BankProgress]:
        raw = self.store.get(PROGRESS_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
            return {bank_id: BankProgress.from_dict(item) for bank_id, item in data.items()}
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.warning(f"Bank progress is unreadable, starting over: {e}")
            return {}

    def _write(self, progress: dict[str, BankProgress]) -> None:
        payload = {bank_id: asdict(item) for bank_id, item in progress.items()}
        self.store.set(PROGRESS_KEY, json.dumps(payload, ensure_ascii=False))

    def get(self, bank_id: str) -> BankProgress:
        return self._read().get(bank_id, BankProgress())

    def record(self, bank_id: str, question_id: str, user_answer: str, correct: bool) -> None:
        """
        Update a question's latest status.

        Counters move when a question is answered for the first time, or
        when a repeated answer flips it between right and wrong.
        """
        progress = self._read()
        bank = progress.setdefault(bank_id, BankProgress())
        previous = bank.answered.get(question_id)

        if previous is None:
            bank.completed += 1
            if correct:
                bank.correct += 1
            else:
                bank.incorrect += 1
        elif previous.correct != correct:
            if correct:
                bank.correct += 1
                bank.incorrect -= 1
            else:
                bank.correct -= 1
                bank.incorrect += 1

        bank.answered[question_id] = QuestionRecord(
            answer=user_answer, correct=correct, answered_at=self.clock()
        )
        bank.last_studied = self.clock()
        bank.study_count += 1
        self._write(progress)

    def stats(self, bank: Bank) -> BankStats:
        item = self.get(bank.id)
        return BankStats(
            total_questions=len(bank.questions),
            completed=item.completed,
            correct=item.correct,
            incorrect=item.incorrect,
            last_studied=item.last_studied,
        )

    def incorrect_question_ids(self, bank_id: str) -> list[str]:
        return [
            question_id
            for question_id, record in self.get(bank_id).answered.items()
            if not record.correct
        ]

    def reset(self, bank_id: str) -> None:
        progress = self._read()
        if progress.pop(bank_id, None) is not None:
            self._write(progress)
