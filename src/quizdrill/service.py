"""
Session Service.

The caller-side glue around the session core:
- builds sessions from a bank (selection + SessionState.start)
- saves after every mutation so an unfinished session can always be resumed
- feeds graded learning answers into per-bank progress
- scores finished sessions and keeps the exam history
"""

from __future__ import annotations

import random
from collections.abc import Callable, Iterable
from typing import Any

from loguru import logger

from config import Settings, get_settings
from src.quizdrill.banks import BankRepository
from src.quizdrill.clock import Clock, now_ms
from src.quizdrill.errors import SessionAlreadySubmitted
from src.quizdrill.history import HistoryStore
from src.quizdrill.models import (
    Bank,
    ExamConfig,
    LearningConfig,
    LegacySelection,
    Question,
    ResultEntry,
    SessionKind,
    TypedSelection,
    parse_config,
)
from src.quizdrill.persistence import LoadOutcome, PersistenceAdapter
from src.quizdrill.progress import ProgressTracker
from src.quizdrill.scoring import Result, ScoringEngine
from src.quizdrill.selector import QuestionSelector
from src.quizdrill.session import SessionState
from src.quizdrill.store import Store
from src.quizdrill.timer import ExamTimer


class SessionService:
    """Drives learning and exam sessions on top of a Store."""

    def __init__(
        self,
        store: Store,
        settings: Settings | None = None,
        clock: Clock = now_ms,
        rng: random.Random | None = None,
    ):
        self.settings = settings or get_settings()
        self.clock = clock
        self.rng = rng or random.Random()

        self.banks = BankRepository(store, clock)
        self.selector = QuestionSelector(self.rng)
        self.persistence = PersistenceAdapter(store, clock)
        self.history = HistoryStore(store, self.settings.history_limit)
        self.progress = ProgressTracker(store, clock)
        self.scoring = ScoringEngine()

        self._finished: set[str] = set()

    # =========================================================================
    # Starting Sessions
    # =========================================================================

    def start_learning(
        self,
        bank_id: str,
        mode: str = "sequential",
        review_mode: bool = False,
        immediate_grading: bool = False,
        only_incorrect: bool = False,
    ) -> SessionState:
        """
        Start a practice session over a bank.

        Args:
            mode: "sequential" or "random"
            review_mode: show answers up front
            immediate_grading: grade each answer as it is recorded
            only_incorrect: restrict the pool to questions last answered wrong
        """
        bank = self.banks.get(bank_id)
        config = parse_config(
            {
                "mode": mode,
                "review_mode": review_mode,
                "immediate_grading": immediate_grading,
            }
        )
        pool = bank.questions
        if only_incorrect:
            wrong_ids = set(self.progress.incorrect_question_ids(bank.id))
            pool = [question for question in pool if question.id in wrong_ids]
        return self._begin(config, pool, bank)

    def start_exam(
        self,
        bank_id: str,
        selection: TypedSelection | LegacySelection | dict[str, Any],
        duration_minutes: float | None = None,
        single_score: float | None = None,
        multiple_score: float | None = None,
        judge_score: float | None = None,
        candidate_name: str | None = None,
    ) -> SessionState:
        """
        Start a timed exam. Unset duration and scores fall back to settings.

        The selection variant is the caller's choice: TypedSelection for
        per-type quotas, LegacySelection for a plain question count.
        """
        bank = self.banks.get(bank_id)
        if not isinstance(selection, dict):
            selection = selection.model_dump()
        config = parse_config(
            {
                "mode": "exam",
                "selection": selection,
                "duration_minutes": _pick(duration_minutes, self.settings.default_exam_minutes),
                "single_score": _pick(single_score, self.settings.default_single_score),
                "multiple_score": _pick(multiple_score, self.settings.default_multiple_score),
                "judge_score": _pick(judge_score, self.settings.default_judge_score),
            }
        )
        return self._begin(config, bank.questions, bank, candidate_name)

    def restart(self, session: SessionState) -> SessionState:
        """Throw the session away and start a fresh one with the same config."""
        self.persistence.clear(session.kind)
        bank = self.banks.find(session.bank_id) if session.bank_id else None
        if bank is None:
            logger.warning(f"Bank {session.bank_id} is gone, restarting from the session's own questions")
            bank = Bank(id=session.bank_id or "", name=session.bank_name or "", questions=session.questions)
        return self._begin(session.config, bank.questions, bank, session.candidate_name)

    def _begin(
        self,
        config: LearningConfig | ExamConfig,
        pool: list[Question],
        bank: Bank,
        candidate_name: str | None = None,
    ) -> SessionState:
        questions = self.selector.select(pool, config)
        session = SessionState.start(
            config,
            questions,
            clock=self.clock,
            bank_id=bank.id,
            bank_name=bank.name,
            candidate_name=candidate_name,
        )
        self.persistence.save(session)
        return session

    def resume(self, kind: SessionKind | str) -> LoadOutcome:
        outcome = self.persistence.load_with_status(kind)
        if outcome.discarded:
            logger.warning(f"Stored {SessionKind(kind).value} session was {outcome.status.value}, starting fresh")
        return outcome

    # =========================================================================
    # Session Operations (save after every mutation)
    # =========================================================================

    def answer(self, session: SessionState, index: int, raw_answer: str | None) -> bool:
        return self._apply(session, "answer", [index], lambda: session.record_answer(index, raw_answer))

    def advance(self, session: SessionState, direction: int) -> None:
        self._apply(session, "advance", [session.current_index], lambda: session.advance(direction))

    def jump(self, session: SessionState, index: int) -> None:
        self._apply(session, "jump", [session.current_index], lambda: session.jump_to(index))

    def random_jump(self, session: SessionState) -> int:
        return self._apply(
            session, "jump", [session.current_index], lambda: session.random_jump(self.rng)
        )

    def mark(self, session: SessionState, index: int) -> bool:
        return self._apply(session, "mark", [], lambda: session.toggle_mark(index))

    def reveal(self, session: SessionState, index: int) -> bool:
        return self._apply(session, "reveal", [index], lambda: session.toggle_view_answer(index))

    def reset(self, session: SessionState) -> bool:
        return self._apply(session, "reset", [], session.reset)

    def tick(self, session: SessionState) -> Result | None:
        """Poll the exam clock; on expiry the exam is submitted and finished."""
        if ExamTimer(session).tick():
            logger.warning(f"Exam {session.session_id} ran out of time and was submitted")
            return self.finish(session)
        return None

    def exit(self, session: SessionState) -> None:
        """Leave the session resumable."""
        if session.submitted:
            raise SessionAlreadySubmitted(f"Session {session.session_id} is finished and cannot be resumed")
        self.persistence.save(session)

    def abandon(self, kind: SessionKind | str) -> None:
        self.persistence.clear(kind)

    def _apply(
        self,
        session: SessionState,
        action: str,
        touched: Iterable[int],
        operation: Callable[[], Any],
    ) -> Any:
        touched = list(touched)
        before = dict(session.results)
        outcome = operation()
        if outcome is False:
            logger.warning(f"Ignored late {action} on submitted session {session.session_id}")
            return outcome
        if session.submitted:
            # review navigation only; finished sessions stay out of the store
            return outcome
        self._sync(session, touched, before)
        return outcome

    def _sync(
        self,
        session: SessionState,
        touched: Iterable[int],
        before: dict[int, ResultEntry],
    ) -> None:
        if not session.is_exam and session.bank_id:
            for index in touched:
                entry = session.results.get(index)
                if entry is None or entry.skipped:
                    continue
                if before.get(index) == entry:
                    continue
                self.progress.record(
                    session.bank_id, session.questions[index].id, entry.user_answer, entry.correct
                )
        self.persistence.save(session)

    # =========================================================================
    # Finishing
    # =========================================================================

    def finish(self, session: SessionState) -> Result:
        """
        Submit (if needed), score, record and clear the stored session.

        Safe to call more than once; history is only written the first time.
        """
        before = dict(session.results)
        session.submit()
        result = self.scoring.score(session)

        if session.session_id not in self._finished:
            self._finished.add(session.session_id)
            if session.is_exam:
                self.history.append(self.scoring.history_record(session, result))
            elif session.bank_id:
                for index, entry in session.results.items():
                    if entry.skipped or before.get(index) == entry:
                        continue
                    self.progress.record(
                        session.bank_id, session.questions[index].id, entry.user_answer, entry.correct
                    )
            self.persistence.clear(session.kind)
            logger.info(
                f"Finished {session.kind.value} session {session.session_id}: "
                f"{result.total_score}/{result.max_score} ({result.score_percent}%)"
            )
        return result

    # =========================================================================
    # Banks
    # =========================================================================

    def remove_bank(self, bank_id: str) -> bool:
        """Delete a bank along with its progress and exam history."""
        removed = self.banks.remove(bank_id)
        if removed:
            self.progress.reset(bank_id)
            self.history.remove_bank(bank_id)
        return removed


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value
