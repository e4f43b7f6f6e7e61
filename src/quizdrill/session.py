"""
Session state machine for learning and exam sessions.

A SessionState is an explicit value owned by whoever drives the UI. Both
flows share one shape and differ in when answers are graded:

- learning: the question being left (next/prev/jump) is graded, and
  revealing an answer grades it. Feedback comes one step at a time.
- exam: nothing is graded before submit(); submit grades every question,
  unanswered ones included.

Once submitted, answers, marks and reveals are read-only. Late mutations
return False instead of raising, since stray UI events after a timeout
are expected. Navigation keeps working for review.
"""

from __future__ import annotations

import math
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from src.quizdrill.clock import Clock, now_ms
from src.quizdrill.errors import InvalidConfig, InvalidIndex, UnsupportedOperation
from src.quizdrill.grader import is_correct
from src.quizdrill.models import (
    ExamConfig,
    LearningConfig,
    Question,
    ResultEntry,
    SessionKind,
    parse_config,
)


class QuestionStatus(str, Enum):
    """Navigation-grid status of a question."""

    CURRENT = "current"
    MARKED = "marked"
    ANSWERED = "answered"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNANSWERED = "unanswered"


@dataclass
class SessionProgress:
    """Snapshot of how far a session has got."""

    current: int  # 1-based
    total: int
    answered: int
    marked: int
    viewed: int

    @property
    def unanswered(self) -> int:
        return self.total - self.answered

    @property
    def percent(self) -> int:
        return round(self.answered / self.total * 100) if self.total else 0


@dataclass
class SessionState:
    """One in-progress attempt over a fixed list of question snapshots."""

    config: LearningConfig | ExamConfig
    questions: list[Question]
    session_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    bank_id: str | None = None
    bank_name: str | None = None
    candidate_name: str | None = None

    current_index: int = 0
    answers: dict[int, str] = field(default_factory=dict)
    results: dict[int, ResultEntry] = field(default_factory=dict)
    marked_questions: set[int] = field(default_factory=set)
    viewed_answers: set[int] = field(default_factory=set)

    start_time: int = 0  # epoch ms
    submitted: bool = False
    completed_at: int | None = None

    clock: Clock = field(default=now_ms, repr=False, compare=False)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def start(
        cls,
        config: LearningConfig | ExamConfig,
        questions: list[Question],
        *,
        clock: Clock = now_ms,
        bank_id: str | None = None,
        bank_name: str | None = None,
        candidate_name: str | None = None,
    ) -> SessionState:
        """Begin a session over the given questions (deep-copied)."""
        if not questions:
            raise InvalidConfig("A session needs at least one question")

        session = cls(
            config=config,
            questions=[question.model_copy(deep=True) for question in questions],
            bank_id=bank_id,
            bank_name=bank_name,
            candidate_name=(candidate_name or "").strip() or None,
            start_time=clock(),
            clock=clock,
        )
        logger.info(
            f"Started {session.kind.value} session {session.session_id} "
            f"({len(session.questions)} questions, bank={bank_id})"
        )
        return session

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def kind(self) -> SessionKind:
        return self.config.kind

    @property
    def is_exam(self) -> bool:
        return self.kind is SessionKind.EXAM

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def duration_ms(self) -> float:
        if isinstance(self.config, ExamConfig):
            return self.config.duration_ms
        return math.inf

    def elapsed_ms(self, now: int | None = None) -> int:
        return (self.clock() if now is None else now) - self.start_time

    def is_expired(self, now: int | None = None) -> bool:
        """Exam time is used up. Always False for learning sessions."""
        if not self.is_exam:
            return False
        return self.elapsed_ms(now) >= self.duration_ms

    # =========================================================================
    # Answers & Grading
    # =========================================================================

    def record_answer(self, index: int, raw_answer: str | None) -> bool:
        """
        Store the user's answer for a question.

        An empty answer clears the question. Grading is deferred unless the
        question was already graded (then it is re-graded so the result
        matches the new answer) or the learning config asks for immediate
        grading.

        Returns:
            False when ignored because the session is already submitted.
        """
        if self.submitted:
            logger.debug(f"Session {self.session_id}: ignoring answer for {index} after submit")
            return False
        self._check_index(index)

        if raw_answer is None or not raw_answer.strip():
            self.answers.pop(index, None)
            self.results.pop(index, None)
            return True

        self.answers[index] = raw_answer
        if index in self.results:
            self._grade(index)
        elif isinstance(self.config, LearningConfig) and self.config.immediate_grading:
            self._grade(index)
        return True

    def grade_if_needed(self, index: int, include_unanswered: bool = False) -> ResultEntry | None:
        """
        Grade a question once; later calls return the stored result.

        Unanswered questions are only given a (wrong, zero-score) result when
        include_unanswered is set, which submit() does.
        """
        self._check_index(index)
        if index in self.results:
            return self.results[index]
        if index in self.answers:
            return self._grade(index)
        if include_unanswered:
            question = self.questions[index]
            entry = ResultEntry(
                correct=False,
                user_answer=None,
                correct_answer=question.answer,
                score=0.0,
                max_score=self._max_score(question),
            )
            self.results[index] = entry
            return entry
        return None

    def _grade(self, index: int) -> ResultEntry:
        question = self.questions[index]
        user_answer = self.answers[index]
        correct = is_correct(user_answer, question.answer)
        max_score = self._max_score(question)
        entry = ResultEntry(
            correct=correct,
            user_answer=user_answer,
            correct_answer=question.answer,
            score=max_score if correct else 0.0,
            max_score=max_score,
        )
        self.results[index] = entry
        return entry

    def _max_score(self, question: Question) -> float:
        if isinstance(self.config, ExamConfig):
            return self.config.score_for(question.type)
        return 1.0

    # =========================================================================
    # Navigation
    # =========================================================================

    def advance(self, direction: int) -> None:
        """Move one question forward (+1) or back (-1)."""
        if direction not in (1, -1):
            raise ValueError(f"direction must be +1 or -1, got {direction}")
        self._move_to(self.current_index + direction)

    def jump_to(self, index: int) -> None:
        self._move_to(index)

    def random_jump(self, rng: random.Random | None = None) -> int:
        """Jump to a random unanswered question, or any question if all are answered."""
        rng = rng or random.Random()
        candidates = self.unanswered_indices() or list(range(self.total))
        target = rng.choice(candidates)
        self._move_to(target)
        return target

    def _move_to(self, index: int) -> None:
        self._check_index(index)
        if index == self.current_index:
            return
        self._leave(self.current_index)
        self.current_index = index

    def _leave(self, index: int) -> None:
        # exams defer all grading to submit()
        if self.is_exam:
            return
        entry = self.grade_if_needed(index)
        if entry is None or entry.correct or self.submitted:
            return
        if not self.config.review_mode:
            self.viewed_answers.add(index)

    # =========================================================================
    # Marks & Reveals
    # =========================================================================

    def toggle_mark(self, index: int) -> bool:
        """Flip the bookmark on a question. Returns False when ignored after submit."""
        if self.submitted:
            logger.debug(f"Session {self.session_id}: ignoring mark for {index} after submit")
            return False
        self._check_index(index)
        if index in self.marked_questions:
            self.marked_questions.discard(index)
        else:
            self.marked_questions.add(index)
        return True

    def toggle_view_answer(self, index: int) -> bool:
        """Show or hide the answer of a learning question; showing it grades it."""
        if self.is_exam:
            raise UnsupportedOperation("Answers cannot be revealed during an exam")
        if self.submitted:
            return False
        self._check_index(index)
        if index in self.viewed_answers:
            self.viewed_answers.discard(index)
        else:
            self.viewed_answers.add(index)
            self.grade_if_needed(index)
        return True

    def is_answer_visible(self, index: int) -> bool:
        self._check_index(index)
        if isinstance(self.config, ExamConfig):
            return self.submitted
        return self.config.review_mode or index in self.viewed_answers

    def reset(self) -> bool:
        """Clear all learning progress and rewind to the first question."""
        if self.is_exam:
            raise UnsupportedOperation("Exam sessions cannot be reset; restart instead")
        if self.submitted:
            return False
        self.answers.clear()
        self.results.clear()
        self.marked_questions.clear()
        self.viewed_answers.clear()
        self.current_index = 0
        return True

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(self) -> bool:
        """
        Finish the session, grading every question.

        This is the single point where an exam's full result set is
        computed. Calling it again is a no-op and returns False.
        """
        if self.submitted:
            return False
        for index in range(self.total):
            self.grade_if_needed(index, include_unanswered=True)
        self.submitted = True
        self.completed_at = self.clock()
        logger.info(
            f"Submitted {self.kind.value} session {self.session_id} "
            f"({len(self.answers)}/{self.total} answered)"
        )
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def unanswered_indices(self) -> list[int]:
        return [index for index in range(self.total) if index not in self.answers]

    def question_status(self, index: int) -> QuestionStatus:
        self._check_index(index)
        if index == self.current_index:
            return QuestionStatus.CURRENT

        result = self.results.get(index)
        if self.is_exam and self.submitted:
            if result is None or result.skipped:
                return QuestionStatus.UNANSWERED
            return QuestionStatus.CORRECT if result.correct else QuestionStatus.INCORRECT

        if index in self.marked_questions:
            return QuestionStatus.MARKED
        if index in self.answers:
            if not self.is_exam and result is not None:
                return QuestionStatus.CORRECT if result.correct else QuestionStatus.INCORRECT
            return QuestionStatus.ANSWERED
        return QuestionStatus.UNANSWERED

    def progress(self) -> SessionProgress:
        return SessionProgress(
            current=self.current_index + 1,
            total=self.total,
            answered=len(self.answers),
            marked=len(self.marked_questions),
            viewed=len(self.viewed_answers),
        )

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.total:
            raise InvalidIndex(index, self.total)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict:
        """Plain-JSON form. Sets become sorted lists, map keys become strings."""
        return {
            "kind": self.kind.value,
            "session_id": self.session_id,
            "bank_id": self.bank_id,
            "bank_name": self.bank_name,
            "candidate_name": self.candidate_name,
            "config": self.config.model_dump(mode="json"),
            "questions": [question.model_dump(mode="json") for question in self.questions],
            "current_index": self.current_index,
            "answers": {str(index): answer for index, answer in sorted(self.answers.items())},
            "results": {str(index): entry.to_dict() for index, entry in sorted(self.results.items())},
            "marked_questions": sorted(self.marked_questions),
            "viewed_answers": sorted(self.viewed_answers),
            "start_time": self.start_time,
            "submitted": self.submitted,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: dict, clock: Clock = now_ms) -> SessionState:
        """Rebuild a session from to_dict() output. Raises on inconsistent data."""
        if not isinstance(data, dict):
            raise InvalidConfig(f"Stored session must be an object, got {type(data).__name__}")
        answers = data.get("answers", {})
        results = data.get("results", {})
        marked = data.get("marked_questions", [])
        viewed = data.get("viewed_answers", [])
        if not isinstance(answers, dict) or not isinstance(results, dict):
            raise InvalidConfig("Stored answers and results must be mappings")
        if not isinstance(marked, list) or not isinstance(viewed, list):
            raise InvalidConfig("Stored marks and reveals must be lists")
        if not all(isinstance(answer, str) for answer in answers.values()):
            raise InvalidConfig("Stored answers must be strings")
        if not all(isinstance(entry, dict) for entry in results.values()):
            raise InvalidConfig("Stored results must be objects")

        config = parse_config(data["config"])
        if data.get("kind", config.kind.value) != config.kind.value:
            raise InvalidConfig(f"Stored kind {data['kind']!r} does not match config")

        questions = [Question.model_validate(item) for item in data["questions"]]
        if not questions:
            raise InvalidConfig("Stored session has no questions")

        session = cls(
            config=config,
            questions=questions,
            session_id=data["session_id"],
            bank_id=data.get("bank_id"),
            bank_name=data.get("bank_name"),
            candidate_name=data.get("candidate_name"),
            current_index=int(data.get("current_index", 0)),
            answers={int(index): answer for index, answer in answers.items()},
            results={int(index): ResultEntry.from_dict(entry) for index, entry in results.items()},
            marked_questions={int(index) for index in marked},
            viewed_answers={int(index) for index in viewed},
            start_time=int(data["start_time"]),
            submitted=bool(data.get("submitted", False)),
            completed_at=data.get("completed_at"),
            clock=clock,
        )
        # every stored index must address a question of this session
        for index in (
            session.current_index,
            *session.answers,
            *session.results,
            *session.marked_questions,
            *session.viewed_answers,
        ):
            session._check_index(index)
        return session
