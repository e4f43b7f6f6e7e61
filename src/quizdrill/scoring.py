"""
Final scoring of submitted sessions.

Percentages are rounded half-up to whole numbers; score totals keep two
decimals (half-up) so fractional per-question scores add up cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from src.quizdrill.errors import SessionNotSubmitted
from src.quizdrill.models import ExamConfig, HistoryRecord, Question
from src.quizdrill.session import SessionState


def round_half_up(value: float, digits: int = 0) -> float:
    """round() with school rounding instead of banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class WrongQuestion:
    """A question that was answered wrong or left blank."""

    index: int
    question: Question
    user_answer: str | None
    correct_answer: str


@dataclass
class Result:
    """Aggregate outcome of a submitted session."""

    correct_count: int
    wrong_count: int
    skipped_count: int
    total_questions: int
    total_score: float
    max_score: float
    score_percent: int
    accuracy_percent: int
    wrong_questions: list[WrongQuestion] = field(default_factory=list)

    @property
    def answered_count(self) -> int:
        return self.correct_count + self.wrong_count


class ScoringEngine:
    """Computes results from finished sessions."""

    def score(self, session: SessionState) -> Result:
        if not session.submitted:
            raise SessionNotSubmitted(f"Session {session.session_id} has not been submitted")

        correct_count = 0
        wrong_count = 0
        total_score = 0.0
        max_score = 0.0
        wrong_questions: list[WrongQuestion] = []

        for index, question in enumerate(session.questions):
            entry = session.results.get(index)
            if entry is None:
                # submit() grades every index
                continue
            total_score += entry.score
            max_score += entry.max_score
            if entry.correct:
                correct_count += 1
                continue
            if not entry.skipped:
                wrong_count += 1
            wrong_questions.append(
                WrongQuestion(
                    index=index,
                    question=question,
                    user_answer=entry.user_answer,
                    correct_answer=entry.correct_answer,
                )
            )

        total = session.total
        return Result(
            correct_count=correct_count,
            wrong_count=wrong_count,
            skipped_count=total - correct_count - wrong_count,
            total_questions=total,
            total_score=round_half_up(total_score, 2),
            max_score=round_half_up(max_score, 2),
            score_percent=int(round_half_up(total_score / max_score * 100)) if max_score > 0 else 0,
            accuracy_percent=int(round_half_up(correct_count / total * 100)),
            wrong_questions=wrong_questions,
        )

    def history_record(self, session: SessionState, result: Result) -> HistoryRecord:
        """Summary row for the exam history list."""
        duration_minutes = (
            session.config.duration_minutes if isinstance(session.config, ExamConfig) else 0
        )
        return HistoryRecord(
            bank_id=session.bank_id or "",
            bank_name=session.bank_name or "",
            candidate_name=session.candidate_name,
            score=result.total_score,
            max_score=result.max_score,
            correct_count=result.correct_count,
            wrong_count=result.wrong_count,
            skipped_count=result.skipped_count,
            total_questions=result.total_questions,
            duration_minutes=duration_minutes,
            start_time=session.start_time,
            completed_time=session.completed_at or session.clock(),
        )
