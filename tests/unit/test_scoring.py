"""
Unit tests for ScoringEngine.

Run: pytest tests/unit/test_scoring.py -v
"""

import pytest

from conftest import make_question
from src.quizdrill.errors import SessionNotSubmitted
from src.quizdrill.models import ExamConfig, LearningConfig, TypedSelection
from src.quizdrill.scoring import ScoringEngine, round_half_up
from src.quizdrill.session import SessionState


@pytest.fixture
def engine():
    return ScoringEngine()


@pytest.fixture
def small_exam(clock):
    """Two single questions worth 2 points each and one judge worth 1."""
    pool = [
        make_question("q1", "single", "A"),
        make_question("q2", "single", "B"),
        make_question("q3", "judge", "A"),
    ]
    config = ExamConfig(
        selection=TypedSelection(single_count=2, judge_count=1),
        duration_minutes=60,
        single_score=2,
        judge_score=1,
    )
    return SessionState.start(
        config, pool, clock=clock, bank_id="b1", bank_name="Small", candidate_name="Ada"
    )


class TestRoundHalfUp:
    """Test round_half_up()."""

    @pytest.mark.parametrize(
        "value,digits,expected",
        [(2.5, 0, 3.0), (0.5, 0, 1.0), (33.333, 0, 33.0), (66.5, 0, 67.0), (1.005, 2, 1.01), (1.234, 2, 1.23)],
    )
    def test_rounds_half_up(self, value, digits, expected):
        assert round_half_up(value, digits) == expected


class TestScore:
    """Test ScoringEngine.score()."""

    def test_requires_submission(self, engine, small_exam):
        with pytest.raises(SessionNotSubmitted):
            engine.score(small_exam)

    def test_mixed_outcome(self, engine, small_exam):
        """One right, one wrong, one skipped: 2/5 points, 40%, 33% accuracy."""
        small_exam.record_answer(0, "A")
        small_exam.record_answer(1, "A")
        small_exam.submit()

        result = engine.score(small_exam)

        assert result.correct_count == 1
        assert result.wrong_count == 1
        assert result.skipped_count == 1
        assert result.total_questions == 3
        assert result.total_score == 2
        assert result.max_score == 5
        assert result.score_percent == 40
        assert result.accuracy_percent == 33
        assert result.answered_count == 2

    def test_counts_add_up(self, engine, small_exam):
        small_exam.record_answer(2, "B")
        small_exam.submit()
        result = engine.score(small_exam)
        assert result.correct_count + result.wrong_count + result.skipped_count == result.total_questions

    def test_perfect_score(self, engine, small_exam):
        for index, letter in enumerate(["a", "b", "A"]):
            small_exam.record_answer(index, letter)
        small_exam.submit()
        result = engine.score(small_exam)
        assert result.score_percent == 100
        assert result.accuracy_percent == 100
        assert result.wrong_questions == []

    def test_wrong_questions_include_skipped(self, engine, small_exam):
        """Wrong and skipped questions are both listed for review."""
        small_exam.record_answer(1, "A")
        small_exam.submit()
        result = engine.score(small_exam)
        listed = {(wrong.index, wrong.user_answer) for wrong in result.wrong_questions}
        assert listed == {(0, None), (1, "A"), (2, None)}
        assert result.wrong_questions[1].correct_answer == "B"

    def test_nothing_answered(self, engine, small_exam):
        small_exam.submit()
        result = engine.score(small_exam)
        assert result.skipped_count == 3
        assert result.total_score == 0
        assert result.score_percent == 0

    def test_learning_scores_one_point_each(self, engine, mixed_pool, clock):
        session = SessionState.start(LearningConfig(), mixed_pool, clock=clock)
        session.record_answer(0, "A")
        session.submit()
        result = engine.score(session)
        assert result.max_score == len(mixed_pool)
        assert result.total_score == 1


class TestHistoryRecord:
    """Test ScoringEngine.history_record()."""

    def test_record_fields(self, engine, small_exam, clock):
        small_exam.record_answer(0, "A")
        clock.advance_minutes(12)
        small_exam.submit()
        result = engine.score(small_exam)

        record = engine.history_record(small_exam, result)

        assert record.bank_id == "b1"
        assert record.bank_name == "Small"
        assert record.candidate_name == "Ada"
        assert record.score == 2
        assert record.max_score == 5
        assert record.correct_count == 1
        assert record.skipped_count == 2
        assert record.duration_minutes == 60
        assert record.completed_time - record.start_time == 12 * 60 * 1000
