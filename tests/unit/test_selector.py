"""
Unit tests for QuestionSelector.

Covers sequential/random learning order and both exam selection variants.
"""

import random

import pytest

from src.quizdrill.errors import InvalidConfig
from src.quizdrill.models import ExamConfig, LearningConfig, LegacySelection, TypedSelection
from src.quizdrill.selector import QuestionSelector


def _types(questions):
    return [question.type.value for question in questions]


class TestLearningSelection:
    """Sequential and random orders for practice sessions."""

    def test_sequential_keeps_bank_order(self, mixed_pool, rng):
        """Sequential mode returns the pool unchanged."""
        selected = QuestionSelector(rng).select(mixed_pool, LearningConfig(mode="sequential"))
        assert [q.id for q in selected] == [q.id for q in mixed_pool]

    def test_sequential_returns_copies(self, mixed_pool, rng):
        """Selected questions are snapshots, not the bank's own objects."""
        selected = QuestionSelector(rng).select_sequential(mixed_pool)
        assert all(a is not b for a, b in zip(selected, mixed_pool))
        assert selected == mixed_pool

    def test_random_is_type_grouped(self, mixed_pool, rng):
        """Random mode groups single, then multiple, then judge."""
        selected = QuestionSelector(rng).select(mixed_pool, LearningConfig(mode="random"))
        assert _types(selected) == ["single"] * 3 + ["multiple"] * 2 + ["judge"] * 2

    def test_random_is_a_permutation(self, mixed_pool, rng):
        """Random mode neither drops nor duplicates questions."""
        selected = QuestionSelector(rng).select_random(mixed_pool)
        assert sorted(q.id for q in selected) == sorted(q.id for q in mixed_pool)

    def test_random_shuffles_within_type(self, mixed_pool):
        """Different seeds eventually produce different orders inside a type."""
        orders = {
            tuple(q.id for q in QuestionSelector(random.Random(seed)).select_random(mixed_pool))
            for seed in range(20)
        }
        assert len(orders) > 1

    def test_empty_pool(self, rng):
        assert QuestionSelector(rng).select_random([]) == []


class TestQuotaSelection:
    """Exam selection by per-type quota."""

    def test_exact_quota(self, mixed_pool, rng):
        """Each type contributes exactly its quota."""
        selected = QuestionSelector(rng).select_by_quota(mixed_pool, 2, 1, 1)
        assert _types(selected) == ["single", "single", "multiple", "judge"]

    def test_quota_larger_than_pool_is_clamped(self, mixed_pool, rng):
        """Asking for 10 single questions from a pool of 3 returns all 3."""
        selected = QuestionSelector(rng).select_by_quota(mixed_pool, 10, 0, 0)
        assert len(selected) == 3
        assert set(_types(selected)) == {"single"}

    def test_zero_quota_skips_type(self, mixed_pool, rng):
        selected = QuestionSelector(rng).select_by_quota(mixed_pool, 0, 0, 2)
        assert _types(selected) == ["judge", "judge"]

    def test_negative_quota_rejected(self, mixed_pool, rng):
        with pytest.raises(InvalidConfig):
            QuestionSelector(rng).select_by_quota(mixed_pool, -1, 0, 0)

    def test_no_duplicates(self, mixed_pool, rng):
        selected = QuestionSelector(rng).select_by_quota(mixed_pool, 3, 2, 2)
        ids = [q.id for q in selected]
        assert len(ids) == len(set(ids))

    def test_select_dispatches_typed(self, mixed_pool, rng):
        """ExamConfig with a TypedSelection uses quotas."""
        config = ExamConfig(selection=TypedSelection(single_count=1, judge_count=1))
        selected = QuestionSelector(rng).select(mixed_pool, config)
        assert _types(selected) == ["single", "judge"]


class TestLegacySelection:
    """Exam selection by total count."""

    def test_count_truncates_grouped_order(self, mixed_pool, rng):
        """The first N questions of the type-grouped order are kept."""
        selected = QuestionSelector(rng).select_by_count(mixed_pool, 4)
        assert _types(selected) == ["single", "single", "single", "multiple"]

    def test_count_larger_than_pool(self, mixed_pool, rng):
        selected = QuestionSelector(rng).select_by_count(mixed_pool, 50)
        assert len(selected) == len(mixed_pool)

    def test_select_dispatches_legacy(self, mixed_pool, rng):
        config = ExamConfig(selection=LegacySelection(question_count=2))
        selected = QuestionSelector(rng).select(mixed_pool, config)
        assert _types(selected) == ["single", "single"]
