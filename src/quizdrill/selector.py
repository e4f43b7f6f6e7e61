"""
Question selection for learning and exam sessions.

Random selections are "type-grouped but internally randomized": the pool is
partitioned by question type, each partition is shuffled on its own, and the
partitions are concatenated single -> multiple -> judge. Quota requests larger
than a partition are clamped, so callers must use the length of the returned
list rather than the requested counts.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from loguru import logger

from src.quizdrill.errors import InvalidConfig
from src.quizdrill.models import (
    TYPE_ORDER,
    ExamConfig,
    LearningConfig,
    LegacySelection,
    Question,
    QuestionType,
    TypedSelection,
)


class QuestionSelector:
    """Builds ordered session question lists from a bank's pool."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def select(self, pool: Sequence[Question], config: LearningConfig | ExamConfig) -> list[Question]:
        """Pick questions for the given config variant."""
        if isinstance(config, LearningConfig):
            if config.mode == "random":
                return self.select_random(pool)
            return self.select_sequential(pool)

        selection = config.selection
        if isinstance(selection, TypedSelection):
            return self.select_by_quota(
                pool,
                selection.single_count,
                selection.multiple_count,
                selection.judge_count,
            )
        if isinstance(selection, LegacySelection):
            return self.select_by_count(pool, selection.question_count)
        raise InvalidConfig(f"Unknown exam selection: {selection!r}")

    def select_sequential(self, pool: Sequence[Question]) -> list[Question]:
        return [question.model_copy(deep=True) for question in pool]

    def select_random(self, pool: Sequence[Question]) -> list[Question]:
        partitions = self._shuffled_partitions(pool)
        return [question for qtype in TYPE_ORDER for question in partitions[qtype]]

    def select_by_quota(
        self,
        pool: Sequence[Question],
        single_count: int,
        multiple_count: int,
        judge_count: int,
    ) -> list[Question]:
        """
        Pick up to N questions of each type.

        Asking for more questions of a type than the pool holds returns all
        of them; it is not an error.
        """
        quotas = {
            QuestionType.SINGLE: single_count,
            QuestionType.MULTIPLE: multiple_count,
            QuestionType.JUDGE: judge_count,
        }
        if any(count < 0 for count in quotas.values()):
            raise InvalidConfig(f"Question counts must not be negative: {quotas}")

        partitions = self._shuffled_partitions(pool)
        selected: list[Question] = []
        for qtype in TYPE_ORDER:
            available = partitions[qtype]
            if quotas[qtype] > len(available):
                logger.debug(
                    f"Requested {quotas[qtype]} {qtype.value} questions, pool has {len(available)}"
                )
            selected.extend(available[: quotas[qtype]])
        return selected

    def select_by_count(self, pool: Sequence[Question], count: int) -> list[Question]:
        """Legacy exam selection: type-grouped shuffle, then the first `count` questions."""
        if count < 0:
            raise InvalidConfig(f"Question count must not be negative: {count}")
        return self.select_random(pool)[:count]

    def _shuffled_partitions(self, pool: Sequence[Question]) -> dict[QuestionType, list[Question]]:
        partitions: dict[QuestionType, list[Question]] = {qtype: [] for qtype in TYPE_ORDER}
        for question in pool:
            partitions[question.type].append(question.model_copy(deep=True))
        for questions in partitions.values():
            # random.shuffle is an in-place Fisher-Yates shuffle
            self._rng.shuffle(questions)
        return partitions
