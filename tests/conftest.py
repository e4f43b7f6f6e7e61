"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings
from src.quizdrill.models import Bank, ExamConfig, LearningConfig, Question, TypedSelection
from src.quizdrill.store import MemoryStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (service + store)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    def advance_minutes(self, minutes: float) -> None:
        self.now += int(minutes * 60 * 1000)


def make_question(qid, qtype, answer, options=None, **extra):
    """Build a Question with sensible default options for its type."""
    if options is None:
        options = {"A": "True", "B": "False"} if qtype == "judge" else {
            "A": "Option A",
            "B": "Option B",
            "C": "Option C",
            "D": "Option D",
        }
    return Question(
        id=str(qid),
        content=f"Question {qid}?",
        type=qtype,
        options=options,
        answer=answer,
        analysis=extra.pop("analysis", f"Because {answer}."),
        **extra,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def mixed_pool():
    """3 single, 2 multiple, 2 judge questions, deliberately interleaved."""
    return [
        make_question("s1", "single", "A"),
        make_question("m1", "multiple", "A,C"),
        make_question("j1", "judge", "A"),
        make_question("s2", "single", "B"),
        make_question("m2", "multiple", "B,D"),
        make_question("s3", "single", "C"),
        make_question("j2", "judge", "B"),
    ]


@pytest.fixture
def bank(mixed_pool):
    return Bank(id="bank1", name="Networking Basics", questions=mixed_pool)


@pytest.fixture
def learning_config():
    return LearningConfig(mode="sequential")


@pytest.fixture
def exam_config():
    return ExamConfig(
        selection=TypedSelection(single_count=2, multiple_count=0, judge_count=1),
        duration_minutes=60,
        single_score=2,
        multiple_score=3,
        judge_score=1,
    )
