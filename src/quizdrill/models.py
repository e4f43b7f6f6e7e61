"""
Data model for question banks and quiz sessions.

Questions, banks, session configs and history records are pydantic models
(validated when read back from storage). Mutable per-session bookkeeping
lives in dataclasses next to the session itself.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from src.quizdrill.clock import now_ms
from src.quizdrill.errors import InvalidConfig


class QuestionType(str, Enum):
    """Question types, in the order sessions group them."""

    SINGLE = "single"
    MULTIPLE = "multiple"
    JUDGE = "judge"


TYPE_ORDER = (QuestionType.SINGLE, QuestionType.MULTIPLE, QuestionType.JUDGE)


class SessionKind(str, Enum):
    """Which flow a session follows; also selects its storage key."""

    EXAM = "exam"
    LEARNING = "learning"


# =============================================================================
# Questions & Banks
# =============================================================================


TYPE_ALIASES = {
    "单选": QuestionType.SINGLE,
    "单选题": QuestionType.SINGLE,
    "多选": QuestionType.MULTIPLE,
    "多选题": QuestionType.MULTIPLE,
    "判断": QuestionType.JUDGE,
    "判断题": QuestionType.JUDGE,
    "是非": QuestionType.JUDGE,
    "是非题": QuestionType.JUDGE,
}

JUDGE_ANSWERS = {
    "√": "A", "对": "A", "正确": "A", "是": "A", "T": "A", "TRUE": "A",
    "×": "B", "错": "B", "错误": "B", "否": "B", "F": "B", "FALSE": "B",
}

JUDGE_OPTIONS = {"A": "True", "B": "False"}

OPTION_LETTERS = "ABCDEFGH"

_LETTERS = re.compile(r"[A-Z]")


def canonical_answer(answer: Any, question_type: Any = None) -> str:
    """
    Letters of an imported answer in canonical form.

    Accepts lists (["c", "a"]), run-together or separated letters ("AC",
    "a, c") and, for true/false questions, words such as "T" or "对".
    """
    if isinstance(answer, (list, tuple)):
        answer = ",".join(str(item) for item in answer)
    text = str(answer or "").strip().upper()
    if question_type in (QuestionType.JUDGE, QuestionType.JUDGE.value) and text in JUDGE_ANSWERS:
        return JUDGE_ANSWERS[text]
    return ",".join(sorted(set(_LETTERS.findall(text))))


class Question(BaseModel):
    """
    A single question as stored in a bank.

    Loose input is standardized on the way in: type aliases, list options,
    lower-case option keys and free-form answers. Every answer letter must
    name one of the options, so each question can be answered correctly.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    content: str = Field(min_length=1)
    type: QuestionType
    options: dict[str, str] = Field(default_factory=dict)
    answer: str  # canonical letters, e.g. "A" or "A,C"
    analysis: str = ""
    score: float = 1.0

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @model_validator(mode="before")
    @classmethod
    def _standardize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        qtype = data.get("type")
        if isinstance(qtype, str):
            qtype = TYPE_ALIASES.get(qtype.strip(), qtype.strip().lower())
            data["type"] = qtype

        options = data.get("options")
        if isinstance(options, (list, tuple)):
            options = {
                letter: str(text).strip()
                for letter, text in zip(OPTION_LETTERS, options)
                if text
            }
        elif isinstance(options, dict):
            options = {str(key).strip().upper(): str(text).strip() for key, text in options.items() if text}
        if not options and qtype in (QuestionType.JUDGE, QuestionType.JUDGE.value):
            options = dict(JUDGE_OPTIONS)
        if options is not None:
            data["options"] = options

        if "answer" in data:
            data["answer"] = canonical_answer(data["answer"], qtype)
        return data

    @model_validator(mode="after")
    def _check_answer(self) -> Question:
        if not self.options:
            raise ValueError(f"question {self.id} has no options")
        if not self.answer:
            raise ValueError(f"question {self.id} has no answer")
        letters = self.answer.split(",")
        unknown = [letter for letter in letters if letter not in self.options]
        if unknown:
            raise ValueError(f"question {self.id}: answer {','.join(unknown)} is not an option")
        if self.type is not QuestionType.MULTIPLE and len(letters) != 1:
            raise ValueError(f"question {self.id}: {self.type.value} questions take one answer")
        return self


class Bank(BaseModel):
    """A named collection of questions."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    name: str
    description: str = ""
    questions: list[Question] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    def count_by_type(self) -> dict[QuestionType, int]:
        counts = {qtype: 0 for qtype in TYPE_ORDER}
        for question in self.questions:
            counts[question.type] += 1
        return counts


# =============================================================================
# Session Configs
# =============================================================================


class LearningConfig(BaseModel):
    """
    Practice session settings.

    review_mode shows every answer up front; immediate_grading is the legacy
    behaviour of grading on each recorded answer instead of on navigation.
    """

    model_config = ConfigDict(frozen=True)

    mode: Literal["sequential", "random"] = "sequential"
    review_mode: bool = False
    immediate_grading: bool = False

    @property
    def kind(self) -> SessionKind:
        return SessionKind.LEARNING


class TypedSelection(BaseModel):
    """Exam questions picked by per-type quota."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["typed"] = "typed"
    single_count: int = Field(default=0, ge=0)
    multiple_count: int = Field(default=0, ge=0)
    judge_count: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.single_count + self.multiple_count + self.judge_count

    @model_validator(mode="after")
    def _require_questions(self) -> TypedSelection:
        if self.total == 0:
            raise ValueError("at least one question must be requested")
        return self


class LegacySelection(BaseModel):
    """Exam questions picked by total count (type-grouped, then truncated)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["legacy"] = "legacy"
    question_count: int = Field(gt=0)


ExamSelection = Annotated[Union[TypedSelection, LegacySelection], Field(discriminator="kind")]


class ExamConfig(BaseModel):
    """Timed exam settings. Scores are points per question of each type."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["exam"] = "exam"
    selection: ExamSelection
    duration_minutes: float = Field(default=120, ge=0)
    single_score: float = Field(default=1.0, gt=0)
    multiple_score: float = Field(default=2.0, gt=0)
    judge_score: float = Field(default=1.0, gt=0)

    @property
    def kind(self) -> SessionKind:
        return SessionKind.EXAM

    @property
    def duration_ms(self) -> float:
        return self.duration_minutes * 60 * 1000

    def score_for(self, question_type: QuestionType) -> float:
        return {
            QuestionType.SINGLE: self.single_score,
            QuestionType.MULTIPLE: self.multiple_score,
            QuestionType.JUDGE: self.judge_score,
        }[question_type]


SessionConfig = Annotated[Union[LearningConfig, ExamConfig], Field(discriminator="mode")]

_config_adapter: TypeAdapter = TypeAdapter(SessionConfig)


def parse_config(data: dict[str, Any]) -> LearningConfig | ExamConfig:
    """Build a session config from plain data, reporting problems as InvalidConfig."""
    try:
        return _config_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidConfig(f"Invalid session config: {e}") from e


# =============================================================================
# Results & History
# =============================================================================


@dataclass
class ResultEntry:
    """Grading outcome for one question of a session."""

    correct: bool
    user_answer: str | None  # None = left unanswered at submission
    correct_answer: str
    score: float
    max_score: float

    @property
    def skipped(self) -> bool:
        return self.user_answer is None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ResultEntry:
        return cls(**data)


class HistoryRecord(BaseModel):
    """Summary of one finished exam, kept in the history list."""

    bank_id: str
    bank_name: str
    candidate_name: str | None = None
    score: float
    max_score: float
    correct_count: int
    wrong_count: int
    skipped_count: int
    total_questions: int
    duration_minutes: float
    start_time: int
    completed_time: int
