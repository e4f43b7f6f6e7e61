"""
quizdrill: question banks, practice sessions and timed mock exams.

Components:
- grader: answer normalization and comparison
- selector: sequential / random / quota question selection
- session: the learning/exam session state machine
- scoring: final results and history records
- timer: exam countdown helpers (caller-owned scheduling)
- persistence: save/resume through a key-value Store
- service: ties the above together for a front end
"""

from .errors import (
    BankNotFound,
    InvalidConfig,
    InvalidIndex,
    QuizDrillError,
    SessionAlreadySubmitted,
    SessionNotSubmitted,
    UnsupportedOperation,
)
from .grader import is_correct, normalize
from .models import (
    Bank,
    ExamConfig,
    HistoryRecord,
    LearningConfig,
    LegacySelection,
    Question,
    QuestionType,
    ResultEntry,
    SessionKind,
    TypedSelection,
    parse_config,
)
from .persistence import LoadOutcome, LoadStatus, PersistenceAdapter
from .scoring import Result, ScoringEngine
from .selector import QuestionSelector
from .service import SessionService
from .session import QuestionStatus, SessionProgress, SessionState
from .store import JsonFileStore, MemoryStore, Store
from .timer import ExamTimer, Urgency, format_remaining, remaining

__all__ = [
    "Bank",
    "BankNotFound",
    "ExamConfig",
    "ExamTimer",
    "HistoryRecord",
    "InvalidConfig",
    "InvalidIndex",
    "JsonFileStore",
    "LearningConfig",
    "LegacySelection",
    "LoadOutcome",
    "LoadStatus",
    "MemoryStore",
    "PersistenceAdapter",
    "Question",
    "QuestionSelector",
    "QuestionStatus",
    "QuestionType",
    "QuizDrillError",
    "Result",
    "ResultEntry",
    "ScoringEngine",
    "SessionAlreadySubmitted",
    "SessionKind",
    "SessionNotSubmitted",
    "SessionProgress",
    "SessionService",
    "SessionState",
    "Store",
    "TypedSelection",
    "UnsupportedOperation",
    "Urgency",
    "format_remaining",
    "is_correct",
    "normalize",
    "parse_config",
    "remaining",
]
