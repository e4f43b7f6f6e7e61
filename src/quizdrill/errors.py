"""
Error taxonomy for quiz sessions.

Bounds and configuration problems are raised to the caller. Late events on a
finished session are not errors: the session operations return False instead.
"""


class QuizDrillError(Exception):
    """Base class for all quizdrill errors."""
    pass


class InvalidConfig(QuizDrillError):
    """Raised when a session cannot be built from the given config or pool."""
    pass


class InvalidIndex(QuizDrillError):
    """Raised when navigation or an answer targets a question that does not exist."""

    def __init__(self, index: int, total: int):
        super().__init__(f"Question index {index} out of range (0..{total - 1})")
        self.index = index
        self.total = total


class UnsupportedOperation(QuizDrillError):
    """Raised when an operation does not apply to the session kind (e.g. reveal in an exam)."""
    pass


class SessionAlreadySubmitted(QuizDrillError):
    """Raised when a caller tries to keep a finished session alive."""
    pass


class SessionNotSubmitted(QuizDrillError):
    """Raised when scoring a session that is still in progress."""
    pass


class BankNotFound(QuizDrillError):
    """Raised when a bank id is not present in the repository."""

    def __init__(self, bank_id: str):
        super().__init__(f"Question bank not found: {bank_id}")
        self.bank_id = bank_id
