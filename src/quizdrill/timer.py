"""
Exam countdown.

The session never schedules anything itself. Callers poll remaining() (once a
second is plenty) or call ExamTimer.tick(), which submits the exam exactly
once when the time runs out. A tick racing a user submit is harmless because
submit() is idempotent.
"""

from __future__ import annotations

import math
from enum import Enum

from loguru import logger

from config import get_settings
from src.quizdrill.session import SessionState


class Urgency(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


def remaining(session: SessionState, now: int | None = None) -> float:
    """Milliseconds left, clamped at 0. Infinite for learning sessions."""
    if not session.is_exam:
        return math.inf
    return max(0.0, session.duration_ms - session.elapsed_ms(now))


def format_remaining(remaining_ms: float) -> str:
    """HH:MM:SS, rounding partial seconds down."""
    if math.isinf(remaining_ms):
        return "--:--:--"
    total_seconds = int(max(0.0, remaining_ms) // 1000)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class ExamTimer:
    """Caller-driven countdown for one exam session."""

    def __init__(
        self,
        session: SessionState,
        warning_minutes: int | None = None,
        critical_minutes: int | None = None,
    ):
        settings = get_settings()
        self.session = session
        self.warning_ms = (
            warning_minutes if warning_minutes is not None else settings.timer_warning_minutes
        ) * 60 * 1000
        self.critical_ms = (
            critical_minutes if critical_minutes is not None else settings.timer_critical_minutes
        ) * 60 * 1000

    def remaining(self, now: int | None = None) -> float:
        return remaining(self.session, now)

    def tick(self, now: int | None = None) -> bool:
        """
        Check the clock and auto-submit on expiry.

        Returns:
            True only for the tick that actually submitted the session.
        """
        if self.session.submitted or not self.session.is_exam:
            return False
        if self.remaining(now) > 0:
            return False
        logger.info(f"Time is up for exam session {self.session.session_id}, submitting")
        return self.session.submit()

    def urgency(self, now: int | None = None) -> Urgency:
        left = self.remaining(now)
        if left < self.critical_ms:
            return Urgency.CRITICAL
        if left < self.warning_ms:
            return Urgency.WARNING
        return Urgency.NORMAL

    def display(self, now: int | None = None) -> str:
        return format_remaining(self.remaining(now))
