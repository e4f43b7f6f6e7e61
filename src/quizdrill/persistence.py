"""
Session persistence for save/resume.

Each session kind has one slot in the Store ("exam_progress" and
"learning_progress"). A stored session that is malformed, already submitted
or (for exams) out of time is stale: loading it removes it and reports it as
absent, so it never resurfaces.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from src.quizdrill.clock import Clock, now_ms
from src.quizdrill.errors import QuizDrillError
from src.quizdrill.models import SessionKind
from src.quizdrill.session import SessionState
from src.quizdrill.store import Store

SESSION_KEYS = {
    SessionKind.EXAM: "exam_progress",
    SessionKind.LEARNING: "learning_progress",
}


class LoadStatus(str, Enum):
    """Why load() did or did not return a session."""

    RESUMED = "resumed"
    ABSENT = "absent"
    CORRUPTED = "corrupted"
    SUBMITTED = "submitted"
    EXPIRED = "expired"


@dataclass
class LoadOutcome:
    session: Optional[SessionState]
    status: LoadStatus

    @property
    def discarded(self) -> bool:
        """A stored session existed but was stale and has been cleared."""
        return self.status in (LoadStatus.CORRUPTED, LoadStatus.SUBMITTED, LoadStatus.EXPIRED)


class PersistenceAdapter:
    """Saves and restores SessionState values through a Store."""

    def __init__(self, store: Store, clock: Clock = now_ms):
        self.store = store
        self.clock = clock

    def save(self, session: SessionState) -> None:
        """Write the full session. Storage failures are logged, never raised."""
        key = SESSION_KEYS[session.kind]
        try:
            self.store.set(key, json.dumps(session.to_dict(), ensure_ascii=False))
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save {session.kind.value} session {session.session_id}: {e}")

    def load(self, kind: SessionKind | str) -> Optional[SessionState]:
        """Resumable session of this kind, or None."""
        return self.load_with_status(kind).session

    def load_with_status(self, kind: SessionKind | str) -> LoadOutcome:
        kind = SessionKind(kind)
        key = SESSION_KEYS[kind]

        try:
            raw = self.store.get(key)
        except OSError as e:
            logger.warning(f"Could not read {key}: {e}")
            return LoadOutcome(None, LoadStatus.ABSENT)
        if raw is None:
            return LoadOutcome(None, LoadStatus.ABSENT)

        try:
            session = SessionState.from_dict(json.loads(raw), clock=self.clock)
        except (
            json.JSONDecodeError,
            AttributeError,
            KeyError,
            TypeError,
            ValueError,
            ValidationError,
            QuizDrillError,
        ) as e:
            logger.warning(f"Discarding corrupted {kind.value} session: {e}")
            self._discard(key)
            return LoadOutcome(None, LoadStatus.CORRUPTED)

        if session.kind is not kind:
            logger.warning(f"Discarding {session.kind.value} session stored under {key}")
            self._discard(key)
            return LoadOutcome(None, LoadStatus.CORRUPTED)

        if session.submitted:
            logger.info(f"Discarding already submitted session {session.session_id}")
            self._discard(key)
            return LoadOutcome(None, LoadStatus.SUBMITTED)

        if session.is_expired():
            logger.info(f"Discarding expired exam session {session.session_id}")
            self._discard(key)
            return LoadOutcome(None, LoadStatus.EXPIRED)

        logger.debug(f"Resumed {kind.value} session {session.session_id}")
        return LoadOutcome(session, LoadStatus.RESUMED)

    def clear(self, kind: SessionKind | str) -> None:
        self._discard(SESSION_KEYS[SessionKind(kind)])

    def _discard(self, key: str) -> None:
        try:
            self.store.remove(key)
        except OSError as e:
            logger.warning(f"Could not remove {key}: {e}")
