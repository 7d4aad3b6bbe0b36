"""Recording and reading pomodoro focus sessions."""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from ..domain import FocusSession, SessionStatus, SessionType
from ..errors import NotFoundError, ValidationError
from ..storage.database import DatabaseManager
from ..utils.datetime import ensure_aware, start_of_day


logger = logging.getLogger(__name__)


def resolve_sessions(db: DatabaseManager, user_id: str, sessions: List[FocusSession]) -> List[FocusSession]:
    """Attach each session's task, and the task's category, where they still exist.

    Dangling ids resolve to None; nothing here raises for a missing record.
    """
    tasks = db.get_tasks_by_ids(user_id, [s.task_id for s in sessions])
    categories = db.get_categories_by_ids(user_id, [t.category_id for t in tasks.values()])
    for task in tasks.values():
        task.category = categories.get(task.category_id)
    for session in sessions:
        session.task = tasks.get(session.task_id)
    return sessions


class FocusSessionService:
    """Stores focus sessions reported by the timer."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def record_session(
        self,
        user_id: str,
        session_type: str,
        status: str,
        scheduled_duration: int,
        actual_duration: int,
        started_at: datetime,
        ended_at: Optional[datetime] = None,
        task_id: Optional[int] = None,
        session_id: Optional[int] = None,
    ) -> FocusSession:
        """Record a finished interval, or correct an earlier one when an id is given.

        Raises:
            ValidationError: Unknown type/status, negative durations or an unknown task
            NotFoundError: The id to correct does not belong to the user
        """
        try:
            kind = SessionType(session_type.upper())
            outcome = SessionStatus(status.upper())
        except (AttributeError, ValueError):
            raise ValidationError(f"Invalid session type or status: {session_type}/{status}")

        if scheduled_duration is None or scheduled_duration < 0 or actual_duration is None or actual_duration < 0:
            raise ValidationError("Durations must be zero or more seconds")
        if started_at is None:
            raise ValidationError("started_at is required")
        if task_id is not None and self.db.get_task(user_id, task_id) is None:
            raise ValidationError(f"Task {task_id} not found")

        session = FocusSession(
            id=None,
            user_id=user_id,
            session_type=kind,
            status=outcome,
            scheduled_duration=scheduled_duration,
            actual_duration=actual_duration,
            started_at=ensure_aware(started_at),
            ended_at=ensure_aware(ended_at),
            task_id=task_id,
        )

        if session_id is not None:
            existing = self.db.get_focus_session(user_id, session_id)
            if existing is None:
                raise NotFoundError(f"Focus session {session_id} not found")
            session.id = existing.id
            session.created_at = existing.created_at

        saved = self.db.save_focus_session(session)
        logger.info(f"Recorded {kind.value} session {saved.id} ({actual_duration}s) for user {user_id}")
        return saved

    def sessions_between(
        self,
        user_id: str,
        start: date,
        end: date,
        session_type: Optional[SessionType] = None,
    ) -> List[FocusSession]:
        """Resolved sessions started on any day from start to end inclusive."""
        sessions = self.db.list_focus_sessions(
            user_id, start_of_day(start), start_of_day(end + timedelta(days=1)), session_type
        )
        return resolve_sessions(self.db, user_id, sessions)

    def sessions_on(self, user_id: str, day: date) -> List[FocusSession]:
        return self.sessions_between(user_id, day, day)

    def daily_focus_seconds(self, user_id: str, day: date) -> int:
        return sum(s.actual_duration for s in self.sessions_between(user_id, day, day, SessionType.FOCUS))

    def total_focus_seconds(self, user_id: str) -> int:
        return self.db.total_focus_seconds(user_id)

    def delete_session(self, user_id: str, session_id: int) -> None:
        if not self.db.delete_focus_session(user_id, session_id):
            raise NotFoundError(f"Focus session {session_id} not found")
