"""Domain records for focus-todo.

Plain dataclasses shared by the store, the services and the HTTP layer.
Optional associations (``Task.category``, ``FocusSession.task``) are filled
in by the services when they resolve weak references; they are never
persisted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .utils.datetime import now_utc, ensure_aware, to_iso_string


DEFAULT_CATEGORY_NAME = "Uncategorized"
DEFAULT_CATEGORY_COLOR = "#94a3b8"
DEFAULT_TASK_TITLE = "Unknown Task"
OTHERS_CATEGORY_NAME = "Others"
INBOX_TITLE = "Inbox"


class TaskStatus(Enum):
    """Task status states."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SessionType(Enum):
    """Kinds of pomodoro intervals."""
    FOCUS = "FOCUS"
    SHORT_BREAK = "SHORT_BREAK"
    LONG_BREAK = "LONG_BREAK"


class SessionStatus(Enum):
    """How a pomodoro interval ended."""
    COMPLETED = "COMPLETED"
    INTERRUPTED = "INTERRUPTED"


@dataclass
class TaskList:
    id: Optional[int]
    user_id: str
    title: str
    created_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "created_at": to_iso_string(self.created_at),
        }


@dataclass
class Category:
    id: Optional[int]
    user_id: str
    name: str
    color: str = DEFAULT_CATEGORY_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


@dataclass
class Subtask:
    """Checklist item owned by a task."""
    id: Optional[int]
    task_id: Optional[int]
    title: str
    description: Optional[str] = None
    is_completed: bool = False
    order_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "title": self.title,
            "description": self.description,
            "is_completed": self.is_completed,
            "order_index": self.order_index,
        }


@dataclass
class Task:
    """A single dated task occurrence."""

    id: Optional[int]
    user_id: str
    title: str
    task_list_id: int
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    category_id: Optional[int] = None
    estimated_pomodoros: Optional[int] = None

    # Scheduling
    scheduled_start_at: Optional[datetime] = None
    scheduled_end_at: Optional[datetime] = None
    is_all_day: bool = True

    # Recurrence: the parent carries the rule, children point at the parent
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    recurrence_parent_id: Optional[int] = None

    completed_at: Optional[datetime] = None
    is_deleted: bool = False
    created_at: datetime = field(default_factory=now_utc)
    subtasks: List[Subtask] = field(default_factory=list)

    # Resolved at read time, never stored
    category: Optional[Category] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        self.scheduled_start_at = ensure_aware(self.scheduled_start_at)
        self.scheduled_end_at = ensure_aware(self.scheduled_end_at)
        self.completed_at = ensure_aware(self.completed_at)
        self.created_at = ensure_aware(self.created_at)

    @property
    def completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def scheduled_date(self) -> Optional[date]:
        return self.scheduled_start_at.date() if self.scheduled_start_at else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the task to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "task_list_id": self.task_list_id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "category_color": self.category.color if self.category else None,
            "estimated_pomodoros": self.estimated_pomodoros,
            "scheduled_start_at": to_iso_string(self.scheduled_start_at),
            "scheduled_end_at": to_iso_string(self.scheduled_end_at),
            "is_all_day": self.is_all_day,
            "is_recurring": self.is_recurring,
            "recurrence_rule": self.recurrence_rule,
            "recurrence_parent_id": self.recurrence_parent_id,
            "completed_at": to_iso_string(self.completed_at),
            "is_deleted": self.is_deleted,
            "created_at": to_iso_string(self.created_at),
            "subtasks": [s.to_dict() for s in self.subtasks],
        }


@dataclass
class FocusSession:
    """One recorded pomodoro interval. Durations are in seconds."""

    id: Optional[int]
    user_id: str
    session_type: SessionType
    status: SessionStatus
    scheduled_duration: int
    actual_duration: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    task_id: Optional[int] = None
    created_at: datetime = field(default_factory=now_utc)

    # Resolved at read time; None when the task is gone
    task: Optional[Task] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        self.started_at = ensure_aware(self.started_at)
        self.ended_at = ensure_aware(self.ended_at)
        self.created_at = ensure_aware(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "session_type": self.session_type.value,
            "status": self.status.value,
            "scheduled_duration": self.scheduled_duration,
            "actual_duration": self.actual_duration,
            "started_at": to_iso_string(self.started_at),
            "ended_at": to_iso_string(self.ended_at),
        }


@dataclass
class DailyGoal:
    id: Optional[int]
    user_id: str
    date: date
    goal_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "date": self.date.isoformat(), "goal_minutes": self.goal_minutes}


@dataclass
class PomodoroSetting:
    """Per-user timer configuration. Durations are in minutes."""
    user_id: str
    focus_duration: int = 25
    short_break_duration: int = 5
    long_break_duration: int = 15
    sessions_until_long_break: int = 4
    daily_goal: int = 360

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focus_duration": self.focus_duration,
            "short_break_duration": self.short_break_duration,
            "long_break_duration": self.long_break_duration,
            "sessions_until_long_break": self.sessions_until_long_break,
            "daily_goal": self.daily_goal,
        }


@dataclass
class Conversation:
    id: str
    user_id: str
    title: Optional[str] = None
    created_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "created_at": to_iso_string(self.created_at)}


@dataclass
class ChatMessage:
    conversation_id: str
    role: str  # "user" or "assistant"
    content: str
    created_at: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "created_at": to_iso_string(self.created_at)}
