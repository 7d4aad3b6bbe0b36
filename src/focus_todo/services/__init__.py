"""Application services for focus-todo."""

from .ai import AiService, ChatResult
from .analytics import AnalyticsAggregator, AnalyticsCalculator, AnalyticsService
from .categories import CategoryService
from .focus_sessions import FocusSessionService
from .goals import GoalService
from .task_lists import TaskListService
from .tasks import BulkOperationResult, SyncResult, TaskService, TaskStats

__all__ = [
    "AiService",
    "ChatResult",
    "AnalyticsAggregator",
    "AnalyticsCalculator",
    "AnalyticsService",
    "CategoryService",
    "FocusSessionService",
    "GoalService",
    "TaskListService",
    "BulkOperationResult",
    "SyncResult",
    "TaskService",
    "TaskStats",
]
