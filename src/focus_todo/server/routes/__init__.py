"""API routes."""

from .ai import router as ai_router
from .analytics import router as analytics_router
from .categories import router as categories_router
from .focus_sessions import router as focus_sessions_router
from .goals import router as goals_router
from .task_lists import router as task_lists_router
from .tasks import router as tasks_router

__all__ = [
    "ai_router",
    "analytics_router",
    "categories_router",
    "focus_sessions_router",
    "goals_router",
    "task_lists_router",
    "tasks_router",
]
