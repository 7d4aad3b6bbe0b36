"""Service providers for route dependencies."""

from typing import Optional

from ..llm import LLMClient
from ..services.ai import AiService
from ..services.analytics import AnalyticsService
from ..services.categories import CategoryService
from ..services.focus_sessions import FocusSessionService
from ..services.goals import GoalService
from ..services.task_lists import TaskListService
from ..services.tasks import TaskService
from ..storage.database import get_db


_llm_client: Optional[LLMClient] = None


def get_task_service() -> TaskService:
    return TaskService(get_db())


def get_task_list_service() -> TaskListService:
    return TaskListService(get_db())


def get_category_service() -> CategoryService:
    return CategoryService(get_db())


def get_focus_session_service() -> FocusSessionService:
    return FocusSessionService(get_db())


def get_goal_service() -> GoalService:
    return GoalService(get_db())


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService(get_db())


def get_llm_client() -> LLMClient:
    """Get the shared language model client"""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


def reset_llm_client() -> None:
    global _llm_client
    if _llm_client is not None:
        _llm_client.close()
    _llm_client = None


def get_ai_service() -> AiService:
    return AiService(get_db(), get_llm_client())
