"""Daily goal and pomodoro setting API routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from ...models import DailyGoalSet, PomodoroSettingUpdate
from ...services.goals import GoalService
from ..auth import get_current_user_id
from ..deps import get_goal_service


router = APIRouter(prefix="/api", tags=["goals"])


@router.get("/daily-goals")
def list_goals(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: GoalService = Depends(get_goal_service),
):
    return [g.to_dict() for g in service.goals_in_range(user_id, start, end)]


@router.get("/daily-goals/{day}")
def get_goal(
    day: date,
    user_id: str = Depends(get_current_user_id),
    service: GoalService = Depends(get_goal_service),
):
    return service.get_goal(user_id, day).to_dict()


@router.put("/daily-goals/{day}")
def set_goal(
    day: date,
    body: DailyGoalSet,
    user_id: str = Depends(get_current_user_id),
    service: GoalService = Depends(get_goal_service),
):
    return service.set_goal(user_id, day, body.goal_minutes).to_dict()


@router.get("/pomodoro-settings")
def get_settings(
    user_id: str = Depends(get_current_user_id),
    service: GoalService = Depends(get_goal_service),
):
    return service.get_settings(user_id).to_dict()


@router.put("/pomodoro-settings")
def update_settings(
    body: PomodoroSettingUpdate,
    user_id: str = Depends(get_current_user_id),
    service: GoalService = Depends(get_goal_service),
):
    return service.update_settings(user_id, **body.model_dump(exclude_none=True)).to_dict()
