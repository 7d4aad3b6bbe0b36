"""Analytics API routes. All ranges are inclusive calendar dates."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from ...services.analytics import AnalyticsService
from ..auth import get_current_user_id
from ..deps import get_analytics_service


router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/daily-goal")
def daily_goal(
    day: date = Query(..., alias="date"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.daily_goal_with_actual(user_id, day).to_dict()


@router.get("/daily-goals")
def daily_goals(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return [g.to_dict() for g in service.daily_goals_with_actual_in_range(user_id, start, end)]


@router.get("/efficiency")
def efficiency(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.efficiency_stats(user_id, start, end).to_dict()


@router.get("/daily-focus")
def daily_focus_by_category(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return [d.to_dict() for d in service.daily_focus_by_category(user_id, start, end)]


@router.get("/categories")
def category_aggregation(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.category_aggregation(user_id, start, end).to_dict()


@router.get("/task-summary")
def task_summary(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return [g.to_dict() for g in service.task_summary(user_id, start, end)]


@router.get("/daily")
def daily_analytics(
    day: date = Query(..., alias="date"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.daily_analytics(user_id, day).to_dict()


@router.get("/weekly")
def weekly_analytics(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.weekly_analytics(user_id, start, end).to_dict()


@router.get("/monthly")
def monthly_analytics(
    year: int = Query(..., ge=1),
    month: int = Query(..., ge=1, le=12),
    user_id: str = Depends(get_current_user_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.monthly_analytics(user_id, year, month).to_dict()
