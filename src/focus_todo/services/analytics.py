"""Focus analytics for focus-todo.

This module turns raw focus sessions and tasks into dashboard rollups:
- Focus time per category, per day and per week
- Task summaries with estimate progress, grouped by recurring series
- Rhythm, volume and efficiency scores against the user's daily goals
- Daily, weekly and monthly views with a KPI block compared to the
  previous period

Aggregation never fails on a missing task or category; display defaults
are substituted instead.
"""

import logging
import math
from calendar import monthrange
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from ..domain import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_NAME,
    DEFAULT_TASK_TITLE,
    OTHERS_CATEGORY_NAME,
    FocusSession,
    SessionStatus,
    SessionType,
    Task,
)
from ..errors import ValidationError
from ..storage.database import DatabaseManager
from ..utils.datetime import day_range, start_of_day, to_iso_string
from .focus_sessions import FocusSessionService
from .goals import GoalService


logger = logging.getLogger(__name__)

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _jsonable(value: Any) -> Any:
    """Convert dates and enums nested in asdict() output."""
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, datetime):
        return to_iso_string(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return _jsonable(asdict(self))


# ============================================================================
# Result Models
# ============================================================================

@dataclass
class CategoryFocusTime(_Serializable):
    category_id: Optional[int]
    category_name: str
    category_color: str
    minutes: int


@dataclass
class TaskSummary(_Serializable):
    """One task's focus time and estimate progress within a range"""
    task_id: int
    task_title: str
    category_name: str
    category_color: str
    status: str
    completed: bool
    focus_minutes: int
    estimated_minutes: int
    progress_percentage: int  # rounded half up
    parent_task_id: Optional[int]
    start_date: Optional[date]


@dataclass
class GroupedTaskSummary(_Serializable):
    """A recurring series (or a standalone task) rolled up for display"""
    parent_task_id: int  # series parent id, or the task's own id
    title: str
    category_name: str
    category_color: str
    total_focus_minutes: int
    completed_count: int
    total_count: int
    is_recurring: bool
    children: List[TaskSummary] = field(default_factory=list)


@dataclass
class FocusSessionData(_Serializable):
    id: Optional[int]
    task_id: Optional[int]
    task_title: str
    category_name: str
    category_color: str
    session_type: str
    status: str
    scheduled_duration: int
    actual_duration: int
    started_at: Optional[str]
    ended_at: Optional[str]


@dataclass
class DailyGoalWithActual(_Serializable):
    date: date
    goal_minutes: int
    actual_minutes: int
    percentage_complete: float


@dataclass
class EfficiencyStats(_Serializable):
    start_date: date
    end_date: date
    efficiency_score: float
    rhythm_quality: float
    volume_balance: float


@dataclass
class DailyFocusByCategory(_Serializable):
    date: date
    day_of_week: str
    goal_minutes: int
    categories: List[CategoryFocusTime] = field(default_factory=list)


@dataclass
class CategoryAggregation(_Serializable):
    start_date: date
    end_date: date
    total_minutes: int
    categories: List[CategoryFocusTime] = field(default_factory=list)


@dataclass
class KpiData(_Serializable):
    total_focus_minutes: int
    tasks_completed_count: int
    tasks_total_count: int
    efficiency_score: float
    rhythm_quality: float
    volume_balance: float
    focus_comparison_diff_minutes: int
    task_completion_rate_growth: float
    total_estimated_minutes: int
    total_actual_minutes: int


@dataclass
class DayActivity(_Serializable):
    date: str
    minutes: int


@dataclass
class DailyAnalytics(_Serializable):
    kpi: KpiData
    task_summaries: List[TaskSummary]
    focus_sessions: List[FocusSessionData]


@dataclass
class WeeklyAnalytics(_Serializable):
    kpi: KpiData
    daily_average_focus_minutes: float
    daily_focus_data: List[DailyFocusByCategory]
    category_aggregation: List[CategoryFocusTime]
    task_summaries: List[GroupedTaskSummary]


@dataclass
class MonthlyAnalytics(_Serializable):
    kpi: KpiData
    focus_days: int
    daily_average_focus_minutes: float
    daily_activity: List[DayActivity]
    category_aggregation: Dict[str, List[CategoryFocusTime]]


# ============================================================================
# Calculator
# ============================================================================

def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


class AnalyticsCalculator:
    """Pure scoring functions, no I/O"""

    MAX_VOLUME_BALANCE_SCORE = 200.0

    @staticmethod
    def rhythm_quality(completed_count: int, total_count: int) -> float:
        """Share of sessions that ran to completion, in percent."""
        if total_count > 0:
            return completed_count / total_count * 100.0
        return 0.0

    @classmethod
    def volume_balance(cls, actual_minutes: int, goal_minutes: int) -> float:
        """Goal achievement in percent, mirrored above 100 so overwork scores lower."""
        if goal_minutes > 0:
            achievement = actual_minutes / goal_minutes * 100.0
            if achievement <= 100.0:
                return achievement
            return max(0.0, cls.MAX_VOLUME_BALANCE_SCORE - achievement)
        return 0.0

    @staticmethod
    def efficiency_score(rhythm_quality: float, volume_balance: float) -> float:
        return (rhythm_quality + volume_balance) / 2.0

    @staticmethod
    def progress(focus_minutes: int, estimated_minutes: Optional[int], completed: bool) -> int:
        """Truncated progress percentage."""
        if estimated_minutes is not None and estimated_minutes > 0:
            return int(focus_minutes * 100.0 / estimated_minutes)
        if completed:
            return 100
        return 0

    @staticmethod
    def completion_rate(completed: int, total: int) -> float:
        return completed / total * 100 if total > 0 else 0.0


# ============================================================================
# Aggregator
# ============================================================================

class AnalyticsAggregator:
    """Turns resolved sessions and tasks into display rows"""

    def aggregate_categories(self, sessions: List[FocusSession]) -> List[CategoryFocusTime]:
        """Focus minutes per category of the session's task.

        Sessions without a task or category share one bucket with a None id.
        """
        seconds: Dict[Optional[int], int] = OrderedDict()
        categories = {}

        for session in sessions:
            category = session.task.category if session.task else None
            key = category.id if category else None
            seconds[key] = seconds.get(key, 0) + (session.actual_duration or 0)
            if category is not None:
                categories.setdefault(key, category)

        rows = []
        for key, total in seconds.items():
            category = categories.get(key)
            rows.append(CategoryFocusTime(
                category_id=key,
                category_name=category.name if category else DEFAULT_CATEGORY_NAME,
                category_color=category.color if category else DEFAULT_CATEGORY_COLOR,
                minutes=total // 60,
            ))
        rows.sort(key=lambda r: (-r.minutes, r.category_name))
        return rows

    def build_task_summary_list(
        self,
        sessions: List[FocusSession],
        tasks: List[Task],
        focus_duration: int,
    ) -> List[TaskSummary]:
        """Summaries for scheduled tasks plus any task a session points at.

        Sorted newest scheduled date first (undated last), then by id descending.
        """
        unique: Dict[int, Task] = OrderedDict()
        for task in tasks or []:
            unique[task.id] = task
        for session in sessions or []:
            if session.task is not None:
                unique.setdefault(session.task.id, session.task)

        seconds_by_task: Dict[int, int] = {}
        for session in sessions or []:
            if session.task is not None:
                seconds_by_task[session.task.id] = seconds_by_task.get(session.task.id, 0) + (session.actual_duration or 0)

        summaries = [
            self._summarize(task, seconds_by_task.get(task.id, 0) // 60, focus_duration)
            for task in unique.values()
        ]

        dated = [s for s in summaries if s.start_date is not None]
        undated = [s for s in summaries if s.start_date is None]
        dated.sort(key=lambda s: (s.start_date, s.task_id), reverse=True)
        return dated + undated

    @staticmethod
    def _summarize(task: Task, focus_minutes: int, focus_duration: int) -> TaskSummary:
        estimated = task.estimated_pomodoros * focus_duration if task.estimated_pomodoros else 0
        if estimated > 0:
            progress = round_half_up(focus_minutes / estimated * 100)
        elif task.completed:
            progress = 100
        else:
            progress = 0

        category = task.category
        return TaskSummary(
            task_id=task.id,
            task_title=task.title,
            category_name=category.name if category else DEFAULT_CATEGORY_NAME,
            category_color=category.color if category else DEFAULT_CATEGORY_COLOR,
            status=task.status.value,
            completed=task.completed,
            focus_minutes=focus_minutes,
            estimated_minutes=estimated,
            progress_percentage=progress,
            parent_task_id=task.recurrence_parent_id,
            start_date=task.scheduled_date,
        )

    def group_task_summaries(self, summaries: List[TaskSummary]) -> List[GroupedTaskSummary]:
        """Roll occurrences of a series into one row; standalone tasks stay single."""
        grouped: Dict[int, List[TaskSummary]] = OrderedDict()
        standalone: List[TaskSummary] = []

        for summary in summaries:
            if summary.parent_task_id is not None:
                grouped.setdefault(summary.parent_task_id, []).append(summary)
            else:
                standalone.append(summary)

        result = []
        for parent_id, members in grouped.items():
            first = members[0]
            result.append(GroupedTaskSummary(
                parent_task_id=parent_id,
                title=first.task_title,
                category_name=first.category_name,
                category_color=first.category_color,
                total_focus_minutes=sum(m.focus_minutes for m in members),
                completed_count=sum(1 for m in members if m.completed),
                total_count=len(members),
                is_recurring=True,
                children=members,
            ))

        for summary in standalone:
            result.append(GroupedTaskSummary(
                parent_task_id=summary.task_id,
                title=summary.task_title,
                category_name=summary.category_name,
                category_color=summary.category_color,
                total_focus_minutes=summary.focus_minutes,
                completed_count=1 if summary.completed else 0,
                total_count=1,
                is_recurring=False,
                children=[summary],
            ))

        result.sort(key=lambda g: g.total_focus_minutes, reverse=True)
        return result

    def map_to_focus_session_data(self, sessions: List[FocusSession]) -> List[FocusSessionData]:
        rows = []
        for session in sessions or []:
            task = session.task
            category = task.category if task else None
            rows.append(FocusSessionData(
                id=session.id,
                task_id=task.id if task else None,
                task_title=task.title if task else DEFAULT_TASK_TITLE,
                category_name=category.name if category else OTHERS_CATEGORY_NAME,
                category_color=category.color if category else DEFAULT_CATEGORY_COLOR,
                session_type=session.session_type.value,
                status=session.status.value,
                scheduled_duration=session.scheduled_duration,
                actual_duration=session.actual_duration,
                started_at=to_iso_string(session.started_at),
                ended_at=to_iso_string(session.ended_at),
            ))
        return rows


# ============================================================================
# Service
# ============================================================================

def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must not be before start date")


class AnalyticsService:
    """Read-side analytics for one user per call. Date ranges are inclusive."""

    def __init__(self, db: DatabaseManager):
        self.db = db
        self.goals = GoalService(db)
        self.sessions = FocusSessionService(db)
        self.aggregator = AnalyticsAggregator()
        self.calculator = AnalyticsCalculator()

    # Data access

    def _sessions(self, user_id: str, start: date, end: date, focus_only: bool = True) -> List[FocusSession]:
        return self.sessions.sessions_between(user_id, start, end, SessionType.FOCUS if focus_only else None)

    def _scheduled_tasks(self, user_id: str, start: date, end: date) -> List[Task]:
        tasks = self.db.list_tasks_scheduled_between(
            user_id, start_of_day(start), start_of_day(end + timedelta(days=1))
        )
        categories = self.db.get_categories_by_ids(user_id, [t.category_id for t in tasks])
        for task in tasks:
            task.category = categories.get(task.category_id)
        return tasks

    def _focus_minutes(self, user_id: str, start: date, end: date) -> int:
        return sum(s.actual_duration for s in self._sessions(user_id, start, end)) // 60

    def _focus_minutes_by_day(self, sessions: List[FocusSession]) -> Dict[date, int]:
        seconds: Dict[date, int] = {}
        for session in sessions:
            day = session.started_at.date()
            seconds[day] = seconds.get(day, 0) + session.actual_duration
        return {day: total // 60 for day, total in seconds.items()}

    # Goals

    def _with_actual(self, day: date, goal_minutes: int, actual_minutes: int) -> DailyGoalWithActual:
        percentage = round(actual_minutes * 100.0 / goal_minutes, 1) if goal_minutes > 0 else 0.0
        return DailyGoalWithActual(day, goal_minutes, actual_minutes, percentage)

    def daily_goal_with_actual(self, user_id: str, day: date) -> DailyGoalWithActual:
        goal = self.goals.get_goal(user_id, day)
        return self._with_actual(day, goal.goal_minutes, self._focus_minutes(user_id, day, day))

    def daily_goals_with_actual_in_range(self, user_id: str, start: date, end: date) -> List[DailyGoalWithActual]:
        _check_range(start, end)
        actual = self._focus_minutes_by_day(self._sessions(user_id, start, end))
        return [
            self._with_actual(goal.date, goal.goal_minutes, actual.get(goal.date, 0))
            for goal in self.goals.goals_in_range(user_id, start, end)
        ]

    # Scores

    def efficiency_stats(self, user_id: str, start: date, end: date) -> EfficiencyStats:
        """Rhythm over FOCUS sessions, volume of focus minutes against the summed goals."""
        _check_range(start, end)
        sessions = self._sessions(user_id, start, end)
        completed = sum(1 for s in sessions if s.status == SessionStatus.COMPLETED)
        rhythm = self.calculator.rhythm_quality(completed, len(sessions))

        focus_minutes = sum(s.actual_duration for s in sessions) // 60
        goal_minutes = sum(g.goal_minutes for g in self.goals.goals_in_range(user_id, start, end))
        volume = self.calculator.volume_balance(focus_minutes, goal_minutes)

        return EfficiencyStats(
            start_date=start,
            end_date=end,
            efficiency_score=self.calculator.efficiency_score(rhythm, volume),
            rhythm_quality=rhythm,
            volume_balance=volume,
        )

    # Category rollups

    def daily_focus_by_category(self, user_id: str, start: date, end: date) -> List[DailyFocusByCategory]:
        _check_range(start, end)
        goals = self.goals.goal_minutes_by_day(user_id, start, end)
        by_day: Dict[date, List[FocusSession]] = {}
        for session in self._sessions(user_id, start, end):
            by_day.setdefault(session.started_at.date(), []).append(session)

        result = []
        for day in day_range(start, end):
            categories = self.aggregator.aggregate_categories(by_day.get(day, []))
            categories.sort(key=lambda c: c.category_name)
            result.append(DailyFocusByCategory(day, WEEKDAY_LABELS[day.weekday()], goals.get(day, 0), categories))
        return result

    def category_aggregation(self, user_id: str, start: date, end: date) -> CategoryAggregation:
        _check_range(start, end)
        categories = self.aggregator.aggregate_categories(self._sessions(user_id, start, end))
        return CategoryAggregation(start, end, sum(c.minutes for c in categories), categories)

    # Task rollups

    def _task_summaries(self, user_id: str, start: date, end: date) -> List[TaskSummary]:
        focus_duration = self.goals.get_settings(user_id).focus_duration
        return self.aggregator.build_task_summary_list(
            self._sessions(user_id, start, end),
            self._scheduled_tasks(user_id, start, end),
            focus_duration,
        )

    def task_summary(self, user_id: str, start: date, end: date) -> List[GroupedTaskSummary]:
        _check_range(start, end)
        return self.aggregator.group_task_summaries(self._task_summaries(user_id, start, end))

    # Consolidated views

    def _kpi(self, user_id: str, start: date, end: date, prev_start: date, prev_end: date) -> KpiData:
        total = self._focus_minutes(user_id, start, end)
        previous = self._focus_minutes(user_id, prev_start, prev_end)
        efficiency = self.efficiency_stats(user_id, start, end)

        tasks = self._scheduled_tasks(user_id, start, end)
        prev_tasks = self._scheduled_tasks(user_id, prev_start, prev_end)
        completed = [t for t in tasks if t.completed]
        prev_completed = sum(1 for t in prev_tasks if t.completed)

        rate = self.calculator.completion_rate(len(completed), len(tasks))
        prev_rate = self.calculator.completion_rate(prev_completed, len(prev_tasks))
        growth = (rate - prev_rate) / prev_rate * 100 if prev_rate > 0 else 0.0

        focus_duration = self.goals.get_settings(user_id).focus_duration
        estimated_tasks = [t for t in completed if t.estimated_pomodoros]
        estimated = sum(t.estimated_pomodoros for t in estimated_tasks) * focus_duration
        actual = sum(self.db.focus_seconds_by_task(user_id, [t.id for t in estimated_tasks]).values()) // 60

        return KpiData(
            total_focus_minutes=total,
            tasks_completed_count=len(completed),
            tasks_total_count=len(tasks),
            efficiency_score=efficiency.efficiency_score,
            rhythm_quality=efficiency.rhythm_quality,
            volume_balance=efficiency.volume_balance,
            focus_comparison_diff_minutes=total - previous,
            task_completion_rate_growth=growth,
            total_estimated_minutes=estimated,
            total_actual_minutes=actual,
        )

    def daily_analytics(self, user_id: str, day: date) -> DailyAnalytics:
        logger.info(f"Getting daily analytics for user {user_id} on {day}")
        previous = day - timedelta(days=1)
        return DailyAnalytics(
            kpi=self._kpi(user_id, day, day, previous, previous),
            task_summaries=self._task_summaries(user_id, day, day),
            focus_sessions=self.aggregator.map_to_focus_session_data(
                self._sessions(user_id, day, day, focus_only=False)
            ),
        )

    def weekly_analytics(self, user_id: str, start: date, end: date) -> WeeklyAnalytics:
        """Consolidated view of a range, compared with the range of equal length before it."""
        _check_range(start, end)
        logger.info(f"Getting weekly analytics for user {user_id} from {start} to {end}")
        days = (end - start).days + 1
        kpi = self._kpi(user_id, start, end, start - timedelta(days=days), start - timedelta(days=1))
        return WeeklyAnalytics(
            kpi=kpi,
            daily_average_focus_minutes=kpi.total_focus_minutes / days,
            daily_focus_data=self.daily_focus_by_category(user_id, start, end),
            category_aggregation=self.category_aggregation(user_id, start, end).categories,
            task_summaries=self.task_summary(user_id, start, end),
        )

    def monthly_analytics(self, user_id: str, year: int, month: int) -> MonthlyAnalytics:
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        logger.info(f"Getting monthly analytics for user {user_id} for {year}-{month:02d}")

        first = date(year, month, 1)
        last = date(year, month, monthrange(year, month)[1])
        prev_last = first - timedelta(days=1)
        prev_first = prev_last.replace(day=1)

        kpi = self._kpi(user_id, first, last, prev_first, prev_last)
        sessions = self._sessions(user_id, first, last)
        minutes_by_day = self._focus_minutes_by_day(sessions)
        focus_days = len({s.started_at.date() for s in sessions})

        weeks: Dict[str, List[CategoryFocusTime]] = OrderedDict()
        week_start = first
        number = 1
        while week_start <= last:
            week_end = min(week_start + timedelta(days=6), last)
            week_sessions = [s for s in sessions if week_start <= s.started_at.date() <= week_end]
            weeks[f"Week {number}"] = self.aggregator.aggregate_categories(week_sessions)
            week_start = week_end + timedelta(days=1)
            number += 1

        return MonthlyAnalytics(
            kpi=kpi,
            focus_days=focus_days,
            daily_average_focus_minutes=kpi.total_focus_minutes / focus_days if focus_days else 0.0,
            daily_activity=[
                DayActivity(day.isoformat(), minutes_by_day.get(day, 0)) for day in day_range(first, last)
            ],
            category_aggregation=weeks,
        )
