"""
Tests for analytics aggregation, scoring and the dashboard rollups
"""

from datetime import date

import pytest

from conftest import make_session, utc
from focus_todo.domain import Category, SessionStatus, SessionType, Task, TaskStatus
from focus_todo.errors import ValidationError
from focus_todo.models import TaskCreate
from focus_todo.services.analytics import (
    AnalyticsAggregator,
    AnalyticsCalculator,
    AnalyticsService,
    TaskSummary,
    round_half_up,
)
from focus_todo.services.goals import GoalService
from focus_todo.services.tasks import TaskService


USER = "alice"


def summary(task_id, minutes, parent_id=None, completed=False, title=None):
    return TaskSummary(
        task_id=task_id,
        task_title=title or f"Task {task_id}",
        category_name="Work",
        category_color="#ff0000",
        status="COMPLETED" if completed else "PENDING",
        completed=completed,
        focus_minutes=minutes,
        estimated_minutes=0,
        progress_percentage=0,
        parent_task_id=parent_id,
        start_date=None,
    )


def task(task_id, category=None, start=None, pomodoros=None, status=TaskStatus.PENDING, parent_id=None):
    t = Task(
        id=task_id,
        user_id=USER,
        title=f"Task {task_id}",
        task_list_id=1,
        status=status,
        category_id=category.id if category else None,
        estimated_pomodoros=pomodoros,
        scheduled_start_at=start,
        recurrence_parent_id=parent_id,
    )
    t.category = category
    return t


class TestAnalyticsCalculator:
    """Test the pure scoring functions"""

    def test_volume_balance(self):
        assert AnalyticsCalculator.volume_balance(50, 100) == 50
        assert AnalyticsCalculator.volume_balance(150, 100) == 50
        assert AnalyticsCalculator.volume_balance(250, 100) == 0
        assert AnalyticsCalculator.volume_balance(100, 100) == 100
        assert AnalyticsCalculator.volume_balance(30, 0) == 0

    def test_efficiency_score_is_mean(self):
        assert AnalyticsCalculator.efficiency_score(80, 40) == 60
        assert AnalyticsCalculator.efficiency_score(0, 0) == 0

    def test_rhythm_quality(self):
        assert AnalyticsCalculator.rhythm_quality(3, 4) == 75
        assert AnalyticsCalculator.rhythm_quality(0, 0) == 0

    def test_truncating_progress(self):
        assert AnalyticsCalculator.progress(50, 150, False) == 33
        assert AnalyticsCalculator.progress(2, 3, False) == 66
        assert AnalyticsCalculator.progress(0, 0, True) == 100
        assert AnalyticsCalculator.progress(10, None, False) == 0

    def test_completion_rate(self):
        assert AnalyticsCalculator.completion_rate(1, 4) == 25
        assert AnalyticsCalculator.completion_rate(0, 0) == 0

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(66.666) == 67
        assert round_half_up(33.333) == 33


class TestAnalyticsAggregator:
    """Test the aggregation of resolved sessions and tasks"""

    @pytest.fixture
    def aggregator(self):
        return AnalyticsAggregator()

    def test_sessions_without_task_share_uncategorized_bucket(self, aggregator):
        sessions = [make_session(USER, utc(2024, 1, 1, 9), 90), make_session(USER, utc(2024, 1, 1, 10), 90)]
        rows = aggregator.aggregate_categories(sessions)

        assert len(rows) == 1
        assert rows[0].category_id is None
        assert rows[0].category_name == "Uncategorized"
        assert rows[0].category_color == "#94a3b8"
        assert rows[0].minutes == 3

    def test_categories_are_summed(self, aggregator):
        work = Category(1, USER, "Work", "#ff0000")
        study = Category(2, USER, "Study", "#00ff00")
        sessions = []
        for seconds, category in [(1500, work), (1500, work), (600, study)]:
            session = make_session(USER, utc(2024, 1, 1, 9), seconds)
            session.task = task(len(sessions) + 1, category)
            sessions.append(session)

        rows = aggregator.aggregate_categories(sessions)

        assert [(r.category_name, r.minutes) for r in rows] == [("Work", 50), ("Study", 10)]

    def test_group_task_summaries(self, aggregator):
        groups = aggregator.group_task_summaries([
            summary(2, 30, parent_id=1, completed=True),
            summary(3, 20, parent_id=1),
            summary(4, 10),
        ])

        assert len(groups) == 2
        series, single = groups
        assert series.parent_task_id == 1
        assert series.total_count == 2
        assert series.total_focus_minutes == 50
        assert series.completed_count == 1
        assert series.is_recurring
        assert [c.task_id for c in series.children] == [2, 3]
        assert single.parent_task_id == 4
        assert single.total_count == 1
        assert not single.is_recurring

    def test_groups_sorted_by_focus(self, aggregator):
        groups = aggregator.group_task_summaries([summary(1, 5), summary(2, 40), summary(3, 20, parent_id=9)])
        assert [g.parent_task_id for g in groups] == [2, 9, 1]

    def test_task_summary_progress_is_rounded(self, aggregator):
        t = task(1, pomodoros=3, start=utc(2024, 1, 1, 9))
        session = make_session(USER, utc(2024, 1, 1, 9), 120, task_id=1)
        session.task = t

        rows = aggregator.build_task_summary_list([session], [t], focus_duration=1)

        assert len(rows) == 1
        assert rows[0].focus_minutes == 2
        assert rows[0].estimated_minutes == 3
        assert rows[0].progress_percentage == 67

    def test_task_summary_without_estimate(self, aggregator):
        done = task(1, status=TaskStatus.COMPLETED, start=utc(2024, 1, 1))
        open_task = task(2, start=utc(2024, 1, 1))
        rows = {r.task_id: r for r in aggregator.build_task_summary_list([], [done, open_task], 25)}
        assert rows[1].progress_percentage == 100
        assert rows[2].progress_percentage == 0

    def test_task_summary_order_and_union(self, aggregator):
        early = task(1, start=utc(2024, 1, 1))
        late = task(2, start=utc(2024, 1, 5))
        same_day = task(3, start=utc(2024, 1, 5))
        undated = task(4)
        session = make_session(USER, utc(2024, 1, 3), 60, task_id=4)
        session.task = undated

        rows = aggregator.build_task_summary_list([session], [early, late, same_day], 25)

        assert [r.task_id for r in rows] == [3, 2, 1, 4]
        assert rows[-1].focus_minutes == 1

    def test_map_to_focus_session_data_fallbacks(self, aggregator):
        orphan = make_session(USER, utc(2024, 1, 1, 9), 1500)
        orphan.id = 7
        rows = aggregator.map_to_focus_session_data([orphan])

        assert rows[0].task_title == "Unknown Task"
        assert rows[0].category_name == "Others"
        assert rows[0].category_color == "#94a3b8"
        assert rows[0].started_at == "2024-01-01T09:00:00+00:00"
        assert rows[0].ended_at is None


class TestAnalyticsService:
    """Test the rollups served by the analytics endpoints"""

    @pytest.fixture
    def service(self, db):
        return AnalyticsService(db)

    @pytest.fixture
    def tasks(self, db):
        return TaskService(db)

    @pytest.fixture
    def goals(self, db):
        return GoalService(db)

    def test_daily_goal_with_actual(self, service, goals, db):
        goals.set_goal(USER, date(2024, 1, 1), 120)
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 45 * 60))
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 11), 5 * 60, session_type=SessionType.SHORT_BREAK))

        result = service.daily_goal_with_actual(USER, date(2024, 1, 1))

        assert result.goal_minutes == 120
        assert result.actual_minutes == 45
        assert result.percentage_complete == 37.5

    def test_zero_goal_gives_zero_percentage(self, service, goals, db):
        goals.set_goal(USER, date(2024, 1, 1), 0)
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 600))
        assert service.daily_goal_with_actual(USER, date(2024, 1, 1)).percentage_complete == 0

    def test_efficiency_stats(self, service, goals, db):
        goals.set_goal(USER, date(2024, 1, 1), 60)
        goals.set_goal(USER, date(2024, 1, 2), 60)
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 60 * 60))
        db.save_focus_session(make_session(
            USER, utc(2024, 1, 2, 9), 30 * 60, status=SessionStatus.INTERRUPTED
        ))

        stats = service.efficiency_stats(USER, date(2024, 1, 1), date(2024, 1, 2))

        assert stats.rhythm_quality == 50
        assert stats.volume_balance == 75
        assert stats.efficiency_score == 62.5

    def test_invalid_range(self, service):
        with pytest.raises(ValidationError):
            service.category_aggregation(USER, date(2024, 1, 2), date(2024, 1, 1))

    def test_daily_focus_by_category(self, service, tasks, goals, db):
        work = db.create_category(USER, "Work", "#ff0000")
        t = tasks.create_task(USER, TaskCreate(title="Deploy", category_id=work.id))
        goals.set_goal(USER, date(2024, 1, 1), 90)
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 25 * 60, task_id=t.id))

        days = service.daily_focus_by_category(USER, date(2024, 1, 1), date(2024, 1, 3))

        assert [d.day_of_week for d in days] == ["Mon", "Tue", "Wed"]
        assert days[0].goal_minutes == 90
        assert [(c.category_name, c.minutes) for c in days[0].categories] == [("Work", 25)]
        assert days[1].categories == []

    def test_deleted_task_does_not_break_aggregation(self, service, tasks, db):
        t = tasks.create_task(USER, TaskCreate(title="Gone", category_name="Work"))
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 600, task_id=t.id))
        tasks.delete_task_permanently(USER, t.id)

        result = service.category_aggregation(USER, date(2024, 1, 1), date(2024, 1, 1))

        assert result.total_minutes == 10
        assert result.categories[0].category_name == "Uncategorized"

    def test_task_summary_groups_series(self, service, tasks, db):
        parent = tasks.create_task(USER, TaskCreate.model_validate({
            "title": "Standup",
            "scheduledStartAt": "2024-01-01T09:00:00Z",
            "isRecurring": True,
            "recurrenceRule": {"frequency": "DAILY", "count": 3},
        }))
        db.save_focus_session(make_session(USER, utc(2024, 1, 2, 9), 15 * 60, task_id=parent.id + 1))

        groups = service.task_summary(USER, date(2024, 1, 1), date(2024, 1, 7))

        # Occurrences roll up under the parent id; the parent itself stays single
        assert len(groups) == 2
        series, head = groups
        assert series.parent_task_id == parent.id
        assert series.is_recurring
        assert series.total_count == 2
        assert series.total_focus_minutes == 15
        assert head.parent_task_id == parent.id
        assert head.total_count == 1
        assert not head.is_recurring

    def test_weekly_analytics_kpi(self, service, tasks, goals, db):
        for day, status in [(1, TaskStatus.COMPLETED), (2, TaskStatus.PENDING),
                            (3, TaskStatus.PENDING), (4, TaskStatus.PENDING)]:
            tasks.create_task(USER, TaskCreate(title=f"Prev {day}", status=status,
                                               scheduled_start_at=utc(2024, 1, day, 9)))
        done = tasks.create_task(USER, TaskCreate(title="Cur done", status=TaskStatus.COMPLETED,
                                                  estimated_pomodoros=2,
                                                  scheduled_start_at=utc(2024, 1, 8, 9)))
        tasks.create_task(USER, TaskCreate(title="Cur open", scheduled_start_at=utc(2024, 1, 9, 9)))
        db.save_focus_session(make_session(USER, utc(2024, 1, 3, 9), 20 * 60))
        db.save_focus_session(make_session(USER, utc(2024, 1, 8, 9), 50 * 60, task_id=done.id))
        db.save_focus_session(make_session(USER, utc(2024, 1, 9, 9), 20 * 60))

        weekly = service.weekly_analytics(USER, date(2024, 1, 8), date(2024, 1, 14))
        kpi = weekly.kpi

        assert kpi.total_focus_minutes == 70
        assert kpi.focus_comparison_diff_minutes == 50
        assert kpi.tasks_completed_count == 1
        assert kpi.tasks_total_count == 2
        assert kpi.task_completion_rate_growth == 100
        assert kpi.total_estimated_minutes == 50
        assert kpi.total_actual_minutes == 50
        assert weekly.daily_average_focus_minutes == 10
        assert len(weekly.daily_focus_data) == 7
        assert weekly.to_dict()["kpi"]["total_focus_minutes"] == 70

    def test_daily_analytics_lists_every_session(self, service, db):
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 25 * 60))
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9, 30), 5 * 60, session_type=SessionType.SHORT_BREAK))

        daily = service.daily_analytics(USER, date(2024, 1, 1))

        assert daily.kpi.total_focus_minutes == 25
        assert [s.session_type for s in daily.focus_sessions] == ["FOCUS", "SHORT_BREAK"]
        assert daily.task_summaries == []

    def test_monthly_analytics(self, service, db):
        db.save_focus_session(make_session(USER, utc(2024, 2, 1, 9), 30 * 60))
        db.save_focus_session(make_session(USER, utc(2024, 2, 10, 9), 60 * 60))
        db.save_focus_session(make_session(USER, utc(2024, 1, 31, 9), 15 * 60))

        monthly = service.monthly_analytics(USER, 2024, 2)

        assert monthly.focus_days == 2
        assert monthly.kpi.total_focus_minutes == 90
        assert monthly.kpi.focus_comparison_diff_minutes == 75
        assert monthly.daily_average_focus_minutes == 45
        assert len(monthly.daily_activity) == 29
        assert monthly.daily_activity[9].minutes == 60
        assert list(monthly.category_aggregation) == ["Week 1", "Week 2", "Week 3", "Week 4", "Week 5"]
        assert monthly.category_aggregation["Week 2"][0].minutes == 60
        assert monthly.category_aggregation["Week 3"] == []

    def test_invalid_month(self, service):
        with pytest.raises(ValidationError):
            service.monthly_analytics(USER, 2024, 13)
