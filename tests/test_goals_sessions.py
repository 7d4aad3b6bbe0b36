"""
Tests for daily goals, pomodoro settings and focus session recording
"""

from datetime import date, timedelta

import pytest

from conftest import make_session, utc
from focus_todo.domain import SessionStatus, SessionType
from focus_todo.errors import NotFoundError, ValidationError
from focus_todo.models import TaskCreate
from focus_todo.services.focus_sessions import FocusSessionService
from focus_todo.services.goals import GoalService
from focus_todo.services.tasks import TaskService
from focus_todo.utils.datetime import today_utc


USER = "alice"


@pytest.fixture
def goals(db):
    return GoalService(db)


@pytest.fixture
def sessions(db):
    return FocusSessionService(db)


class TestPomodoroSettings:
    """Test per-user timer settings"""

    def test_defaults_for_new_user(self, goals):
        settings = goals.get_settings(USER)
        assert settings.focus_duration == 25
        assert settings.daily_goal == 360
        assert settings.sessions_until_long_break == 4

    def test_defaults_follow_config(self, goals, test_config):
        test_config.default_daily_goal = 120
        assert goals.get_settings(USER).daily_goal == 120

    def test_update_keeps_unset_fields(self, goals):
        goals.update_settings(USER, focus_duration=50, daily_goal=None)
        settings = goals.get_settings(USER)
        assert settings.focus_duration == 50
        assert settings.daily_goal == 360

    def test_update_rejects_invalid_values(self, goals):
        with pytest.raises(ValidationError):
            goals.update_settings(USER, focus_duration=0)
        with pytest.raises(ValidationError):
            goals.update_settings(USER, coffee_breaks=3)

    def test_zero_daily_goal_allowed(self, goals):
        assert goals.update_settings(USER, daily_goal=0).daily_goal == 0


class TestDailyGoals:
    """Test goal lookup, snapshotting and ranges"""

    def test_past_day_uses_transient_default(self, goals, db):
        goal = goals.get_goal(USER, date(2024, 1, 1))
        assert goal.id is None
        assert goal.goal_minutes == 360
        assert db.get_daily_goal(USER, date(2024, 1, 1)) is None

    def test_today_is_snapshotted(self, goals, db):
        first = goals.get_goal(USER, today_utc())
        assert first.id is not None

        goals.update_settings(USER, daily_goal=90)
        assert goals.get_goal(USER, today_utc()).goal_minutes == 360
        assert goals.get_goal(USER, today_utc() - timedelta(days=1)).goal_minutes == 90

    def test_set_goal_overwrites(self, goals):
        goals.set_goal(USER, date(2024, 1, 1), 100)
        goals.set_goal(USER, date(2024, 1, 1), 200)
        assert goals.get_goal(USER, date(2024, 1, 1)).goal_minutes == 200

    def test_set_goal_rejects_negative(self, goals):
        with pytest.raises(ValidationError):
            goals.set_goal(USER, date(2024, 1, 1), -5)

    def test_goals_in_range(self, goals):
        goals.set_goal(USER, date(2024, 1, 2), 45)
        result = goals.goals_in_range(USER, date(2024, 1, 1), date(2024, 1, 3))
        assert [g.goal_minutes for g in result] == [360, 45, 360]
        assert [g.date for g in result] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_goals_in_range_rejects_reversed(self, goals):
        with pytest.raises(ValidationError):
            goals.goals_in_range(USER, date(2024, 1, 3), date(2024, 1, 1))

    def test_goals_are_per_user(self, goals):
        goals.set_goal(USER, date(2024, 1, 1), 10)
        assert goals.get_goal("bob", date(2024, 1, 1)).goal_minutes == 360


class TestFocusSessions:
    """Test recording and reading focus sessions"""

    def test_record_session(self, sessions):
        saved = sessions.record_session(
            USER, "focus", "completed", 1500, 1400, utc(2024, 1, 1, 9), utc(2024, 1, 1, 9, 25)
        )
        assert saved.id is not None
        assert saved.session_type == SessionType.FOCUS
        assert saved.status == SessionStatus.COMPLETED
        assert saved.to_dict()["started_at"] == "2024-01-01T09:00:00+00:00"

    def test_record_rejects_bad_type(self, sessions):
        with pytest.raises(ValidationError):
            sessions.record_session(USER, "NAP", "COMPLETED", 60, 60, utc(2024, 1, 1))

    def test_record_rejects_negative_duration(self, sessions):
        with pytest.raises(ValidationError):
            sessions.record_session(USER, "FOCUS", "COMPLETED", 60, -1, utc(2024, 1, 1))

    def test_record_rejects_unknown_task(self, sessions):
        with pytest.raises(ValidationError):
            sessions.record_session(USER, "FOCUS", "COMPLETED", 60, 60, utc(2024, 1, 1), task_id=999)

    def test_record_rejects_other_users_task(self, sessions, db):
        task = TaskService(db).create_task("bob", TaskCreate(title="Bob's"))
        with pytest.raises(ValidationError):
            sessions.record_session(USER, "FOCUS", "COMPLETED", 60, 60, utc(2024, 1, 1), task_id=task.id)

    def test_correction_by_id(self, sessions, db):
        saved = sessions.record_session(USER, "FOCUS", "INTERRUPTED", 1500, 300, utc(2024, 1, 1, 9))
        corrected = sessions.record_session(
            USER, "FOCUS", "COMPLETED", 1500, 1500, utc(2024, 1, 1, 9), session_id=saved.id
        )

        assert corrected.id == saved.id
        stored = db.get_focus_session(USER, saved.id)
        assert stored.status == SessionStatus.COMPLETED
        assert stored.actual_duration == 1500
        assert sessions.daily_focus_seconds(USER, date(2024, 1, 1)) == 1500

    def test_correction_of_unknown_id(self, sessions):
        with pytest.raises(NotFoundError):
            sessions.record_session(USER, "FOCUS", "COMPLETED", 60, 60, utc(2024, 1, 1), session_id=42)

    def test_daily_totals_count_focus_only(self, sessions, db):
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 1500))
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 10), 300, session_type=SessionType.SHORT_BREAK))
        db.save_focus_session(make_session(USER, utc(2024, 1, 2, 0), 600))

        assert sessions.daily_focus_seconds(USER, date(2024, 1, 1)) == 1500
        assert sessions.daily_focus_seconds(USER, date(2024, 1, 2)) == 600
        assert sessions.total_focus_seconds(USER) == 2100

    def test_sessions_resolve_their_task(self, sessions, db):
        task = TaskService(db).create_task(USER, TaskCreate(title="Write", category_name="Work"))
        db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 60, task_id=task.id))

        resolved = sessions.sessions_on(USER, date(2024, 1, 1))

        assert resolved[0].task.title == "Write"
        assert resolved[0].task.category.name == "Others"

    def test_delete_session(self, sessions, db):
        saved = db.save_focus_session(make_session(USER, utc(2024, 1, 1, 9), 60))
        sessions.delete_session(USER, saved.id)
        assert db.get_focus_session(USER, saved.id) is None
        with pytest.raises(NotFoundError):
            sessions.delete_session(USER, saved.id)

    def test_delete_other_users_session(self, sessions, db):
        saved = db.save_focus_session(make_session("bob", utc(2024, 1, 1, 9), 60))
        with pytest.raises(NotFoundError):
            sessions.delete_session(USER, saved.id)
