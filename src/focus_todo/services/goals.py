"""Daily focus goals and pomodoro timer settings."""

import logging
from datetime import date
from typing import Dict, List, Optional

from ..config import get_config
from ..domain import DailyGoal, PomodoroSetting
from ..errors import ValidationError
from ..storage.database import DatabaseManager
from ..utils.datetime import day_range, today_utc


logger = logging.getLogger(__name__)

SETTING_FIELDS = (
    "focus_duration",
    "short_break_duration",
    "long_break_duration",
    "sessions_until_long_break",
    "daily_goal",
)


class GoalService:
    """Reads and writes per-day goals, falling back to the user's default."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    # Pomodoro settings

    def get_settings(self, user_id: str) -> PomodoroSetting:
        """Stored settings, or the configured defaults for a new user."""
        stored = self.db.get_pomodoro_setting(user_id)
        if stored is not None:
            return stored
        config = get_config()
        return PomodoroSetting(
            user_id=user_id,
            focus_duration=config.default_focus_duration,
            daily_goal=config.default_daily_goal,
        )

    def update_settings(self, user_id: str, **changes: Optional[int]) -> PomodoroSetting:
        setting = self.get_settings(user_id)
        for name, value in changes.items():
            if name not in SETTING_FIELDS:
                raise ValidationError(f"Unknown pomodoro setting '{name}'")
            if value is None:
                continue
            if value < 0 or (value == 0 and name != "daily_goal"):
                raise ValidationError(f"Setting '{name}' must be positive")
            setattr(setting, name, value)
        self.db.save_pomodoro_setting(setting)
        logger.info(f"Saved pomodoro settings for user {user_id}")
        return setting

    def default_goal_minutes(self, user_id: str) -> int:
        return self.get_settings(user_id).daily_goal

    # Daily goals

    def get_goal(self, user_id: str, day: date) -> DailyGoal:
        """Goal for one day.

        Today's goal is snapshotted on first read so later changes to the
        default do not rewrite it; other days without a stored goal get a
        transient default with no id.
        """
        stored = self.db.get_daily_goal(user_id, day)
        if stored is not None:
            return stored

        default = self.default_goal_minutes(user_id)
        if day == today_utc():
            logger.info(f"Snapshotting today's goal for user {user_id}: {default} mins")
            return self.db.upsert_daily_goal(user_id, day, default)
        return DailyGoal(id=None, user_id=user_id, date=day, goal_minutes=default)

    def set_goal(self, user_id: str, day: date, goal_minutes: int) -> DailyGoal:
        if goal_minutes is None or goal_minutes < 0:
            raise ValidationError("Goal minutes must be zero or more")
        goal = self.db.upsert_daily_goal(user_id, day, goal_minutes)
        logger.info(f"Set goal for user {user_id} on {day} to {goal_minutes} minutes")
        return goal

    def goals_in_range(self, user_id: str, start: date, end: date) -> List[DailyGoal]:
        """One goal per day from start to end inclusive."""
        if end < start:
            raise ValidationError("End date must not be before start date")

        stored: Dict[date, DailyGoal] = {g.date: g for g in self.db.list_daily_goals(user_id, start, end)}
        default = self.default_goal_minutes(user_id)
        today = today_utc()

        goals = []
        for day in day_range(start, end):
            if day in stored:
                goals.append(stored[day])
            elif day == today:
                goals.append(self.db.upsert_daily_goal(user_id, day, default))
            else:
                goals.append(DailyGoal(id=None, user_id=user_id, date=day, goal_minutes=default))
        return goals

    def goal_minutes_by_day(self, user_id: str, start: date, end: date) -> Dict[date, int]:
        return {g.date: g.goal_minutes for g in self.goals_in_range(user_id, start, end)}
