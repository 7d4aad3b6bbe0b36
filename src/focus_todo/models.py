"""
Pydantic models for API validation

Request bodies accepted by the resource server and the task diff format
exchanged with the language model. Wire names are camelCase; snake_case
names are accepted as well.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .domain import TaskStatus
from .errors import FocusTodoError
from .recurring import Frequency, RecurrenceRule, weekday_from_name


class ApiModel(BaseModel):
    """Base model accepting both camelCase and snake_case field names"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Recurrence Models
# ============================================================================

class RecurrenceRuleModel(ApiModel):
    """Structured recurrence rule as sent by clients"""
    frequency: Frequency
    interval: int = Field(1, ge=1)
    by_day: List[int] = Field(default_factory=list)
    until: Optional[date] = None
    count: Optional[int] = Field(None, ge=1)
    occurs: List[date] = Field(default_factory=list)

    @field_validator('by_day', mode='before')
    @classmethod
    def parse_weekdays(cls, v):
        """Accept weekday numbers or names such as MO / MONDAY"""
        if v is None:
            return []
        try:
            return [d if isinstance(d, int) else weekday_from_name(str(d)) for d in v]
        except FocusTodoError as e:
            raise ValueError(e.message)

    def to_rule(self) -> RecurrenceRule:
        rule = RecurrenceRule(
            frequency=self.frequency,
            interval=self.interval,
            by_day=list(self.by_day),
            until=self.until,
            count=self.count,
            occurs=list(self.occurs),
        )
        rule.validate()
        return rule


# ============================================================================
# Task Models
# ============================================================================

class SubtaskCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    is_completed: bool = False
    order_index: int = 0


class SubtaskUpdate(ApiModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    is_completed: Optional[bool] = None
    order_index: Optional[int] = None


class TaskCreate(ApiModel):
    """Task creation model, covering plain, custom-date and recurring tasks"""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    task_list_id: Optional[int] = None
    task_list_title: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    estimated_pomodoros: Optional[int] = Field(None, ge=0)
    scheduled_start_at: Optional[datetime] = None
    scheduled_end_at: Optional[datetime] = None
    is_all_day: bool = True
    is_recurring: bool = False
    recurrence_rule: Optional[RecurrenceRuleModel] = None
    custom_dates: Optional[List[date]] = None
    subtasks: List[SubtaskCreate] = Field(default_factory=list)

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v


class TaskUpdate(ApiModel):
    """Patch model; only non-null fields are applied"""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    task_list_id: Optional[int] = None
    task_list_title: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    estimated_pomodoros: Optional[int] = Field(None, ge=0)
    scheduled_start_at: Optional[datetime] = None
    scheduled_end_at: Optional[datetime] = None
    is_all_day: Optional[bool] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[RecurrenceRuleModel] = None
    completed_at: Optional[datetime] = None


class BulkUpdate(ApiModel):
    """The same patch applied to many tasks"""
    task_ids: List[int] = Field(..., min_length=1)
    status: Optional[TaskStatus] = None
    task_list_id: Optional[int] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    estimated_pomodoros: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    scheduled_start_at: Optional[datetime] = None
    scheduled_end_at: Optional[datetime] = None
    is_all_day: Optional[bool] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[RecurrenceRuleModel] = None


class BulkDelete(ApiModel):
    task_ids: List[int] = Field(..., min_length=1)


class SyncTask(ApiModel):
    """One create/update/delete diff, shared by the AI preview and the sync API"""
    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    execution_date: Optional[str] = None
    scheduled_start_at: Optional[str] = None
    scheduled_end_at: Optional[str] = None
    is_all_day: Optional[bool] = None
    estimated_pomodoros: Optional[int] = None
    category_name: Optional[str] = None
    task_list_title: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[RecurrenceRuleModel] = None
    is_deleted: Optional[bool] = None
    subtasks: Optional[List[SubtaskCreate]] = None
    status: Optional[str] = None


class SyncTaskList(ApiModel):
    """Structured answer of the language model"""
    project_title: Optional[str] = None
    tasks: List[SyncTask] = Field(default_factory=list)
    advice: Optional[str] = None


class SyncRequest(ApiModel):
    tasks: List[SyncTask] = Field(default_factory=list)


# ============================================================================
# Other Resource Models
# ============================================================================

class TaskListCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)


class CategoryCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    color: str = Field("#94a3b8", pattern="^#[0-9A-Fa-f]{6}$")


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    color: Optional[str] = Field(None, pattern="^#[0-9A-Fa-f]{6}$")


class FocusSessionRecord(ApiModel):
    """A finished interval; an id corrects an earlier record"""
    id: Optional[int] = None
    task_id: Optional[int] = None
    session_type: str
    status: str
    scheduled_duration: int = Field(..., ge=0)
    actual_duration: int = Field(..., ge=0)
    started_at: datetime
    ended_at: Optional[datetime] = None


class DailyGoalSet(ApiModel):
    goal_minutes: int = Field(..., ge=0)


class PomodoroSettingUpdate(ApiModel):
    focus_duration: Optional[int] = Field(None, ge=1)
    short_break_duration: Optional[int] = Field(None, ge=1)
    long_break_duration: Optional[int] = Field(None, ge=1)
    sessions_until_long_break: Optional[int] = Field(None, ge=1)
    daily_goal: Optional[int] = Field(None, ge=0)


class ChatRequest(ApiModel):
    """Conversational edit request; current tasks are the client's view"""
    conversation_id: Optional[str] = None
    prompt: str = Field(..., min_length=1)
    current_tasks: List[SyncTask] = Field(default_factory=list)
    project_title: Optional[str] = None


class ChatResponse(ApiModel):
    conversation_id: str
    message: str
    result: Optional[SyncTaskList] = None
    success: bool = True
    suggested_title: Optional[str] = None


class SuccessResponse(ApiModel):
    """Generic success response"""
    success: bool = True
    message: str
