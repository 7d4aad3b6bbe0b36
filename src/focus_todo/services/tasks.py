"""
Task lifecycle: creation with recurrence materialisation, updates that
propagate through a series, trash handling, bulk operations and the diff
based sync used by the AI preview.

A recurring series is stored eagerly. The first occurrence is the parent
and carries the rule text; every later occurrence points at the parent id.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..config import get_config
from ..domain import Subtask, Task, TaskStatus
from ..errors import NotFoundError, ValidationError
from ..models import BulkUpdate, SubtaskCreate, SubtaskUpdate, SyncTask, TaskCreate, TaskUpdate
from ..recurring import RecurrenceExpander, RecurrenceRule, occurrences_after
from ..storage.database import DatabaseManager
from ..utils.datetime import ensure_aware, now_utc, parse_date, parse_datetime, start_of_day, today_utc
from .categories import CategoryService
from .goals import GoalService
from .task_lists import TaskListService


logger = logging.getLogger(__name__)


# ============================================================================
# Result Models
# ============================================================================

@dataclass
class FailedTask:
    task_id: int
    reason: str
    error_code: str  # NOT_FOUND, UNAUTHORIZED or INVALID_REQUEST

    @property
    def display_message(self) -> str:
        return f"ID:{self.task_id} - {self.reason}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'task_id': self.task_id,
            'reason': self.reason,
            'error_code': self.error_code,
            'display_message': self.display_message,
        }


@dataclass
class BulkOperationResult:
    """Per-id outcome of a bulk update or delete"""
    success_count: int
    failed_tasks: List[FailedTask] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_tasks)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed_tasks

    @property
    def display_messages(self) -> List[str]:
        return [f.display_message for f in self.failed_tasks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success_count': self.success_count,
            'failed_count': self.failed_count,
            'failed_tasks': [f.to_dict() for f in self.failed_tasks],
            'all_succeeded': self.all_succeeded,
            'display_messages': self.display_messages,
        }


@dataclass
class SyncResult:
    success: bool
    message: str
    created: int = 0
    updated: int = 0
    deleted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'created_count': self.created,
            'updated_count': self.updated,
            'deleted_count': self.deleted,
        }


@dataclass
class TaskStats:
    start_date: date
    end_date: date
    completed_count: int
    total_count: int
    total_estimated_minutes: int
    total_actual_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'completed_count': self.completed_count,
            'total_count': self.total_count,
            'total_estimated_minutes': self.total_estimated_minutes,
            'total_actual_minutes': self.total_actual_minutes,
        }


def _at_time_of(day: date, template: datetime) -> datetime:
    """The given date at the template's time of day and offset."""
    return datetime.combine(day, template.timetz())


def _local_date(moment: datetime, template: datetime) -> date:
    """The calendar date of a moment as seen in the template's offset."""
    return moment.astimezone(template.tzinfo or timezone.utc).date()


def _to_subtasks(items: Optional[List[SubtaskCreate]]) -> List[Subtask]:
    return [
        Subtask(
            id=None,
            task_id=None,
            title=s.title,
            description=s.description,
            is_completed=s.is_completed,
            order_index=s.order_index if s.order_index else index,
        )
        for index, s in enumerate(items or [])
    ]


class TaskService:
    """Task operations scoped to one user per call"""

    def __init__(self, db: DatabaseManager, expander: Optional[RecurrenceExpander] = None):
        self.db = db
        self.task_lists = TaskListService(db)
        self.categories = CategoryService(db)
        self.goals = GoalService(db)
        if expander is None:
            settings = get_config().recurrence
            expander = RecurrenceExpander(settings.horizon_years, settings.max_occurrences)
        self.expander = expander

    # ========================================================================
    # Reads
    # ========================================================================

    def _attach_categories(self, user_id: str, tasks: List[Task]) -> List[Task]:
        categories = self.db.get_categories_by_ids(user_id, [t.category_id for t in tasks])
        for task in tasks:
            task.category = categories.get(task.category_id)
        return tasks

    def get_task(self, user_id: str, task_id: int) -> Task:
        task = self.db.get_task(user_id, task_id)
        if task is None or task.is_deleted:
            raise NotFoundError(f"Task {task_id} not found")
        return self._attach_categories(user_id, [task])[0]

    def list_tasks(self, user_id: str, task_list_id: Optional[int] = None) -> List[Task]:
        if task_list_id is not None:
            self.task_lists.get_task_list(user_id, task_list_id)
        tasks = self.db.list_tasks(user_id, task_list_id=task_list_id)
        logger.info(f"Found {len(tasks)} tasks for user {user_id}")
        return self._attach_categories(user_id, tasks)

    def list_inbox_tasks(self, user_id: str) -> List[Task]:
        inbox = self.task_lists.get_or_create_inbox(user_id)
        return self._attach_categories(user_id, self.db.list_tasks(user_id, task_list_id=inbox.id))

    def list_trash(self, user_id: str) -> List[Task]:
        return self._attach_categories(user_id, self.db.list_tasks(user_id, deleted=True))

    # ========================================================================
    # Creation
    # ========================================================================

    def create_task(self, user_id: str, request: TaskCreate, conn=None) -> Task:
        """Create a task, a set of custom-dated tasks or a recurring series.

        Returns:
            Task: The single task, the first custom-dated task or the series parent

        Raises:
            ValidationError: Unknown list or category, or a malformed rule
        """
        start = ensure_aware(request.scheduled_start_at)
        end = ensure_aware(request.scheduled_end_at)
        if start and end and end < start:
            raise ValidationError("scheduled_end_at must not be before scheduled_start_at")

        rule: Optional[RecurrenceRule] = request.recurrence_rule.to_rule() if request.recurrence_rule else None
        if request.is_recurring and rule is None:
            raise ValidationError("Recurring tasks require a recurrence rule")

        with self.db.transaction(conn) as c:
            category = self.categories.resolve(user_id, request.category_id, request.category_name, conn=c)
            task_list = self.task_lists.resolve(user_id, request.task_list_id, request.task_list_title, conn=c)

            template = Task(
                id=None,
                user_id=user_id,
                title=request.title,
                task_list_id=task_list.id,
                description=request.description,
                status=request.status,
                category_id=category.id if category else None,
                estimated_pomodoros=request.estimated_pomodoros,
                scheduled_start_at=start,
                scheduled_end_at=end,
                is_all_day=request.is_all_day,
                completed_at=now_utc() if request.status == TaskStatus.COMPLETED else None,
            )

            if request.is_recurring and rule is not None:
                created = self._create_series(template, rule, request.subtasks, c)
            elif request.custom_dates:
                created = self._create_custom_dated(template, request.custom_dates, request.subtasks, c)
            else:
                if template.scheduled_start_at is None:
                    template.scheduled_start_at = start_of_day(today_utc())
                template.subtasks = _to_subtasks(request.subtasks)
                created = self.db.insert_task(template, conn=c)

        created.category = category
        logger.info(f"Created task {created.id} for user {user_id}")
        return created

    def _occurrence(self, template: Task, day: date, **overrides) -> Task:
        """Copy of the template scheduled on the given day."""
        start = template.scheduled_start_at
        occurrence_start = _at_time_of(day, start) if start else start_of_day(day)
        occurrence_end = None
        if start and template.scheduled_end_at:
            occurrence_end = occurrence_start + (template.scheduled_end_at - start)

        values = dict(
            id=None,
            user_id=template.user_id,
            title=template.title,
            task_list_id=template.task_list_id,
            description=template.description,
            status=template.status,
            category_id=template.category_id,
            estimated_pomodoros=template.estimated_pomodoros,
            scheduled_start_at=occurrence_start,
            scheduled_end_at=occurrence_end,
            is_all_day=template.is_all_day,
            is_recurring=template.is_recurring,
            completed_at=template.completed_at,
        )
        values.update(overrides)
        return Task(**values)

    def _create_series(self, template: Task, rule: RecurrenceRule, subtasks, conn) -> Task:
        anchor = template.scheduled_start_at.date() if template.scheduled_start_at else today_utc()
        dates = self.expander.expand(rule, anchor)

        template.is_recurring = True
        parent = self._occurrence(template, dates[0], recurrence_rule=rule.to_rrule())
        parent.subtasks = _to_subtasks(subtasks)
        self.db.insert_task(parent, conn=conn)

        for day in dates[1:]:
            self.db.insert_task(self._occurrence(template, day, recurrence_parent_id=parent.id), conn=conn)

        logger.info(f"Created recurring series {parent.id} with {len(dates)} occurrences")
        return parent

    def _create_custom_dated(self, template: Task, dates: List[date], subtasks, conn) -> Task:
        first: Optional[Task] = None
        for day in self.expander.expand(None, dates[0], dates):
            task = self._occurrence(template, day, scheduled_start_at=start_of_day(day), scheduled_end_at=None)
            task.subtasks = _to_subtasks(subtasks)
            self.db.insert_task(task, conn=conn)
            if first is None:
                first = task
        logger.info(f"Created {len(dates)} custom-dated tasks starting with {first.id}")
        return first

    # ========================================================================
    # Updates
    # ========================================================================

    def update_task(self, user_id: str, task_id: int, patch: TaskUpdate, conn=None) -> Task:
        """Patch the non-null fields of a task.

        Turning recurrence off removes pending occurrences; turning it on or
        changing the rule regenerates them. Other changes on a series parent
        are copied to its pending occurrences.
        """
        new_rule = patch.recurrence_rule.to_rule().to_rrule() if patch.recurrence_rule else None

        with self.db.transaction(conn) as c:
            task = self.db.get_task(user_id, task_id, conn=c)
            if task is None or task.is_deleted:
                raise NotFoundError(f"Task {task_id} not found")

            if patch.title is not None:
                task.title = patch.title
            if patch.status is not None:
                if patch.status == TaskStatus.COMPLETED and not task.completed:
                    task.completed_at = now_utc()
                elif patch.status != TaskStatus.COMPLETED and task.completed:
                    task.completed_at = None
                task.status = patch.status

            category_changed = patch.category_id is not None or bool(patch.category_name)
            if category_changed:
                category = self.categories.resolve(user_id, patch.category_id, patch.category_name, conn=c)
                task.category_id = category.id if category else None

            if patch.task_list_title and patch.task_list_title.strip():
                task.task_list_id = self.task_lists.get_or_create(user_id, patch.task_list_title.strip(), conn=c).id
            elif patch.task_list_id is not None:
                task.task_list_id = self.task_lists.resolve(user_id, patch.task_list_id, conn=c).id

            if patch.completed_at is not None:
                task.completed_at = ensure_aware(patch.completed_at)
            if patch.estimated_pomodoros is not None:
                task.estimated_pomodoros = patch.estimated_pomodoros
            if patch.description is not None:
                task.description = patch.description
            if patch.scheduled_start_at is not None:
                task.scheduled_start_at = ensure_aware(patch.scheduled_start_at)
            if patch.scheduled_end_at is not None:
                task.scheduled_end_at = ensure_aware(patch.scheduled_end_at)
            if patch.is_all_day is not None:
                task.is_all_day = patch.is_all_day

            was_recurring = task.is_recurring
            effective = patch.is_recurring if patch.is_recurring is not None else was_recurring
            turned_off = patch.is_recurring is False
            turned_on = not was_recurring and effective
            rule_changed = effective and new_rule is not None and new_rule != task.recurrence_rule

            if turned_off:
                logger.info(f"Turning off recurrence for task {task_id}")
                task.is_recurring = False
                task.recurrence_rule = None
                self.db.update_task(task, conn=c)
                self._delete_pending_children(user_id, task_id, c)
            elif turned_on or rule_changed:
                rule_text = new_rule or task.recurrence_rule
                if not rule_text:
                    raise ValidationError("Recurring tasks require a recurrence rule")
                task.is_recurring = True
                task.recurrence_rule = rule_text
                task.recurrence_parent_id = None
                self.db.update_task(task, conn=c)
                self._delete_pending_children(user_id, task_id, c)
                self._generate_children(task, RecurrenceRule.from_rrule(rule_text), c)
            else:
                self.db.update_task(task, conn=c)
                if task.is_recurring and task.recurrence_parent_id is None:
                    self._propagate_to_children(task, patch, category_changed, c)

        logger.info(f"Updated task {task_id} for user {user_id}")
        return self._attach_categories(user_id, [task])[0]

    def _pending_children(self, user_id: str, parent_id: int, conn) -> List[Task]:
        return [t for t in self.db.list_children(user_id, parent_id, conn=conn) if not t.completed]

    def _delete_pending_children(self, user_id: str, parent_id: int, conn) -> int:
        pending = self._pending_children(user_id, parent_id, conn)
        if pending:
            logger.info(f"Deleting {len(pending)} pending occurrences of task {parent_id}")
        return self.db.delete_tasks(user_id, [t.id for t in pending], conn=conn)

    def _generate_children(self, parent: Task, rule: RecurrenceRule, conn) -> int:
        anchor = parent.scheduled_start_at.date() if parent.scheduled_start_at else today_utc()
        dates = occurrences_after(self.expander.expand(rule, anchor), anchor)
        template = self._occurrence(parent, anchor, status=TaskStatus.PENDING, completed_at=None)
        for day in dates:
            self.db.insert_task(self._occurrence(template, day, recurrence_parent_id=parent.id), conn=conn)
        logger.info(f"Generated {len(dates)} occurrences for task {parent.id}")
        return len(dates)

    def _propagate_to_children(self, parent: Task, patch: TaskUpdate, category_changed: bool, conn) -> None:
        pending = self._pending_children(parent.user_id, parent.id, conn)
        for child in pending:
            changed = False
            if patch.title is not None:
                child.title = parent.title
                changed = True
            if category_changed:
                child.category_id = parent.category_id
                changed = True
            if patch.estimated_pomodoros is not None:
                child.estimated_pomodoros = parent.estimated_pomodoros
                changed = True
            if patch.description is not None:
                child.description = parent.description
                changed = True
            if patch.scheduled_start_at is not None and child.scheduled_start_at is not None:
                child_day = _local_date(child.scheduled_start_at, parent.scheduled_start_at)
                child.scheduled_start_at = _at_time_of(child_day, parent.scheduled_start_at)
                if parent.scheduled_end_at is not None:
                    child.scheduled_end_at = child.scheduled_start_at + (
                        parent.scheduled_end_at - parent.scheduled_start_at
                    )
                changed = True
            elif patch.scheduled_end_at is not None and child.scheduled_start_at is not None \
                    and parent.scheduled_start_at is not None:
                child_day = _local_date(child.scheduled_start_at, parent.scheduled_start_at)
                child.scheduled_end_at = _at_time_of(child_day, parent.scheduled_start_at) + (
                    parent.scheduled_end_at - parent.scheduled_start_at
                )
                changed = True
            if patch.is_all_day is not None:
                child.is_all_day = parent.is_all_day
                changed = True
            if changed:
                self.db.update_task(child, conn=conn)
        if pending:
            logger.info(f"Propagated changes from task {parent.id} to {len(pending)} occurrences")

    # ========================================================================
    # Deletion
    # ========================================================================

    def delete_task(self, user_id: str, task_id: int, conn=None) -> None:
        """Move a task to the trash; a series parent takes its pending occurrences along."""
        with self.db.transaction(conn) as c:
            task = self.db.get_task(user_id, task_id, conn=c)
            if task is None or task.is_deleted:
                raise NotFoundError(f"Task {task_id} not found")

            if task.is_recurring and task.recurrence_parent_id is None:
                for child in self._pending_children(user_id, task_id, c):
                    child.is_deleted = True
                    self.db.update_task(child, conn=c)

            task.is_deleted = True
            self.db.update_task(task, conn=c)
        logger.info(f"Soft deleted task {task_id} for user {user_id}")

    def restore_task(self, user_id: str, task_id: int) -> Task:
        with self.db.transaction() as c:
            task = self.db.get_task(user_id, task_id, conn=c)
            if task is None or not task.is_deleted:
                raise NotFoundError(f"Task {task_id} not found in trash")
            task.is_deleted = False
            self.db.update_task(task, conn=c)
        logger.info(f"Restored task {task_id} for user {user_id}")
        return self._attach_categories(user_id, [task])[0]

    def delete_task_permanently(self, user_id: str, task_id: int) -> int:
        """Remove a task and every occurrence pointing at it.

        Returns:
            int: Number of task rows removed
        """
        with self.db.transaction() as c:
            if self.db.get_task(user_id, task_id, conn=c) is None:
                raise NotFoundError(f"Task {task_id} not found")
            children = self.db.list_children(user_id, task_id, conn=c)
            removed = self.db.delete_tasks(user_id, [t.id for t in children] + [task_id], conn=c)
        logger.info(f"Permanently deleted task {task_id} and {len(children)} occurrences for user {user_id}")
        return removed

    # ========================================================================
    # Bulk Operations
    # ========================================================================

    def _check_ids(self, user_id: str, task_ids: List[int], conn):
        """Split ids into owned tasks and failures."""
        owned: List[Task] = []
        failed: List[FailedTask] = []
        for task_id in task_ids:
            owner = self.db.get_task_owner(task_id, conn=conn)
            if owner is None:
                failed.append(FailedTask(task_id, "Task not found", "NOT_FOUND"))
            elif owner != user_id:
                failed.append(FailedTask(task_id, "Access denied - task belongs to another user", "UNAUTHORIZED"))
            else:
                owned.append(self.db.get_task(user_id, task_id, conn=conn))
        return owned, failed

    def bulk_update_tasks(self, user_id: str, request: BulkUpdate) -> BulkOperationResult:
        """Apply one patch to many tasks, reporting each id that could not be changed."""
        logger.info(f"Bulk updating {len(request.task_ids)} tasks for user {user_id}")
        rule_text = request.recurrence_rule.to_rule().to_rrule() if request.recurrence_rule else None

        with self.db.transaction() as c:
            category = None
            if request.category_id is not None:
                category = self.db.get_category(user_id, request.category_id, conn=c)
                if category is None:
                    return BulkOperationResult(0, [
                        FailedTask(i, "Category not found or access denied", "INVALID_REQUEST")
                        for i in request.task_ids
                    ])
            elif request.category_name:
                category = self.categories.resolve(user_id, category_name=request.category_name, conn=c)

            task_list = None
            if request.task_list_id is not None:
                task_list = self.db.get_task_list(user_id, request.task_list_id, conn=c)
                if task_list is None:
                    return BulkOperationResult(0, [
                        FailedTask(i, "Task list not found or access denied", "INVALID_REQUEST")
                        for i in request.task_ids
                    ])

            tasks, failed = self._check_ids(user_id, request.task_ids, c)
            now = now_utc()
            for task in tasks:
                if request.status is not None:
                    task.status = request.status
                    task.completed_at = now if request.status == TaskStatus.COMPLETED else None
                if category is not None:
                    task.category_id = category.id
                if task_list is not None:
                    task.task_list_id = task_list.id
                if request.estimated_pomodoros is not None:
                    task.estimated_pomodoros = request.estimated_pomodoros
                if request.description is not None:
                    task.description = request.description
                if request.scheduled_start_at is not None:
                    task.scheduled_start_at = ensure_aware(request.scheduled_start_at)
                if request.scheduled_end_at is not None:
                    task.scheduled_end_at = ensure_aware(request.scheduled_end_at)
                if request.is_all_day is not None:
                    task.is_all_day = request.is_all_day
                if request.is_recurring is not None:
                    task.is_recurring = request.is_recurring
                if rule_text is not None:
                    task.recurrence_rule = rule_text
                self.db.update_task(task, conn=c)

        logger.info(f"Bulk updated {len(tasks)} tasks for user {user_id} ({len(failed)} failed)")
        return BulkOperationResult(len(tasks), failed)

    def bulk_delete_tasks(self, user_id: str, task_ids: List[int]) -> BulkOperationResult:
        """Soft delete many tasks."""
        with self.db.transaction() as c:
            tasks, failed = self._check_ids(user_id, task_ids, c)
            for task in tasks:
                task.is_deleted = True
                self.db.update_task(task, conn=c)
        logger.info(f"Bulk soft-deleted {len(tasks)} tasks for user {user_id} ({len(failed)} failed)")
        return BulkOperationResult(len(tasks), failed)

    # ========================================================================
    # Sync
    # ========================================================================

    def sync_tasks(self, user_id: str, diffs: List[SyncTask]) -> SyncResult:
        """Apply create/update/delete diffs in a single transaction.

        A diff with ``is_deleted`` and an id deletes, one without an id
        creates, anything else updates. Any failure rolls back every diff.
        """
        if not diffs:
            return SyncResult(True, "No tasks to sync")

        created = updated = deleted = 0
        with self.db.transaction() as c:
            for diff in diffs:
                if diff.is_deleted:
                    if not diff.id or diff.id <= 0:
                        logger.warning(f"Skipping delete diff without an id: {diff.title}")
                        continue
                    self.delete_task(user_id, diff.id, conn=c)
                    deleted += 1
                elif not diff.id or diff.id <= 0:
                    self.create_task(user_id, self._diff_to_create(diff), conn=c)
                    created += 1
                else:
                    self.update_task(user_id, diff.id, self._diff_to_update(diff), conn=c)
                    updated += 1

        message = f"Sync completed: Created {created}, Updated {updated}, Deleted {deleted}"
        logger.info(f"{message} for user {user_id}")
        return SyncResult(True, message, created, updated, deleted)

    @staticmethod
    def _diff_schedule(diff: SyncTask):
        def parse(value: Optional[str], name: str) -> Optional[datetime]:
            try:
                return parse_datetime(value)
            except ValueError:
                logger.warning(f"Ignoring invalid {name}: {value}")
                return None

        start = parse(diff.scheduled_start_at, "scheduled_start_at")
        end = parse(diff.scheduled_end_at, "scheduled_end_at")
        if start is None and diff.execution_date:
            try:
                start = datetime.combine(parse_date(diff.execution_date[:10]), time.min, tzinfo=timezone.utc)
            except ValueError:
                logger.warning(f"Ignoring invalid execution_date: {diff.execution_date}")
        return start, end

    @staticmethod
    def _diff_status(diff: SyncTask) -> Optional[TaskStatus]:
        if not diff.status:
            return None
        try:
            return TaskStatus(diff.status.upper())
        except ValueError:
            logger.warning(f"Ignoring invalid status: {diff.status}")
            return None

    def _diff_to_create(self, diff: SyncTask) -> TaskCreate:
        if not diff.title or not diff.title.strip():
            raise ValidationError("A new task needs a title")
        start, end = self._diff_schedule(diff)
        return TaskCreate(
            title=diff.title,
            description=diff.description,
            status=self._diff_status(diff) or TaskStatus.PENDING,
            task_list_title=diff.task_list_title,
            category_name=diff.category_name,
            estimated_pomodoros=diff.estimated_pomodoros,
            scheduled_start_at=start,
            scheduled_end_at=end,
            is_all_day=True if diff.is_all_day is None else diff.is_all_day,
            is_recurring=bool(diff.is_recurring and diff.recurrence_rule),
            recurrence_rule=diff.recurrence_rule,
            subtasks=diff.subtasks or [],
        )

    def _diff_to_update(self, diff: SyncTask) -> TaskUpdate:
        start, end = self._diff_schedule(diff)
        return TaskUpdate(
            title=diff.title,
            description=diff.description,
            status=self._diff_status(diff),
            task_list_title=diff.task_list_title,
            category_name=diff.category_name,
            estimated_pomodoros=diff.estimated_pomodoros,
            scheduled_start_at=start,
            scheduled_end_at=end,
            is_all_day=diff.is_all_day,
            is_recurring=diff.is_recurring,
            recurrence_rule=diff.recurrence_rule,
        )

    # ========================================================================
    # Subtasks
    # ========================================================================

    def create_subtask(self, user_id: str, task_id: int, request: SubtaskCreate) -> Subtask:
        self.get_task(user_id, task_id)
        subtask = _to_subtasks([request])[0]
        return self.db.insert_subtask(task_id, subtask)

    def update_subtask(self, user_id: str, subtask_id: int, patch: SubtaskUpdate) -> Subtask:
        subtask = self.db.get_subtask(user_id, subtask_id)
        if subtask is None:
            raise NotFoundError(f"Subtask {subtask_id} not found")
        for name in ("title", "description", "is_completed", "order_index"):
            value = getattr(patch, name)
            if value is not None:
                setattr(subtask, name, value)
        self.db.update_subtask(subtask)
        return subtask

    def delete_subtask(self, user_id: str, subtask_id: int) -> None:
        if self.db.get_subtask(user_id, subtask_id) is None:
            raise NotFoundError(f"Subtask {subtask_id} not found")
        self.db.delete_subtask(subtask_id)

    # ========================================================================
    # Statistics
    # ========================================================================

    def task_stats(self, user_id: str, start: date, end: date) -> TaskStats:
        """Completion counts and estimate-versus-actual minutes for tasks scheduled in a range."""
        if end < start:
            raise ValidationError("End date must not be before start date")

        tasks = self.db.list_tasks_scheduled_between(
            user_id, start_of_day(start), start_of_day(end + timedelta(days=1))
        )
        completed = [t for t in tasks if t.completed]
        focus_duration = self.goals.get_settings(user_id).focus_duration

        estimated = sum(t.estimated_pomodoros * focus_duration for t in completed if t.estimated_pomodoros)
        seconds = self.db.focus_seconds_by_task(user_id, [t.id for t in completed])
        actual = sum(seconds.values()) // 60

        logger.info(
            f"Task stats for user {user_id} from {start} to {end}: "
            f"{len(completed)}/{len(tasks)} completed, est {estimated}m, act {actual}m"
        )
        return TaskStats(start, end, len(completed), len(tasks), estimated, actual)
