"""
SQLite storage for focus-todo

This module provides the persistence layer for every user-owned record:
- Task lists, categories, tasks and their subtasks
- Focus sessions, daily goals and pomodoro settings
- AI conversations and their messages

Every query is scoped to the owning user id. Write methods accept an
optional open connection so a service can group several writes into a
single transaction.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from ..config import get_config
from ..domain import (
    Category,
    ChatMessage,
    Conversation,
    DailyGoal,
    FocusSession,
    PomodoroSetting,
    SessionStatus,
    SessionType,
    Subtask,
    Task,
    TaskList,
    TaskStatus,
)
from ..errors import ValidationError
from ..utils.datetime import parse_datetime


logger = logging.getLogger(__name__)


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS task_lists (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        color TEXT NOT NULL,
        UNIQUE (user_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        status TEXT NOT NULL,
        task_list_id INTEGER NOT NULL,
        category_id INTEGER,
        estimated_pomodoros INTEGER,
        scheduled_start_at TEXT,
        scheduled_end_at TEXT,
        is_all_day BOOLEAN NOT NULL DEFAULT 1,
        is_recurring BOOLEAN NOT NULL DEFAULT 0,
        recurrence_rule TEXT,
        recurrence_parent_id INTEGER,
        completed_at TEXT,
        is_deleted BOOLEAN NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subtasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id INTEGER NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        is_completed BOOLEAN NOT NULL DEFAULT 0,
        order_index INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS focus_sessions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        task_id INTEGER,
        session_type TEXT NOT NULL,
        status TEXT NOT NULL,
        scheduled_duration INTEGER NOT NULL,
        actual_duration INTEGER NOT NULL,
        started_at TEXT NOT NULL,
        ended_at TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_goals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        goal_date TEXT NOT NULL,
        goal_minutes INTEGER NOT NULL,
        UNIQUE (user_id, goal_date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pomodoro_settings (
        user_id TEXT PRIMARY KEY,
        focus_duration INTEGER NOT NULL,
        short_break_duration INTEGER NOT NULL,
        long_break_duration INTEGER NOT NULL,
        sessions_until_long_break INTEGER NOT NULL,
        daily_goal INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        conversation_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_user_list ON tasks (user_id, task_list_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks (recurrence_parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_scheduled ON tasks (user_id, scheduled_start_at)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_started ON focus_sessions (user_id, started_at)",
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON chat_messages (conversation_id)",
]


def _ts(value: Optional[datetime]) -> Optional[str]:
    """Store timestamps as UTC ISO text so they sort lexically."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row['id'],
        user_id=row['user_id'],
        title=row['title'],
        description=row['description'],
        status=TaskStatus(row['status']),
        task_list_id=row['task_list_id'],
        category_id=row['category_id'],
        estimated_pomodoros=row['estimated_pomodoros'],
        scheduled_start_at=parse_datetime(row['scheduled_start_at']),
        scheduled_end_at=parse_datetime(row['scheduled_end_at']),
        is_all_day=bool(row['is_all_day']),
        is_recurring=bool(row['is_recurring']),
        recurrence_rule=row['recurrence_rule'],
        recurrence_parent_id=row['recurrence_parent_id'],
        completed_at=parse_datetime(row['completed_at']),
        is_deleted=bool(row['is_deleted']),
        created_at=parse_datetime(row['created_at']),
    )


def _row_to_session(row: sqlite3.Row) -> FocusSession:
    return FocusSession(
        id=row['id'],
        user_id=row['user_id'],
        task_id=row['task_id'],
        session_type=SessionType(row['session_type']),
        status=SessionStatus(row['status']),
        scheduled_duration=row['scheduled_duration'],
        actual_duration=row['actual_duration'],
        started_at=parse_datetime(row['started_at']),
        ended_at=parse_datetime(row['ended_at']),
        created_at=parse_datetime(row['created_at']),
    )


def _row_to_subtask(row: sqlite3.Row) -> Subtask:
    return Subtask(
        id=row['id'],
        task_id=row['task_id'],
        title=row['title'],
        description=row['description'],
        is_completed=bool(row['is_completed']),
        order_index=row['order_index'],
    )


def _placeholders(values: List) -> str:
    return ",".join("?" for _ in values)


# ============================================================================
# Database Manager
# ============================================================================

class DatabaseManager:
    """Manages database connections and operations"""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database manager

        Args:
            db_path: Optional custom database path; defaults to the configured one
        """
        self.db_path = Path(db_path or get_config().database_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with context manager

        The transaction commits when the block exits normally and rolls
        back when it raises.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """Reuse the caller's connection or open a short transaction."""
        if conn is not None:
            yield conn
        else:
            with self.get_connection() as own:
                yield own

    def _initialize_db(self):
        """Initialize database schema"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            for statement in SCHEMA:
                cursor.execute(statement)
        logger.debug(f"Database ready at {self.db_path}")

    # ========================================================================
    # Task List Operations
    # ========================================================================

    def create_task_list(self, user_id: str, title: str, conn=None) -> TaskList:
        """Create a task list owned by the user"""
        task_list = TaskList(id=None, user_id=user_id, title=title)
        with self.transaction(conn) as c:
            cursor = c.execute(
                "INSERT INTO task_lists (user_id, title, created_at) VALUES (?, ?, ?)",
                (user_id, title, _ts(task_list.created_at))
            )
            task_list.id = cursor.lastrowid
        return task_list

    def get_task_list(self, user_id: str, task_list_id: int, conn=None) -> Optional[TaskList]:
        with self.transaction(conn) as c:
            row = c.execute(
                "SELECT * FROM task_lists WHERE id = ? AND user_id = ?",
                (task_list_id, user_id)
            ).fetchone()
        if not row:
            return None
        return TaskList(
            id=row['id'], user_id=row['user_id'], title=row['title'],
            created_at=parse_datetime(row['created_at'])
        )

    def get_task_list_by_title(self, user_id: str, title: str, conn=None) -> Optional[TaskList]:
        with self.transaction(conn) as c:
            row = c.execute(
                "SELECT * FROM task_lists WHERE user_id = ? AND title = ? ORDER BY id LIMIT 1",
                (user_id, title)
            ).fetchone()
        if not row:
            return None
        return TaskList(
            id=row['id'], user_id=row['user_id'], title=row['title'],
            created_at=parse_datetime(row['created_at'])
        )

    def list_task_lists(self, user_id: str) -> List[TaskList]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM task_lists WHERE user_id = ? ORDER BY id",
                (user_id,)
            ).fetchall()
        return [
            TaskList(id=r['id'], user_id=r['user_id'], title=r['title'],
                     created_at=parse_datetime(r['created_at']))
            for r in rows
        ]

    def rename_task_list(self, user_id: str, task_list_id: int, title: str) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE task_lists SET title = ? WHERE id = ? AND user_id = ?",
                (title, task_list_id, user_id)
            )
            return cursor.rowcount > 0

    def delete_task_list(self, user_id: str, task_list_id: int) -> bool:
        """Delete a task list together with its tasks

        Returns:
            bool: True if the list existed
        """
        with self.get_connection() as conn:
            task_ids = [
                r['id'] for r in conn.execute(
                    "SELECT id FROM tasks WHERE user_id = ? AND task_list_id = ?",
                    (user_id, task_list_id)
                ).fetchall()
            ]
            self.delete_tasks(user_id, task_ids, conn=conn)
            cursor = conn.execute(
                "DELETE FROM task_lists WHERE id = ? AND user_id = ?",
                (task_list_id, user_id)
            )
            return cursor.rowcount > 0

    # ========================================================================
    # Category Operations
    # ========================================================================

    def create_category(self, user_id: str, name: str, color: str, conn=None) -> Category:
        """Create a category

        Raises:
            ValidationError: If the user already has a category with this name
        """
        with self.transaction(conn) as c:
            try:
                cursor = c.execute(
                    "INSERT INTO categories (user_id, name, color) VALUES (?, ?, ?)",
                    (user_id, name, color)
                )
            except sqlite3.IntegrityError:
                raise ValidationError(f"Category '{name}' already exists")
            return Category(id=cursor.lastrowid, user_id=user_id, name=name, color=color)

    def get_category(self, user_id: str, category_id: int, conn=None) -> Optional[Category]:
        with self.transaction(conn) as c:
            row = c.execute(
                "SELECT * FROM categories WHERE id = ? AND user_id = ?",
                (category_id, user_id)
            ).fetchone()
        return Category(row['id'], row['user_id'], row['name'], row['color']) if row else None

    def get_category_by_name(self, user_id: str, name: str, conn=None) -> Optional[Category]:
        with self.transaction(conn) as c:
            row = c.execute(
                "SELECT * FROM categories WHERE user_id = ? AND name = ?",
                (user_id, name)
            ).fetchone()
        return Category(row['id'], row['user_id'], row['name'], row['color']) if row else None

    def get_categories_by_ids(self, user_id: str, category_ids: Iterable[int]) -> Dict[int, Category]:
        ids = [i for i in set(category_ids) if i is not None]
        if not ids:
            return {}
        with self.get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM categories WHERE user_id = ? AND id IN ({_placeholders(ids)})",
                [user_id, *ids]
            ).fetchall()
        return {r['id']: Category(r['id'], r['user_id'], r['name'], r['color']) for r in rows}

    def list_categories(self, user_id: str) -> List[Category]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM categories WHERE user_id = ? ORDER BY name",
                (user_id,)
            ).fetchall()
        return [Category(r['id'], r['user_id'], r['name'], r['color']) for r in rows]

    def update_category(self, category: Category) -> bool:
        with self.get_connection() as conn:
            try:
                cursor = conn.execute(
                    "UPDATE categories SET name = ?, color = ? WHERE id = ? AND user_id = ?",
                    (category.name, category.color, category.id, category.user_id)
                )
            except sqlite3.IntegrityError:
                raise ValidationError(f"Category '{category.name}' already exists")
            return cursor.rowcount > 0

    def delete_category(self, user_id: str, category_id: int) -> bool:
        """Delete a category. Tasks keep a dangling id and fall back to defaults."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE id = ? AND user_id = ?",
                (category_id, user_id)
            )
            return cursor.rowcount > 0

    # ========================================================================
    # Task Operations
    # ========================================================================

    def insert_task(self, task: Task, conn=None) -> Task:
        """Insert a task and its subtasks

        Args:
            task: Task without an id
            conn: Optional open connection to join its transaction

        Returns:
            Task: The same task with ids assigned
        """
        with self.transaction(conn) as c:
            cursor = c.execute("""
                INSERT INTO tasks (
                    user_id, title, description, status, task_list_id, category_id,
                    estimated_pomodoros, scheduled_start_at, scheduled_end_at, is_all_day,
                    is_recurring, recurrence_rule, recurrence_parent_id, completed_at,
                    is_deleted, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                task.user_id, task.title, task.description, task.status.value,
                task.task_list_id, task.category_id, task.estimated_pomodoros,
                _ts(task.scheduled_start_at), _ts(task.scheduled_end_at), task.is_all_day,
                task.is_recurring, task.recurrence_rule, task.recurrence_parent_id,
                _ts(task.completed_at), task.is_deleted, _ts(task.created_at),
            ))
            task.id = cursor.lastrowid
            for subtask in task.subtasks:
                self.insert_subtask(task.id, subtask, conn=c)
        return task

    def update_task(self, task: Task, conn=None) -> bool:
        """Persist every mutable column of an existing task"""
        with self.transaction(conn) as c:
            cursor = c.execute("""
                UPDATE tasks SET
                    title = ?, description = ?, status = ?, task_list_id = ?, category_id = ?,
                    estimated_pomodoros = ?, scheduled_start_at = ?, scheduled_end_at = ?,
                    is_all_day = ?, is_recurring = ?, recurrence_rule = ?,
                    recurrence_parent_id = ?, completed_at = ?, is_deleted = ?
                WHERE id = ? AND user_id = ?
            """, (
                task.title, task.description, task.status.value, task.task_list_id,
                task.category_id, task.estimated_pomodoros, _ts(task.scheduled_start_at),
                _ts(task.scheduled_end_at), task.is_all_day, task.is_recurring,
                task.recurrence_rule, task.recurrence_parent_id, _ts(task.completed_at),
                task.is_deleted, task.id, task.user_id,
            ))
            return cursor.rowcount > 0

    def get_task(self, user_id: str, task_id: int, conn=None) -> Optional[Task]:
        """Get a task (deleted or not) with its subtasks"""
        with self.transaction(conn) as c:
            row = c.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
                (task_id, user_id)
            ).fetchone()
            if not row:
                return None
            task = _row_to_task(row)
            task.subtasks = self.list_subtasks(task.id, conn=c)
        return task

    def get_task_owner(self, task_id: int, conn=None) -> Optional[str]:
        """User id owning a task, or None when no such task exists"""
        with self.transaction(conn) as c:
            row = c.execute("SELECT user_id FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return row['user_id'] if row else None

    def get_tasks_by_ids(self, user_id: str, task_ids: Iterable[int]) -> Dict[int, Task]:
        """Look up several tasks at once; missing ids are simply absent"""
        ids = [i for i in set(task_ids) if i is not None]
        if not ids:
            return {}
        with self.get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM tasks WHERE user_id = ? AND id IN ({_placeholders(ids)})",
                [user_id, *ids]
            ).fetchall()
        return {r['id']: _row_to_task(r) for r in rows}

    def _select_tasks(self, sql: str, params: list, conn=None) -> List[Task]:
        with self.transaction(conn) as c:
            rows = c.execute(sql, params).fetchall()
            tasks = [_row_to_task(r) for r in rows]
            if tasks:
                subtasks = self._subtasks_for([t.id for t in tasks], c)
                for task in tasks:
                    task.subtasks = subtasks.get(task.id, [])
        return tasks

    def list_tasks(
        self,
        user_id: str,
        task_list_id: Optional[int] = None,
        deleted: bool = False,
    ) -> List[Task]:
        """List a user's tasks, optionally restricted to one list

        Args:
            user_id: Owner
            task_list_id: Restrict to this list
            deleted: List the trash instead of live tasks
        """
        sql = "SELECT * FROM tasks WHERE user_id = ? AND is_deleted = ?"
        params: list = [user_id, deleted]
        if task_list_id is not None:
            sql += " AND task_list_id = ?"
            params.append(task_list_id)
        sql += " ORDER BY scheduled_start_at IS NULL, scheduled_start_at, id"
        return self._select_tasks(sql, params)

    def list_tasks_scheduled_between(self, user_id: str, start: datetime, end: datetime) -> List[Task]:
        """Live tasks whose scheduled start falls in [start, end)"""
        return self._select_tasks(
            "SELECT * FROM tasks WHERE user_id = ? AND is_deleted = 0 "
            "AND scheduled_start_at >= ? AND scheduled_start_at < ? "
            "ORDER BY scheduled_start_at, id",
            [user_id, _ts(start), _ts(end)],
        )

    def list_children(self, user_id: str, parent_id: int, conn=None) -> List[Task]:
        """Every occurrence that points at the given series parent"""
        return self._select_tasks(
            "SELECT * FROM tasks WHERE user_id = ? AND recurrence_parent_id = ? "
            "ORDER BY scheduled_start_at, id",
            [user_id, parent_id],
            conn=conn,
        )

    def delete_tasks(self, user_id: str, task_ids: List[int], conn=None) -> int:
        """Permanently delete tasks and their subtasks

        Returns:
            int: Number of task rows removed
        """
        if not task_ids:
            return 0
        with self.transaction(conn) as c:
            c.execute(
                f"DELETE FROM subtasks WHERE task_id IN ({_placeholders(task_ids)})",
                task_ids
            )
            cursor = c.execute(
                f"DELETE FROM tasks WHERE user_id = ? AND id IN ({_placeholders(task_ids)})",
                [user_id, *task_ids]
            )
            return cursor.rowcount

    def focus_seconds_by_task(self, user_id: str, task_ids: Iterable[int]) -> Dict[int, int]:
        """Total recorded FOCUS seconds per task"""
        ids = [i for i in set(task_ids) if i is not None]
        if not ids:
            return {}
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT task_id, SUM(actual_duration) AS seconds FROM focus_sessions "
                f"WHERE user_id = ? AND session_type = ? AND task_id IN ({_placeholders(ids)}) "
                "GROUP BY task_id",
                [user_id, SessionType.FOCUS.value, *ids]
            ).fetchall()
        return {r['task_id']: r['seconds'] or 0 for r in rows}

    # ========================================================================
    # Subtask Operations
    # ========================================================================

    def insert_subtask(self, task_id: int, subtask: Subtask, conn=None) -> Subtask:
        with self.transaction(conn) as c:
            cursor = c.execute(
                "INSERT INTO subtasks (task_id, title, description, is_completed, order_index) "
                "VALUES (?, ?, ?, ?, ?)",
                (task_id, subtask.title, subtask.description, subtask.is_completed, subtask.order_index)
            )
            subtask.id = cursor.lastrowid
            subtask.task_id = task_id
        return subtask

    def get_subtask(self, user_id: str, subtask_id: int) -> Optional[Subtask]:
        """Get a subtask whose task belongs to the user"""
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT s.* FROM subtasks s JOIN tasks t ON t.id = s.task_id "
                "WHERE s.id = ? AND t.user_id = ?",
                (subtask_id, user_id)
            ).fetchone()
        return _row_to_subtask(row) if row else None

    def update_subtask(self, subtask: Subtask) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE subtasks SET title = ?, description = ?, is_completed = ?, order_index = ? "
                "WHERE id = ?",
                (subtask.title, subtask.description, subtask.is_completed, subtask.order_index, subtask.id)
            )
            return cursor.rowcount > 0

    def delete_subtask(self, subtask_id: int) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute("DELETE FROM subtasks WHERE id = ?", (subtask_id,))
            return cursor.rowcount > 0

    def list_subtasks(self, task_id: int, conn=None) -> List[Subtask]:
        return self._subtasks_for([task_id], conn).get(task_id, [])

    def _subtasks_for(self, task_ids: List[int], conn=None) -> Dict[int, List[Subtask]]:
        with self.transaction(conn) as c:
            rows = c.execute(
                f"SELECT * FROM subtasks WHERE task_id IN ({_placeholders(task_ids)}) "
                "ORDER BY order_index, id",
                task_ids
            ).fetchall()
        grouped: Dict[int, List[Subtask]] = {}
        for row in rows:
            grouped.setdefault(row['task_id'], []).append(_row_to_subtask(row))
        return grouped

    # ========================================================================
    # Focus Session Operations
    # ========================================================================

    def save_focus_session(self, session: FocusSession, conn=None) -> FocusSession:
        """Insert a new session, or overwrite the one with the same id"""
        values = (
            session.task_id, session.session_type.value, session.status.value,
            session.scheduled_duration, session.actual_duration,
            _ts(session.started_at), _ts(session.ended_at),
        )
        with self.transaction(conn) as c:
            if session.id is None:
                cursor = c.execute("""
                    INSERT INTO focus_sessions (
                        task_id, session_type, status, scheduled_duration, actual_duration,
                        started_at, ended_at, user_id, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (*values, session.user_id, _ts(session.created_at)))
                session.id = cursor.lastrowid
            else:
                c.execute("""
                    UPDATE focus_sessions SET
                        task_id = ?, session_type = ?, status = ?, scheduled_duration = ?,
                        actual_duration = ?, started_at = ?, ended_at = ?
                    WHERE id = ? AND user_id = ?
                """, (*values, session.id, session.user_id))
        return session

    def get_focus_session(self, user_id: str, session_id: int) -> Optional[FocusSession]:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM focus_sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id)
            ).fetchone()
        return _row_to_session(row) if row else None

    def list_focus_sessions(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        session_type: Optional[SessionType] = None,
    ) -> List[FocusSession]:
        """Sessions started in [start, end), oldest first"""
        sql = "SELECT * FROM focus_sessions WHERE user_id = ? AND started_at >= ? AND started_at < ?"
        params: list = [user_id, _ts(start), _ts(end)]
        if session_type is not None:
            sql += " AND session_type = ?"
            params.append(session_type.value)
        sql += " ORDER BY started_at, id"
        with self.get_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_session(r) for r in rows]

    def total_focus_seconds(self, user_id: str) -> int:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(actual_duration), 0) AS seconds FROM focus_sessions "
                "WHERE user_id = ? AND session_type = ?",
                (user_id, SessionType.FOCUS.value)
            ).fetchone()
        return row['seconds']

    def delete_focus_session(self, user_id: str, session_id: int) -> bool:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM focus_sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id)
            )
            return cursor.rowcount > 0

    # ========================================================================
    # Goal and Setting Operations
    # ========================================================================

    def upsert_daily_goal(self, user_id: str, day: date, goal_minutes: int) -> DailyGoal:
        """Set the goal for a day, replacing any earlier value"""
        with self.get_connection() as conn:
            conn.execute("""
                INSERT INTO daily_goals (user_id, goal_date, goal_minutes) VALUES (?, ?, ?)
                ON CONFLICT (user_id, goal_date) DO UPDATE SET goal_minutes = excluded.goal_minutes
            """, (user_id, day.isoformat(), goal_minutes))
            row = conn.execute(
                "SELECT id FROM daily_goals WHERE user_id = ? AND goal_date = ?",
                (user_id, day.isoformat())
            ).fetchone()
        return DailyGoal(id=row['id'], user_id=user_id, date=day, goal_minutes=goal_minutes)

    def get_daily_goal(self, user_id: str, day: date) -> Optional[DailyGoal]:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM daily_goals WHERE user_id = ? AND goal_date = ?",
                (user_id, day.isoformat())
            ).fetchone()
        if not row:
            return None
        return DailyGoal(row['id'], row['user_id'], date.fromisoformat(row['goal_date']), row['goal_minutes'])

    def list_daily_goals(self, user_id: str, start: date, end: date) -> List[DailyGoal]:
        """Stored goals for dates in [start, end] inclusive"""
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM daily_goals WHERE user_id = ? AND goal_date >= ? AND goal_date <= ? "
                "ORDER BY goal_date",
                (user_id, start.isoformat(), end.isoformat())
            ).fetchall()
        return [
            DailyGoal(r['id'], r['user_id'], date.fromisoformat(r['goal_date']), r['goal_minutes'])
            for r in rows
        ]

    def get_pomodoro_setting(self, user_id: str) -> Optional[PomodoroSetting]:
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM pomodoro_settings WHERE user_id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return PomodoroSetting(
            user_id=row['user_id'],
            focus_duration=row['focus_duration'],
            short_break_duration=row['short_break_duration'],
            long_break_duration=row['long_break_duration'],
            sessions_until_long_break=row['sessions_until_long_break'],
            daily_goal=row['daily_goal'],
        )

    def save_pomodoro_setting(self, setting: PomodoroSetting) -> PomodoroSetting:
        with self.get_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO pomodoro_settings (
                    user_id, focus_duration, short_break_duration, long_break_duration,
                    sessions_until_long_break, daily_goal
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, (
                setting.user_id, setting.focus_duration, setting.short_break_duration,
                setting.long_break_duration, setting.sessions_until_long_break, setting.daily_goal,
            ))
        return setting

    # ========================================================================
    # Conversation Operations
    # ========================================================================

    def create_conversation(self, conversation: Conversation) -> Conversation:
        with self.get_connection() as conn:
            conn.execute(
                "INSERT INTO conversations (id, user_id, title, created_at) VALUES (?, ?, ?, ?)",
                (conversation.id, conversation.user_id, conversation.title, _ts(conversation.created_at))
            )
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation regardless of owner; callers check ownership"""
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        if not row:
            return None
        return Conversation(row['id'], row['user_id'], row['title'], parse_datetime(row['created_at']))

    def list_conversations(self, user_id: str) -> List[Conversation]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM conversations WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,)
            ).fetchall()
        return [Conversation(r['id'], r['user_id'], r['title'], parse_datetime(r['created_at'])) for r in rows]

    def set_conversation_title(self, conversation_id: str, title: str) -> None:
        with self.get_connection() as conn:
            conn.execute(
                "UPDATE conversations SET title = ? WHERE id = ?", (title, conversation_id)
            )

    def delete_conversation(self, conversation_id: str) -> bool:
        with self.get_connection() as conn:
            conn.execute("DELETE FROM chat_messages WHERE conversation_id = ?", (conversation_id,))
            cursor = conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
            return cursor.rowcount > 0

    def add_chat_messages(self, messages: List[ChatMessage]) -> None:
        """Append messages to their conversations in one transaction"""
        with self.get_connection() as conn:
            conn.executemany(
                "INSERT INTO chat_messages (conversation_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                [(m.conversation_id, m.role, m.content, _ts(m.created_at)) for m in messages]
            )

    def list_chat_messages(self, conversation_id: str) -> List[ChatMessage]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM chat_messages WHERE conversation_id = ? ORDER BY id",
                (conversation_id,)
            ).fetchall()
        return [
            ChatMessage(r['conversation_id'], r['role'], r['content'], parse_datetime(r['created_at']))
            for r in rows
        ]


# ============================================================================
# Singleton Instance
# ============================================================================

_db_manager: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """Get singleton database manager instance

    Returns:
        DatabaseManager: Database manager instance
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def reset_db():
    """Reset database manager (useful for testing)"""
    global _db_manager
    _db_manager = None
