"""Task list management, including the per-user Inbox."""

import logging
from typing import List, Optional

from ..domain import INBOX_TITLE, TaskList
from ..errors import NotFoundError, ValidationError
from ..storage.database import DatabaseManager


logger = logging.getLogger(__name__)


class TaskListService:
    """Creates, resolves and removes a user's task lists."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def list_task_lists(self, user_id: str) -> List[TaskList]:
        lists = self.db.list_task_lists(user_id)
        logger.info(f"Found {len(lists)} task lists for user {user_id}")
        return lists

    def get_task_list(self, user_id: str, task_list_id: int, conn=None) -> TaskList:
        task_list = self.db.get_task_list(user_id, task_list_id, conn=conn)
        if task_list is None:
            raise NotFoundError(f"Task list {task_list_id} not found")
        return task_list

    def get_or_create_inbox(self, user_id: str, conn=None) -> TaskList:
        """Return the user's Inbox, creating it on first use."""
        return self.get_or_create(user_id, INBOX_TITLE, conn=conn)

    def get_or_create(self, user_id: str, title: str, conn=None) -> TaskList:
        existing = self.db.get_task_list_by_title(user_id, title, conn=conn)
        if existing:
            return existing
        created = self.db.create_task_list(user_id, title, conn=conn)
        logger.info(f"Created task list '{title}' ({created.id}) for user {user_id}")
        return created

    def resolve(
        self,
        user_id: str,
        task_list_id: Optional[int] = None,
        task_list_title: Optional[str] = None,
        conn=None,
    ) -> TaskList:
        """Pick the list a new task goes into.

        A title wins and is created on demand; a missing or zero id means the
        Inbox; any other id must name one of the user's lists.
        """
        if task_list_title and task_list_title.strip():
            return self.get_or_create(user_id, task_list_title.strip(), conn=conn)
        if not task_list_id:
            return self.get_or_create_inbox(user_id, conn=conn)

        task_list = self.db.get_task_list(user_id, task_list_id, conn=conn)
        if task_list is None:
            raise ValidationError(f"Task list {task_list_id} not found")
        return task_list

    def create_task_list(self, user_id: str, title: str) -> TaskList:
        if not title or not title.strip():
            raise ValidationError("Task list title is required")
        task_list = self.db.create_task_list(user_id, title.strip())
        logger.info(f"Created task list {task_list.id} for user {user_id}")
        return task_list

    def rename_task_list(self, user_id: str, task_list_id: int, title: str) -> TaskList:
        if not title or not title.strip():
            raise ValidationError("Task list title is required")
        if not self.db.rename_task_list(user_id, task_list_id, title.strip()):
            raise NotFoundError(f"Task list {task_list_id} not found")
        return self.get_task_list(user_id, task_list_id)

    def delete_task_list(self, user_id: str, task_list_id: int) -> None:
        """Delete a list and every task in it."""
        if not self.db.delete_task_list(user_id, task_list_id):
            raise NotFoundError(f"Task list {task_list_id} not found")
        logger.info(f"Deleted task list {task_list_id} for user {user_id}")
