"""
Tests for categories and task lists
"""

import pytest

from focus_todo.errors import NotFoundError, ValidationError
from focus_todo.models import TaskCreate
from focus_todo.services.categories import CategoryService
from focus_todo.services.task_lists import TaskListService
from focus_todo.services.tasks import TaskService


USER = "alice"


@pytest.fixture
def categories(db):
    return CategoryService(db)


@pytest.fixture
def task_lists(db):
    return TaskListService(db)


class TestCategoryService:
    """Test category CRUD and resolution"""

    def test_create_and_list(self, categories):
        categories.create_category(USER, "  Work ", "#ff0000")
        names = [c.name for c in categories.list_categories(USER)]
        assert names == ["Work"]

    def test_default_color(self, categories):
        assert categories.create_category(USER, "Study").color == "#94a3b8"

    def test_invalid_color(self, categories):
        with pytest.raises(ValidationError):
            categories.create_category(USER, "Work", "red")

    def test_duplicate_name(self, categories):
        categories.create_category(USER, "Work")
        with pytest.raises(ValidationError):
            categories.create_category(USER, "Work")

    def test_same_name_for_different_users(self, categories):
        categories.create_category(USER, "Work")
        assert categories.create_category("bob", "Work").id is not None

    def test_update(self, categories):
        created = categories.create_category(USER, "Work")
        updated = categories.update_category(USER, created.id, color="#00ff00")
        assert updated.name == "Work"
        assert categories.get_category(USER, created.id).color == "#00ff00"

    def test_other_users_category_is_not_found(self, categories):
        created = categories.create_category("bob", "Work")
        with pytest.raises(NotFoundError):
            categories.get_category(USER, created.id)
        with pytest.raises(NotFoundError):
            categories.delete_category(USER, created.id)

    def test_resolve_by_id_must_exist(self, categories):
        with pytest.raises(ValidationError):
            categories.resolve(USER, category_id=77)

    def test_resolve_unknown_name_falls_back_to_others(self, categories):
        first = categories.resolve(USER, category_name="Hobby")
        second = categories.resolve(USER, category_name="Gardening")
        assert first.name == "Others"
        assert first.id == second.id

    def test_resolve_nothing(self, categories):
        assert categories.resolve(USER) is None


class TestTaskListService:
    """Test task lists and the Inbox"""

    def test_inbox_created_once(self, task_lists):
        first = task_lists.get_or_create_inbox(USER)
        second = task_lists.get_or_create_inbox(USER)
        assert first.id == second.id
        assert first.title == "Inbox"

    def test_resolve_rules(self, task_lists):
        work = task_lists.create_task_list(USER, "Work")
        assert task_lists.resolve(USER, task_list_id=work.id).id == work.id
        assert task_lists.resolve(USER, task_list_id=0).title == "Inbox"
        assert task_lists.resolve(USER, task_list_id=work.id, task_list_title="Home").title == "Home"
        with pytest.raises(ValidationError):
            task_lists.resolve(USER, task_list_id=999)

    def test_rename(self, task_lists):
        work = task_lists.create_task_list(USER, "Work")
        assert task_lists.rename_task_list(USER, work.id, "Office").title == "Office"
        with pytest.raises(NotFoundError):
            task_lists.rename_task_list(USER, 999, "Nowhere")

    def test_blank_title(self, task_lists):
        with pytest.raises(ValidationError):
            task_lists.create_task_list(USER, "   ")

    def test_delete_removes_tasks(self, task_lists, db):
        work = task_lists.create_task_list(USER, "Work")
        task = TaskService(db).create_task(USER, TaskCreate(title="Report", task_list_id=work.id))

        task_lists.delete_task_list(USER, work.id)

        assert db.get_task(USER, task.id) is None
        with pytest.raises(NotFoundError):
            task_lists.get_task_list(USER, work.id)
