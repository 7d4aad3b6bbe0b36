"""Task list API routes."""

from fastapi import APIRouter, Depends, status

from ...models import SuccessResponse, TaskListCreate
from ...services.task_lists import TaskListService
from ...services.tasks import TaskService
from ..auth import get_current_user_id
from ..deps import get_task_list_service, get_task_service


router = APIRouter(prefix="/api/task-lists", tags=["task-lists"])


@router.get("")
def list_task_lists(
    user_id: str = Depends(get_current_user_id),
    service: TaskListService = Depends(get_task_list_service),
):
    return [t.to_dict() for t in service.list_task_lists(user_id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task_list(
    body: TaskListCreate,
    user_id: str = Depends(get_current_user_id),
    service: TaskListService = Depends(get_task_list_service),
):
    return service.create_task_list(user_id, body.title).to_dict()


@router.get("/{task_list_id}")
def get_task_list(
    task_list_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskListService = Depends(get_task_list_service),
):
    return service.get_task_list(user_id, task_list_id).to_dict()


@router.get("/{task_list_id}/tasks")
def list_tasks_in_list(
    task_list_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return [t.to_dict() for t in service.list_tasks(user_id, task_list_id)]


@router.patch("/{task_list_id}")
def rename_task_list(
    task_list_id: int,
    body: TaskListCreate,
    user_id: str = Depends(get_current_user_id),
    service: TaskListService = Depends(get_task_list_service),
):
    return service.rename_task_list(user_id, task_list_id, body.title).to_dict()


@router.delete("/{task_list_id}", response_model=SuccessResponse)
def delete_task_list(
    task_list_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskListService = Depends(get_task_list_service),
):
    """Delete a list together with its tasks."""
    service.delete_task_list(user_id, task_list_id)
    return SuccessResponse(message=f"Task list {task_list_id} deleted")
