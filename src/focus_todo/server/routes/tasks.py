"""Task API routes, including recurring series, bulk edits and diff sync."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...models import (
    BulkDelete,
    BulkUpdate,
    SubtaskCreate,
    SubtaskUpdate,
    SuccessResponse,
    SyncRequest,
    TaskCreate,
    TaskUpdate,
)
from ...services.tasks import TaskService
from ..auth import get_current_user_id
from ..deps import get_task_service


router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
def list_tasks(
    task_list_id: Optional[int] = Query(None, alias="taskListId"),
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """List live tasks, optionally limited to one task list."""
    return [t.to_dict() for t in service.list_tasks(user_id, task_list_id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Create a task, custom-dated copies or a recurring series.

    Returns the single task, the first dated copy or the series parent.
    """
    return service.create_task(user_id, body).to_dict()


@router.get("/inbox")
def list_inbox(
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return [t.to_dict() for t in service.list_inbox_tasks(user_id)]


@router.get("/trash")
def list_trash(
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return [t.to_dict() for t in service.list_trash(user_id)]


@router.get("/stats")
def task_stats(
    start: date = Query(..., alias="startDate"),
    end: date = Query(..., alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.task_stats(user_id, start, end).to_dict()


@router.post("/bulk-update")
def bulk_update(
    body: BulkUpdate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.bulk_update_tasks(user_id, body).to_dict()


@router.post("/bulk-delete")
def bulk_delete(
    body: BulkDelete,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.bulk_delete_tasks(user_id, body.task_ids).to_dict()


@router.post("/sync")
def sync_tasks(
    body: SyncRequest,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Apply an accepted AI preview (or any diff list) atomically."""
    return service.sync_tasks(user_id, body.tasks).to_dict()


@router.patch("/subtasks/{subtask_id}")
def update_subtask(
    subtask_id: int,
    body: SubtaskUpdate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.update_subtask(user_id, subtask_id, body).to_dict()


@router.delete("/subtasks/{subtask_id}", response_model=SuccessResponse)
def delete_subtask(
    subtask_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    service.delete_subtask(user_id, subtask_id)
    return SuccessResponse(message=f"Subtask {subtask_id} deleted")


@router.get("/{task_id}")
def get_task(
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.get_task(user_id, task_id).to_dict()


@router.patch("/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    """Patch a task; recurrence changes regenerate the pending occurrences."""
    return service.update_task(user_id, task_id, body).to_dict()


@router.delete("/{task_id}", response_model=SuccessResponse)
def delete_task(
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(user_id, task_id)
    return SuccessResponse(message=f"Task {task_id} moved to trash")


@router.post("/{task_id}/restore")
def restore_task(
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.restore_task(user_id, task_id).to_dict()


@router.delete("/{task_id}/permanent", response_model=SuccessResponse)
def delete_task_permanently(
    task_id: int,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    removed = service.delete_task_permanently(user_id, task_id)
    return SuccessResponse(message=f"Deleted {removed} task(s) permanently")


@router.post("/{task_id}/subtasks", status_code=status.HTTP_201_CREATED)
def create_subtask(
    task_id: int,
    body: SubtaskCreate,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
):
    return service.create_subtask(user_id, task_id, body).to_dict()
