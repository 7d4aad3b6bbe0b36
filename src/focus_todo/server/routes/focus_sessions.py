"""Focus session API routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from ...models import FocusSessionRecord, SuccessResponse
from ...services.focus_sessions import FocusSessionService
from ..auth import get_current_user_id
from ..deps import get_focus_session_service


router = APIRouter(prefix="/api/focus-sessions", tags=["focus-sessions"])


@router.post("", status_code=status.HTTP_201_CREATED)
def record_session(
    body: FocusSessionRecord,
    user_id: str = Depends(get_current_user_id),
    service: FocusSessionService = Depends(get_focus_session_service),
):
    """Record a finished interval; a body id corrects an earlier record."""
    session = service.record_session(
        user_id,
        session_type=body.session_type,
        status=body.status,
        scheduled_duration=body.scheduled_duration,
        actual_duration=body.actual_duration,
        started_at=body.started_at,
        ended_at=body.ended_at,
        task_id=body.task_id,
        session_id=body.id,
    )
    return session.to_dict()


@router.get("")
def list_sessions(
    day: date = Query(..., alias="date"),
    user_id: str = Depends(get_current_user_id),
    service: FocusSessionService = Depends(get_focus_session_service),
):
    return [s.to_dict() for s in service.sessions_on(user_id, day)]


@router.get("/daily")
def daily_summary(
    day: date = Query(..., alias="date"),
    user_id: str = Depends(get_current_user_id),
    service: FocusSessionService = Depends(get_focus_session_service),
):
    return {"date": day.isoformat(), "total_seconds": service.daily_focus_seconds(user_id, day)}


@router.get("/total")
def total_summary(
    user_id: str = Depends(get_current_user_id),
    service: FocusSessionService = Depends(get_focus_session_service),
):
    return {"total_seconds": service.total_focus_seconds(user_id)}


@router.delete("/{session_id}", response_model=SuccessResponse)
def delete_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    service: FocusSessionService = Depends(get_focus_session_service),
):
    service.delete_session(user_id, session_id)
    return SuccessResponse(message=f"Focus session {session_id} deleted")
