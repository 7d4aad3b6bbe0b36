"""Conversational task editing routes."""

from fastapi import APIRouter, Depends

from ...models import ChatRequest, ChatResponse, SuccessResponse
from ...services.ai import AiService
from ..auth import get_current_user_id
from ..deps import get_ai_service


router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/chat", response_model=ChatResponse, response_model_by_alias=False)
def chat(
    body: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    service: AiService = Depends(get_ai_service),
):
    """Ask the model for a task diff. Nothing is applied until the client syncs it."""
    outcome = service.chat(
        user_id,
        body.prompt,
        current_tasks=body.current_tasks,
        project_title=body.project_title,
        conversation_id=body.conversation_id,
    )
    return ChatResponse(
        conversation_id=outcome.conversation_id,
        message=outcome.result.advice or "",
        result=outcome.result,
        success=True,
        suggested_title=outcome.suggested_title,
    )


@router.get("/conversations")
def list_conversations(
    user_id: str = Depends(get_current_user_id),
    service: AiService = Depends(get_ai_service),
):
    return [c.to_dict() for c in service.list_conversations(user_id)]


@router.get("/conversations/{conversation_id}/messages")
def list_messages(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AiService = Depends(get_ai_service),
):
    return [m.to_dict() for m in service.list_messages(user_id, conversation_id)]


@router.delete("/conversations/{conversation_id}", response_model=SuccessResponse)
def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AiService = Depends(get_ai_service),
):
    service.delete_conversation(user_id, conversation_id)
    return SuccessResponse(message=f"Conversation {conversation_id} deleted")
