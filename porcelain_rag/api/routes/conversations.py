"""Per-user conversation management."""

from fastapi import APIRouter, Depends, HTTPException

from porcelain_rag.api.dependencies import get_services, get_user_id
from porcelain_rag.api.schemas import (
    ConversationCreate,
    ConversationOut,
    ConversationUpdate,
)
from porcelain_rag.config import config
from porcelain_rag.models import Conversation
from porcelain_rag.services import Services

logger = config.get_logger(__name__)
router = APIRouter()


def _out(conversation: Conversation) -> ConversationOut:
    return ConversationOut(
        id=conversation.id,
        title=conversation.title,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
    )


@router.get("")
def list_conversations(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        conversations = services.store.list_conversations(user_id)
    except Exception:
        logger.exception("Get conversations error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return {
        "conversations": [
            _out(item).model_dump(by_alias=True) for item in conversations
        ]
    }


@router.post("", status_code=201)
def create_conversation(
    request: ConversationCreate,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        conversation = services.store.create_conversation(
            title=request.title or "New Conversation", user_id=user_id
        )
    except Exception:
        logger.exception("Create conversation error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return {
        "message": "Conversation created successfully",
        "conversation": _out(conversation).model_dump(by_alias=True),
    }


@router.get("/{conversation_id}")
def get_conversation(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        conversation = services.store.get_conversation(conversation_id, user_id)
    except Exception:
        logger.exception("Get conversation error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"conversation": _out(conversation).model_dump(by_alias=True)}


@router.put("/{conversation_id}")
def update_conversation(
    conversation_id: str,
    request: ConversationUpdate,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        conversation = services.store.rename_conversation(
            conversation_id, user_id, request.title
        )
    except Exception:
        logger.exception("Update conversation error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {
        "message": "Conversation updated successfully",
        "conversation": _out(conversation).model_dump(by_alias=True),
    }


@router.delete("/{conversation_id}")
def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        deleted = services.store.delete_conversation(conversation_id, user_id)
    except Exception:
        logger.exception("Delete conversation error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    if not deleted:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"message": "Conversation deleted successfully"}
