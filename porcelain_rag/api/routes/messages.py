"""Messages of a user's conversations."""

from fastapi import APIRouter, Depends, HTTPException

from porcelain_rag.api.dependencies import get_services, get_user_id
from porcelain_rag.api.schemas import MessageCreate, MessageOut, MessageUpdate
from porcelain_rag.config import config
from porcelain_rag.models import Message
from porcelain_rag.services import Services

logger = config.get_logger(__name__)
router = APIRouter()


def _out(message: Message) -> dict:
    return MessageOut(
        id=message.id,
        role=message.role,
        content=message.content,
        provenance=message.provenance,
        timestamp=message.created_at,
    ).model_dump()


def _owned_message(services: Services, message_id: str, user_id: str) -> Message:
    message = services.store.get_message(message_id)
    if message is None or (
        services.store.get_conversation(message.conversation_id, user_id) is None
    ):
        raise HTTPException(status_code=404, detail="Message not found")
    return message


@router.get("/conversation/{conversation_id}")
def list_messages(
    conversation_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Messages of a conversation, oldest first."""
    try:
        conversation = services.store.get_conversation(conversation_id, user_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        messages = services.store.list_messages(conversation_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Get messages error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return {"messages": [_out(message) for message in messages]}


@router.post("", status_code=201)
def send_message(
    request: MessageCreate,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        conversation = services.store.get_conversation(
            request.conversation_id, user_id
        )
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        message = services.store.add_message(
            conversation.id, request.role, request.content
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Send message error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return {"message": "Message sent successfully", "data": _out(message)}


@router.put("/{message_id}")
def update_message(
    message_id: str,
    request: MessageUpdate,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        _owned_message(services, message_id, user_id)
        message = services.store.update_message(message_id, request.content)
        if message is None:
            raise HTTPException(status_code=404, detail="Message not found")
    except HTTPException:
        raise
    except Exception:
        logger.exception("Update message error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return {"message": "Message updated successfully", "data": _out(message)}


@router.delete("/{message_id}")
def delete_message(
    message_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        _owned_message(services, message_id, user_id)
        services.store.delete_message(message_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Delete message error")
        raise HTTPException(status_code=500, detail="Internal server error") from None
    return {"message": "Message deleted successfully"}
