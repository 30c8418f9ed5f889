"""Customer chat endpoints."""

import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from porcelain_rag.api.dependencies import get_services
from porcelain_rag.api.schemas import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    FeedbackRequest,
    MessageOut,
)
from porcelain_rag.config import config
from porcelain_rag.services import Services

logger = config.get_logger(__name__)
router = APIRouter()


@router.post("", response_model=ChatResponse)
def chat(request: ChatRequest, services: Services = Depends(get_services)):
    """Answer a message from the product knowledge base, with provenance."""
    try:
        result = services.conversations.answer(request.message, request.session_id)
    except Exception:
        logger.exception("Chat error")
        raise HTTPException(
            status_code=500, detail="Failed to process chat request"
        ) from None

    return ChatResponse(
        answer=result.answer,
        provenance=[item.to_dict() for item in result.provenance],
        retrieved_docs=len(result.retrieved_docs),
        escalated=result.escalated,
    )


@router.post("/stream")
def chat_stream(request: ChatRequest, services: Services = Depends(get_services)):
    """Stream the answer as chunked plain text."""
    try:
        chunks = services.conversations.stream(request.message, request.session_id)
    except Exception:
        logger.exception("Streaming chat error")
        raise HTTPException(
            status_code=500, detail="Failed to process streaming chat request"
        ) from None

    return StreamingResponse(chunks, media_type="text/plain; charset=utf-8")


@router.get("/history/{session_id}", response_model=ChatHistoryResponse)
def chat_history(
    session_id: str,
    limit: int = Query(config.HISTORY_LIMIT, ge=1, le=500),
    services: Services = Depends(get_services),
):
    try:
        messages = services.conversations.history(session_id, limit)
    except Exception:
        logger.exception("Error getting conversation history")
        raise HTTPException(
            status_code=500, detail="Failed to get conversation history"
        ) from None

    return ChatHistoryResponse(
        session_id=session_id,
        messages=[
            MessageOut(
                id=message.id,
                role=message.role,
                content=message.content,
                provenance=message.provenance,
                timestamp=message.created_at,
            )
            for message in messages
        ],
    )


@router.post("/feedback")
def chat_feedback(request: FeedbackRequest):
    logger.info(
        "Feedback received: session=%s conversation=%s rating=%s feedback=%s at %s",
        request.session_id,
        request.conversation_id,
        request.rating,
        request.feedback,
        datetime.datetime.now(tz=datetime.UTC).isoformat(),
    )
    return {"message": "Feedback received successfully"}


@router.get("/search")
def search_products(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    services: Services = Depends(get_services),
):
    """Products whose snippets best match a query, best match first."""
    try:
        products = services.retriever.search_products(q, limit)
    except Exception:
        logger.exception("Product search error")
        raise HTTPException(
            status_code=500, detail="Failed to search products"
        ) from None
    return {"query": q, "products": products}


@router.get("/health")
def chat_health(services: Services = Depends(get_services)):
    checks = {
        "retrieval": services.retriever.check(),
        "openai": services.embedding_service.check(),
        "database": services.store.ping(),
    }
    return {
        "status": "OK" if all(checks.values()) else "ERROR",
        "services": {name: "OK" if ok else "ERROR" for name, ok in checks.items()},
        "timestamp": datetime.datetime.now(tz=datetime.UTC).isoformat(),
    }
