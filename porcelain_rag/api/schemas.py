"""Pydantic models for API requests and responses."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["user", "assistant", "system"]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _not_blank(value: str) -> str:
    if not value.strip():
        msg = "must not be empty"
        raise ValueError(msg)
    return value


class ChatRequest(CamelModel):
    message: str
    session_id: str | None = Field(None, alias="sessionId")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ProvenanceOut(BaseModel):
    product_id: str
    source_type: str
    source_id: str | None = None
    similarity: float


class ChatResponse(BaseModel):
    answer: str
    provenance: list[ProvenanceOut]
    retrieved_docs: int
    escalated: bool = False


class FeedbackRequest(CamelModel):
    session_id: str | None = Field(None, alias="sessionId")
    conversation_id: str | None = Field(None, alias="conversationId")
    feedback: str | None = None
    rating: int | None = Field(None, ge=1, le=5)


class MessageOut(BaseModel):
    id: str
    role: Role
    content: str
    provenance: list[dict[str, Any]] = Field(default_factory=list)
    timestamp: str | None = None


class ChatHistoryResponse(CamelModel):
    session_id: str = Field(serialization_alias="sessionId")
    messages: list[MessageOut]


class ConversationCreate(BaseModel):
    title: str | None = None


class ConversationUpdate(BaseModel):
    title: str

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ConversationOut(CamelModel):
    id: str
    title: str
    created_at: str | None = Field(None, serialization_alias="createdAt")
    updated_at: str | None = Field(None, serialization_alias="updatedAt")


class MessageCreate(CamelModel):
    conversation_id: str = Field(alias="conversationId")
    role: Role
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class MessageUpdate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class ProductIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    description: str = ""
    category: str | None = None
    sku: str | None = None
    price: float | None = None
    specifications: dict[str, Any] | None = None
    faqs: list[dict[str, str]] | None = None
    documents: list[dict[str, str]] | None = None


class ProductDataRequest(BaseModel):
    products: list[ProductIn]
