"""Data models for the porcelain knowledge base and chat history."""

from dataclasses import dataclass, field
from typing import Any

import numpy as np

SOURCE_TYPES = ("description", "faq", "specification", "document")
MESSAGE_ROLES = ("user", "assistant", "system")


@dataclass
class Product:
    """A catalogue product as stored in the ``products`` table."""

    name: str
    description: str = ""
    category: str | None = None
    sku: str | None = None
    price: float | None = None
    specifications: dict[str, Any] | None = None
    id: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Product":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            name=row.get("name", ""),
            description=row.get("description") or "",
            category=row.get("category"),
            sku=row.get("sku"),
            price=row.get("price"),
            specifications=row.get("specifications"),
        )

    def to_row(self) -> dict[str, Any]:
        row = {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "sku": self.sku,
            "price": self.price,
            "specifications": self.specifications,
        }
        return {key: value for key, value in row.items() if value is not None}


@dataclass
class EmbeddingRecord:
    """A text snippet of a product with its embedding vector."""

    product_id: str
    source_type: str
    text_snippet: str
    source_id: str | None = None
    embedding: np.ndarray | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_row(self) -> dict[str, Any]:
        """Serialize for insertion into the ``embeddings`` table.

        Raises:
            ValueError: If the record has not been embedded yet.
        """
        if self.embedding is None:
            msg = f"Embedding missing for {self.source_type} of {self.product_id}"
            raise ValueError(msg)
        return {
            "product_id": self.product_id,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "text_snippet": self.text_snippet,
            "embedding": np.asarray(self.embedding, dtype=float).tolist(),
            "metadata": self.metadata,
        }


@dataclass
class RetrievedDocument:
    """A snippet returned by vector search, with its similarity score."""

    product_id: str
    source_type: str
    text_snippet: str
    similarity: float
    source_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(
        cls, row: dict[str, Any], similarity: float | None = None
    ) -> "RetrievedDocument":
        score = row.get("similarity", 1.0) if similarity is None else similarity
        source_id = row.get("source_id")
        return cls(
            product_id=str(row["product_id"]),
            source_type=row["source_type"],
            source_id=str(source_id) if source_id is not None else None,
            text_snippet=row.get("text_snippet") or "",
            similarity=float(score),
            metadata=row.get("metadata") or {},
        )


@dataclass
class ProvenanceItem:
    """Citation metadata attached to an assistant answer."""

    product_id: str
    source_type: str
    similarity: float
    source_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "similarity": self.similarity,
        }


@dataclass
class Conversation:
    """A conversation owned by a user or bound to a widget session."""

    id: str
    title: str = "New Conversation"
    user_id: str | None = None
    session_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Conversation":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "New Conversation",
            user_id=row.get("user_id"),
            session_id=row.get("session_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Message:
    """A single turn of a conversation."""

    id: str
    conversation_id: str
    role: str
    content: str
    provenance: list[dict[str, Any]] = field(default_factory=list)
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Message":
        return cls(
            id=str(row["id"]),
            conversation_id=str(row["conversation_id"]),
            role=row["role"],
            content=row["content"],
            provenance=row.get("provenance") or [],
            created_at=row.get("created_at"),
        )


@dataclass
class ChatResult:
    """The answer of the assistant to one chat message."""

    answer: str
    provenance: list[ProvenanceItem]
    retrieved_docs: list[RetrievedDocument]
    escalated: bool = False

    @property
    def confidence(self) -> float:
        if not self.retrieved_docs:
            return 0.0
        return float(np.mean([doc.similarity for doc in self.retrieved_docs]))
