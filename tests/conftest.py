"""Test configuration and fixtures for the porcelain assistant tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- In-memory stand-in for the Supabase store
- Service and API client fixtures
- Sample product factories
"""

import hashlib
import itertools
from contextlib import contextmanager
from typing import Any
from unittest.mock import Mock, patch

import numpy as np
import pytest
from fastapi.testclient import TestClient

from porcelain_rag import (
    ChatGenerator,
    Conversation,
    EmbeddingService,
    Message,
    Product,
    RetrievedDocument,
    TextChunker,
    build_services,
)
from porcelain_rag.api.main import create_app


class TestConstants:
    """Centralized test constants to avoid repetition across test files.

    All test constants are defined here to maintain consistency across
    the test suite and make it easy to update values globally.
    """

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "text-embedding-3-small"
    TEST_CHAT_MODEL = "gpt-4o-mini"
    DEFAULT_EMBEDDING_DIMENSION = 64

    # Text Chunking Configuration (in words)
    SMALL_CHUNK_SIZE = 10
    SMALL_CHUNK_OVERLAP = 2
    DEFAULT_CHUNK_SIZE = 500
    DEFAULT_CHUNK_OVERLAP = 100

    # Identities
    TEST_USER_ID = "user-1"
    OTHER_USER_ID = "user-2"
    TEST_SESSION_ID = "session-abc"


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    ensuring consistent test results across runs.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension
        self.model = TestConstants.TEST_EMBEDDING_MODEL
        self.calls: list[str | list[str]] = []
        self.healthy = True

    def _embedding(self, text: str) -> np.ndarray:
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def embed_query(self, text: str) -> np.ndarray:
        self.calls.append(text)
        return self._embedding(text)

    def embed_texts(self, texts: list[str]) -> list[np.ndarray]:
        self.calls.append(list(texts))
        return [self._embedding(text) for text in texts]

    def check(self) -> bool:
        return self.healthy


class FakeStore:
    """In-memory stand-in for ``SupabaseStore``.

    Vector search ranks stored embeddings by cosine similarity unless
    ``matches`` is set, in which case those documents are returned as-is.
    """

    def __init__(self) -> None:
        self.products: dict[str, dict[str, Any]] = {}
        self.embeddings: list[dict[str, Any]] = []
        self.images: list[dict[str, Any]] = []
        self.files: dict[str, bytes] = {}
        self.conversations: dict[str, dict[str, Any]] = {}
        self.messages: dict[str, dict[str, Any]] = {}
        self.matches: list[RetrievedDocument] | None = None
        self.match_calls: list[int] = []
        self.healthy = True
        self.fail_message_writes = False
        self._ids = itertools.count(1)
        self._ticks = itertools.count()

    def _next_id(self) -> str:
        return str(next(self._ids))

    def _now(self) -> str:
        tick = next(self._ticks)
        return f"2025-01-01T00:{tick // 60:02d}:{tick % 60:02d}+00:00"

    # Vector search

    def match_embeddings(
        self, query_embedding: np.ndarray, match_count: int
    ) -> list[RetrievedDocument]:
        self.match_calls.append(match_count)
        if self.matches is not None:
            return list(self.matches[:match_count])

        query = np.asarray(query_embedding, dtype=float)
        scored = []
        for row in self.embeddings:
            vector = np.asarray(row["embedding"], dtype=float)
            similarity = float(
                np.dot(query, vector) / (np.linalg.norm(query) * np.linalg.norm(vector))
            )
            scored.append(RetrievedDocument.from_row(row, similarity=similarity))
        scored.sort(key=lambda doc: doc.similarity, reverse=True)
        return scored[:match_count]

    def embeddings_for_product(
        self, product_id: str, source_type: str | None = None
    ) -> list[RetrievedDocument]:
        return [
            RetrievedDocument.from_row(row, similarity=1.0)
            for row in reversed(self.embeddings)
            if row["product_id"] == product_id
            and (source_type is None or row["source_type"] == source_type)
        ]

    def embedding_sample(self, limit: int = 1000) -> list[dict[str, Any]]:
        return [
            {"source_type": row["source_type"], "product_id": row["product_id"]}
            for row in self.embeddings[:limit]
        ]

    def insert_embeddings(self, records) -> int:  # noqa: ANN001
        rows = [{**record.to_row(), "created_at": self._now()} for record in records]
        self.embeddings.extend(rows)
        return len(rows)

    # Products

    def create_product(self, product: Product) -> Product:
        row = {**product.to_row(), "id": self._next_id(), "created_at": self._now()}
        self.products[row["id"]] = row
        return Product.from_row(row)

    def get_product(self, product_id: str) -> Product | None:
        row = self.products.get(product_id)
        return Product.from_row(row) if row else None

    def list_products(self) -> list[Product]:
        return [Product.from_row(row) for row in reversed(self.products.values())]

    def add_product_image(
        self, product_id: str, image_url: str, alt_text: str, *, is_primary: bool
    ) -> dict[str, Any]:
        row = {
            "product_id": product_id,
            "image_url": image_url,
            "alt_text": alt_text,
            "is_primary": is_primary,
        }
        self.images.append(row)
        return row

    def upload_file(
        self, path: str, data: bytes, content_type: str, bucket: str | None = None
    ) -> str:
        self.files[path] = data
        return f"https://storage.example.com/{bucket or 'product-images'}/{path}"

    def ping(self) -> bool:
        return self.healthy

    # Conversations

    def create_conversation(
        self,
        title: str = "New Conversation",
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> Conversation:
        now = self._now()
        row = {
            "id": self._next_id(),
            "title": title,
            "user_id": user_id,
            "session_id": session_id,
            "created_at": now,
            "updated_at": now,
        }
        self.conversations[row["id"]] = row
        return Conversation.from_row(row)

    def get_conversation(
        self, conversation_id: str, user_id: str | None = None
    ) -> Conversation | None:
        row = self.conversations.get(conversation_id)
        if row is None or (user_id is not None and row["user_id"] != user_id):
            return None
        return Conversation.from_row(row)

    def find_session_conversation(self, session_id: str) -> Conversation | None:
        for row in self.conversations.values():
            if row["session_id"] == session_id:
                return Conversation.from_row(row)
        return None

    def list_conversations(self, user_id: str) -> list[Conversation]:
        rows = [row for row in self.conversations.values() if row["user_id"] == user_id]
        rows.sort(key=lambda row: row["updated_at"], reverse=True)
        return [Conversation.from_row(row) for row in rows]

    def rename_conversation(
        self, conversation_id: str, user_id: str, title: str
    ) -> Conversation | None:
        if self.get_conversation(conversation_id, user_id) is None:
            return None
        row = self.conversations[conversation_id]
        row.update(title=title, updated_at=self._now())
        return Conversation.from_row(row)

    def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        if self.get_conversation(conversation_id, user_id) is None:
            return False
        del self.conversations[conversation_id]
        self.messages = {
            key: row
            for key, row in self.messages.items()
            if row["conversation_id"] != conversation_id
        }
        return True

    # Messages

    def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        provenance: list[dict[str, Any]] | None = None,
    ) -> Message:
        if self.fail_message_writes:
            msg = "database unavailable"
            raise RuntimeError(msg)
        row = {
            "id": self._next_id(),
            "conversation_id": conversation_id,
            "role": role,
            "content": content,
            "provenance": provenance or [],
            "created_at": self._now(),
        }
        self.messages[row["id"]] = row
        self.conversations[conversation_id]["updated_at"] = row["created_at"]
        return Message.from_row(row)

    def get_message(self, message_id: str) -> Message | None:
        row = self.messages.get(message_id)
        return Message.from_row(row) if row else None

    def list_messages(
        self, conversation_id: str, limit: int | None = None
    ) -> list[Message]:
        rows = [
            row
            for row in self.messages.values()
            if row["conversation_id"] == conversation_id
        ]
        if limit is not None:
            rows = rows[-limit:]
        return [Message.from_row(row) for row in rows]

    def update_message(self, message_id: str, content: str) -> Message | None:
        row = self.messages.get(message_id)
        if row is None:
            return None
        row["content"] = content
        return Message.from_row(row)

    def delete_message(self, message_id: str) -> bool:
        return self.messages.pop(message_id, None) is not None


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def create_mock_stream_response(chunks: list[str | None]) -> list[Mock]:
    """Create the events of a streamed OpenAI chat completion.

    Returns:
        One event per chunk, followed by a final event without choices.
    """
    events = [Mock(choices=[Mock(delta=Mock(content=chunk))]) for chunk in chunks]
    events.append(Mock(choices=[]))
    return events


def make_doc(
    product_id: str = "12",
    source_type: str = "description",
    source_id: str | None = "description_0",
    text_snippet: str = "Fine porcelain dinner set for twelve.",
    similarity: float = 0.82,
) -> RetrievedDocument:
    return RetrievedDocument(
        product_id=product_id,
        source_type=source_type,
        source_id=source_id,
        text_snippet=text_snippet,
        similarity=similarity,
    )


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch the OpenAI embeddings.create method."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with different configurations."""

    def _create_service(api_key=None, model=None, batch_size=None):  # noqa: ANN202
        return EmbeddingService(
            api_key=api_key or TestConstants.TEST_API_KEY,
            model=model,
            batch_size=batch_size,
        )

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def mock_embedding_service():
    """Deterministic embedding service that never calls the API."""
    return MockEmbeddingService()


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def text_chunker_small():
    """Text chunker configured for small chunks (10/2 words)."""
    return TextChunker(
        chunk_size=TestConstants.SMALL_CHUNK_SIZE,
        overlap=TestConstants.SMALL_CHUNK_OVERLAP,
    )


@pytest.fixture
def chat_generator():
    return ChatGenerator(
        openai_api_key=TestConstants.TEST_API_KEY,
        model=TestConstants.TEST_CHAT_MODEL,
    )


@pytest.fixture
def chat_completion_mock_factory():
    """Factory mock fixture for a generator's client.chat.completions.create."""

    @contextmanager
    def _mock_chat(  # noqa: ANN202
        generator,
        content: str | None = "Test response",
        side_effect=None,
        stream_chunks: list[str | None] | None = None,
    ):
        with patch.object(generator.client.chat.completions, "create") as mock_create:
            if side_effect is not None:
                mock_create.side_effect = side_effect
            elif stream_chunks is not None:
                mock_create.return_value = create_mock_stream_response(stream_chunks)
            else:
                mock_create.return_value = create_mock_chat_response(content)
            yield mock_create

    return _mock_chat


@pytest.fixture
def services(fake_store, mock_embedding_service, chat_generator):
    """Fully wired services over the in-memory store and mocked OpenAI."""
    return build_services(
        store=fake_store,
        embedding_service=mock_embedding_service,
        generator=chat_generator,
    )


@pytest.fixture
def api_client(services):
    with TestClient(create_app(services=services)) as client:
        yield client


@pytest.fixture
def user_headers():
    return {"X-User-Id": TestConstants.TEST_USER_ID}


@pytest.fixture
def sample_product():
    """A product with every text field the ingestor embeds."""
    return {
        "name": "Fine Dine Dinner Set",
        "description": "A twelve piece porcelain dinner set for restaurants.",
        "category": "Dinnerware",
        "sku": "FD-12",
        "price": 249.0,
        "specifications": {"material": "porcelain", "pieces": 12},
        "faqs": [
            {"question": "Is it dishwasher safe?", "answer": "Yes."},
            {"question": "Is it microwave safe?", "answer": "Yes, without lids."},
        ],
        "documents": [
            {"title": "Care guide", "content": "Wash before first use.", "type": "pdf"}
        ],
    }
