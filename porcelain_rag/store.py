"""Supabase access for products, embeddings, conversations and messages.

This is the only module that talks to Supabase. Vector similarity search is
delegated to the ``match_embeddings`` database function; everything else is
plain table filtering and ordering.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from supabase import Client, create_client

from .config import config
from .models import (
    Conversation,
    EmbeddingRecord,
    Message,
    Product,
    RetrievedDocument,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np

logger = config.get_logger(__name__)

STATS_SAMPLE_SIZE = 1000


def _utc_now() -> str:
    return datetime.datetime.now(tz=datetime.UTC).isoformat()


class SupabaseStore:
    """Knowledge base and chat history backed by Supabase tables."""

    def __init__(
        self,
        client: Client | None = None,
        url: str | None = None,
        key: str | None = None,
    ) -> None:
        """Connect with the service role key unless a client is given.

        Raises:
            ValueError: If no client is given and the URL or key is missing.
        """
        if client is None:
            url = url or config.SUPABASE_URL
            key = key or config.SUPABASE_SERVICE_ROLE_KEY
            if not url or not key:
                msg = "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set"
                raise ValueError(msg)
            client = create_client(url, key)
        self.client = client

    # ------------------------------------------------------------------
    # Vector search
    # ------------------------------------------------------------------

    def match_embeddings(
        self, query_embedding: np.ndarray, match_count: int
    ) -> list[RetrievedDocument]:
        """Run the ``match_embeddings`` RPC, most similar first.

        Returns:
            Retrieved documents in the order returned by the database.
        """
        try:
            response = self.client.rpc(
                "match_embeddings",
                {
                    "query_embedding": [float(x) for x in query_embedding],
                    "match_count": match_count,
                },
            ).execute()
        except Exception:
            logger.exception("Vector search failed")
            raise
        return [RetrievedDocument.from_row(row) for row in response.data or []]

    def embeddings_for_product(
        self, product_id: str, source_type: str | None = None
    ) -> list[RetrievedDocument]:
        query = (
            self.client.table("embeddings")
            .select("product_id, source_type, source_id, text_snippet, metadata")
            .eq("product_id", product_id)
        )
        if source_type:
            query = query.eq("source_type", source_type)
        response = query.order("created_at", desc=True).execute()
        return [
            RetrievedDocument.from_row(row, similarity=1.0)
            for row in response.data or []
        ]

    def embedding_sample(self, limit: int = STATS_SAMPLE_SIZE) -> list[dict[str, Any]]:
        response = (
            self.client.table("embeddings")
            .select("source_type, product_id")
            .limit(limit)
            .execute()
        )
        return response.data or []

    def insert_embeddings(self, records: Sequence[EmbeddingRecord]) -> int:
        if not records:
            return 0
        rows = [record.to_row() for record in records]
        self.client.table("embeddings").insert(rows).execute()
        return len(rows)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(self, product: Product) -> Product:
        response = self.client.table("products").insert(product.to_row()).execute()
        if not response.data:
            msg = f"Failed to create product {product.name!r}"
            raise RuntimeError(msg)
        return Product.from_row(response.data[0])

    def get_product(self, product_id: str) -> Product | None:
        response = (
            self.client.table("products")
            .select("*")
            .eq("id", product_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return Product.from_row(response.data[0])

    def list_products(self) -> list[Product]:
        response = (
            self.client.table("products")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [Product.from_row(row) for row in response.data or []]

    def add_product_image(
        self, product_id: str, image_url: str, alt_text: str, *, is_primary: bool
    ) -> dict[str, Any]:
        response = (
            self.client.table("product_images")
            .insert({
                "product_id": product_id,
                "image_url": image_url,
                "alt_text": alt_text,
                "is_primary": is_primary,
            })
            .execute()
        )
        return response.data[0] if response.data else {}

    def upload_file(
        self, path: str, data: bytes, content_type: str, bucket: str | None = None
    ) -> str:
        """Upload bytes to object storage.

        Returns:
            The public URL of the stored object.
        """
        storage = self.client.storage.from_(bucket or config.IMAGE_BUCKET)
        storage.upload(
            path,
            data,
            {"content-type": content_type, "cache-control": "3600", "upsert": "false"},
        )
        return storage.get_public_url(path)

    def ping(self) -> bool:
        """Check that the products table is reachable.

        Returns:
            True if a trivial query succeeds.
        """
        try:
            self.client.table("products").select("id").limit(1).execute()
        except Exception:  # noqa: BLE001
            logger.warning("Database connection check failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(
        self,
        title: str = "New Conversation",
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> Conversation:
        row: dict[str, Any] = {"title": title}
        if user_id is not None:
            row["user_id"] = user_id
        if session_id is not None:
            row["session_id"] = session_id
        response = self.client.table("conversations").insert(row).execute()
        return Conversation.from_row(response.data[0])

    def get_conversation(
        self, conversation_id: str, user_id: str | None = None
    ) -> Conversation | None:
        query = self.client.table("conversations").select("*").eq("id", conversation_id)
        if user_id is not None:
            query = query.eq("user_id", user_id)
        response = query.limit(1).execute()
        if not response.data:
            return None
        return Conversation.from_row(response.data[0])

    def find_session_conversation(self, session_id: str) -> Conversation | None:
        response = (
            self.client.table("conversations")
            .select("*")
            .eq("session_id", session_id)
            .order("created_at", desc=False)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return Conversation.from_row(response.data[0])

    def list_conversations(self, user_id: str) -> list[Conversation]:
        response = (
            self.client.table("conversations")
            .select("*")
            .eq("user_id", user_id)
            .order("updated_at", desc=True)
            .execute()
        )
        return [Conversation.from_row(row) for row in response.data or []]

    def rename_conversation(
        self, conversation_id: str, user_id: str, title: str
    ) -> Conversation | None:
        response = (
            self.client.table("conversations")
            .update({"title": title, "updated_at": _utc_now()})
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        if not response.data:
            return None
        return Conversation.from_row(response.data[0])

    def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        response = (
            self.client.table("conversations")
            .delete()
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        return bool(response.data)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        provenance: list[dict[str, Any]] | None = None,
    ) -> Message:
        row: dict[str, Any] = {
            "conversation_id": conversation_id,
            "role": role,
            "content": content,
        }
        if provenance:
            row["provenance"] = provenance
        response = self.client.table("messages").insert(row).execute()
        self.client.table("conversations").update({"updated_at": _utc_now()}).eq(
            "id", conversation_id
        ).execute()
        return Message.from_row(response.data[0])

    def get_message(self, message_id: str) -> Message | None:
        response = (
            self.client.table("messages")
            .select("*")
            .eq("id", message_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return Message.from_row(response.data[0])

    def list_messages(
        self, conversation_id: str, limit: int | None = None
    ) -> list[Message]:
        """Messages of a conversation, oldest first.

        With a limit, the most recent ``limit`` messages are returned, still
        oldest first.
        """
        query = (
            self.client.table("messages")
            .select("*")
            .eq("conversation_id", conversation_id)
        )
        if limit is None:
            response = query.order("created_at", desc=False).execute()
            return [Message.from_row(row) for row in response.data or []]
        response = query.order("created_at", desc=True).limit(limit).execute()
        return [Message.from_row(row) for row in reversed(response.data or [])]

    def update_message(self, message_id: str, content: str) -> Message | None:
        response = (
            self.client.table("messages")
            .update({"content": content})
            .eq("id", message_id)
            .execute()
        )
        if not response.data:
            return None
        return Message.from_row(response.data[0])

    def delete_message(self, message_id: str) -> bool:
        response = (
            self.client.table("messages").delete().eq("id", message_id).execute()
        )
        return bool(response.data)
