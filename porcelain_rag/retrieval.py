"""Retrieval of product snippets relevant to a customer query."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from .config import config

if TYPE_CHECKING:
    from .embeddings import EmbeddingService
    from .models import RetrievedDocument
    from .store import SupabaseStore

logger = config.get_logger(__name__)


class Retriever:
    """Embeds a query and delegates similarity search to the database."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        store: SupabaseStore,
        top_k: int | None = None,
        min_similarity: float | None = None,
    ) -> None:
        self.embedding_service = embedding_service
        self.store = store
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K
        self.min_similarity = (
            min_similarity
            if min_similarity is not None
            else config.RETRIEVAL_MIN_SIMILARITY
        )

    def retrieve(self, query: str, top_k: int | None = None) -> list[RetrievedDocument]:
        """Return the ``top_k`` most similar snippets for a query.

        Returns:
            Documents in the order ranked by the database.
        """
        top_k = top_k or self.top_k
        logger.info("Processing query: %s", query)

        query_embedding = self.embedding_service.embed_query(query)
        docs = self.store.match_embeddings(query_embedding, top_k)

        logger.info("Retrieved %d documents", len(docs))
        return docs

    def retrieve_relevant(
        self,
        query: str,
        top_k: int | None = None,
        min_similarity: float | None = None,
    ) -> list[RetrievedDocument]:
        """Like :meth:`retrieve`, dropping documents below the relevance bar.

        Returns:
            Documents whose similarity is at least ``min_similarity``.
        """
        bar = self.min_similarity if min_similarity is None else min_similarity
        docs = self.retrieve(query, top_k)
        relevant = [doc for doc in docs if doc.similarity >= bar]
        if len(relevant) < len(docs):
            logger.info(
                "Dropped %d documents below similarity %.3f",
                len(docs) - len(relevant),
                bar,
            )
        return relevant

    def docs_by_product(
        self, product_id: str, source_type: str | None = None
    ) -> list[RetrievedDocument]:
        return self.store.embeddings_for_product(product_id, source_type)

    def search_products(
        self, query: str, top_k: int = 10
    ) -> list[dict[str, Any]]:
        """Group retrieved snippets by product.

        Returns:
            One entry per product with its best similarity and its snippets,
            best match first.
        """
        products: dict[str, dict[str, Any]] = {}
        for doc in self.retrieve(query, top_k):
            entry = products.setdefault(
                doc.product_id,
                {
                    "product_id": doc.product_id,
                    "max_similarity": doc.similarity,
                    "relevant_snippets": [],
                },
            )
            entry["relevant_snippets"].append({
                "source_type": doc.source_type,
                "source_id": doc.source_id,
                "text_snippet": doc.text_snippet,
                "similarity": doc.similarity,
            })
            entry["max_similarity"] = max(entry["max_similarity"], doc.similarity)

        return sorted(
            products.values(), key=lambda item: item["max_similarity"], reverse=True
        )

    def embeddings_stats(self) -> dict[str, Any]:
        rows = self.store.embedding_sample()
        source_types = Counter(row["source_type"] for row in rows)
        return {
            "total_embeddings": len(rows),
            "source_types": dict(source_types),
            "unique_products": len({row["product_id"] for row in rows}),
        }

    def check(self) -> bool:
        """Run a one-result retrieval as a health probe.

        Returns:
            True if embedding and vector search both succeed.
        """
        try:
            self.retrieve("test query", top_k=1)
        except Exception:  # noqa: BLE001
            logger.warning("Retrieval check failed")
            return False
        return True
