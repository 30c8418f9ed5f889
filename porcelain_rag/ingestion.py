"""Product ingestion: Store product -> Split -> Embed -> Store embeddings."""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .config import config
from .document_processing import (
    IMAGE_CONTENT_TYPES,
    SUPPORTED_DOCUMENT_TYPES,
    DocumentLoader,
    TextChunker,
)
from .models import EmbeddingRecord, Product

if TYPE_CHECKING:
    from .embeddings import EmbeddingService
    from .store import SupabaseStore

logger = config.get_logger(__name__)


class ProductIngestor:
    """Creates products and the embedding records the assistant retrieves."""

    def __init__(
        self,
        store: SupabaseStore,
        embedding_service: EmbeddingService,
        chunker: TextChunker | None = None,
    ) -> None:
        self.store = store
        self.embedding_service = embedding_service
        self.chunker = chunker or TextChunker()

    def _records(
        self,
        product_id: str,
        source_type: str,
        text: str,
        source_prefix: str,
        extra: dict[str, Any] | None = None,
    ) -> list[EmbeddingRecord]:
        records = []
        for index, chunk in enumerate(self.chunker.chunk_text(text)):
            source_id = (
                f"{source_prefix}_{index}"
                if source_type in {"description", "specification"}
                else source_prefix
            )
            records.append(
                EmbeddingRecord(
                    product_id=product_id,
                    source_type=source_type,
                    source_id=source_id,
                    text_snippet=chunk,
                    metadata={"chunk_index": index, **(extra or {})},
                )
            )
        return records

    def build_records(
        self, product_id: str, product_data: dict[str, Any]
    ) -> list[EmbeddingRecord]:
        """Split every text field of a product into embedding records.

        Returns:
            Records for the description, FAQs, documents and specifications,
            in that order, without embeddings.
        """
        records: list[EmbeddingRecord] = []

        if product_data.get("description"):
            records += self._records(
                product_id, "description", product_data["description"], "description"
            )

        for faq_index, faq in enumerate(product_data.get("faqs") or []):
            faq_text = f"Q: {faq['question']}\nA: {faq['answer']}"
            records += self._records(
                product_id,
                "faq",
                faq_text,
                f"faq_{faq_index}",
                {"question": faq["question"]},
            )

        for doc_index, doc in enumerate(product_data.get("documents") or []):
            doc_text = f"{doc.get('title', '')}\n\n{doc.get('content', '')}"
            records += self._records(
                product_id,
                "document",
                doc_text,
                f"doc_{doc_index}",
                {"document_title": doc.get("title"), "document_type": doc.get("type")},
            )

        if product_data.get("specifications"):
            spec_text = json.dumps(product_data["specifications"], indent=2)
            records += self._records(product_id, "specification", spec_text, "spec")

        return records

    def embed_and_store(self, records: list[EmbeddingRecord]) -> int:
        if not records:
            return 0
        embeddings = self.embedding_service.embed_texts(
            [record.text_snippet for record in records]
        )
        for record, embedding in zip(records, embeddings, strict=True):
            record.embedding = embedding
        return self.store.insert_embeddings(records)

    def ingest_product(self, product_data: dict[str, Any]) -> dict[str, Any]:
        """Create one product and embed all of its text.

        Returns:
            dict[str, Any]: The new product id, its name and the number of
                embedding records stored.

        Raises:
            ValueError: If the product has no name.
        """
        if not product_data.get("name"):
            msg = "Product name is required"
            raise ValueError(msg)

        logger.info("Processing product: %s", product_data["name"])
        product = self.store.create_product(
            Product(
                name=product_data["name"],
                description=product_data.get("description") or "",
                category=product_data.get("category"),
                sku=product_data.get("sku"),
                price=product_data.get("price"),
                specifications=product_data.get("specifications"),
            )
        )
        records = self.build_records(product.id, product_data)
        stored = self.embed_and_store(records)
        logger.info("Stored %d embeddings for product %s", stored, product.id)
        return {"product_id": product.id, "name": product.name, "embeddings": stored}

    def ingest_products(self, products: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Ingest many products, continuing past individual failures.

        Returns:
            One result per product with ``status`` ``success`` or ``error``.
        """
        results = []
        for index, product_data in enumerate(products, start=1):
            logger.info("Processing product %d/%d", index, len(products))
            try:
                result = self.ingest_product(product_data)
            except Exception as e:
                logger.exception(
                    "Error processing product %s", product_data.get("name")
                )
                results.append({
                    "name": product_data.get("name"),
                    "status": "error",
                    "error": str(e),
                })
            else:
                results.append({**result, "status": "success"})
        return results

    def embed_existing_products(self) -> list[dict[str, Any]]:
        """Embed catalogue products that have no embedding records yet.

        Products that already have records are skipped, so the backfill can
        be rerun safely.

        Returns:
            One result per product with ``status`` ``success``, ``skipped``
            or ``error``.
        """
        products = self.store.list_products()
        logger.info("Found %d products to check for embeddings", len(products))
        results = []
        for product in products:
            summary = {"product_id": product.id, "name": product.name}
            if self.store.embeddings_for_product(product.id):
                logger.info("Embeddings already exist for %s, skipping", product.name)
                results.append({**summary, "status": "skipped"})
                continue
            try:
                records = self.build_records(
                    product.id,
                    {
                        "description": product.description,
                        "specifications": product.specifications,
                    },
                )
                stored = self.embed_and_store(records)
            except Exception as e:
                logger.exception("Error embedding product %s", product.name)
                results.append({**summary, "status": "error", "error": str(e)})
            else:
                logger.info("Stored %d embeddings for %s", stored, product.name)
                results.append({**summary, "embeddings": stored, "status": "success"})
        return results

    def ingest_products_file(self, file_path: Path) -> list[dict[str, Any]]:
        products = DocumentLoader.load_products_file(file_path)
        logger.info("Found %d products in %s", len(products), file_path)
        return self.ingest_products(products)

    def attach_document(
        self, product_id: str, title: str, text: str, doc_type: str = "upload"
    ) -> int:
        """Embed a free-text document as a ``document`` source of a product.

        Returns:
            Number of embedding records stored.

        Raises:
            LookupError: If the product does not exist.
        """
        if self.store.get_product(product_id) is None:
            msg = f"Product {product_id} not found"
            raise LookupError(msg)
        existing = self.store.embeddings_for_product(product_id, "document")
        source_id = f"doc_{len({doc.source_id for doc in existing})}"
        records = self._records(
            product_id,
            "document",
            f"{title}\n\n{text}",
            source_id,
            {"document_title": title, "document_type": doc_type},
        )
        return self.embed_and_store(records)

    def store_image(
        self,
        product_id: str | None,
        filename: str,
        data: bytes,
        content_type: str,
        *,
        is_primary: bool = False,
    ) -> str:
        """Upload an image; record it against the product when one is given.

        Returns:
            The public URL of the image.
        """
        stamp = int(datetime.datetime.now(tz=datetime.UTC).timestamp() * 1000)
        name = f"{stamp}-{Path(filename).name}"
        path = f"products/{product_id}/{name}" if product_id else name
        url = self.store.upload_file(path, data, content_type)
        if product_id:
            self.store.add_product_image(
                product_id, url, filename, is_primary=is_primary
            )
        return url

    def process_upload(
        self,
        filename: str,
        content_type: str | None,
        data: bytes,
        product_id: str | None = None,
    ) -> dict[str, Any]:
        """Ingest one uploaded file according to its type.

        Returns:
            A summary of what was stored.

        Raises:
            ValueError: If the file type is unsupported or a document upload
                has no product id.
        """
        if content_type in IMAGE_CONTENT_TYPES:
            url = self.store_image(product_id, filename, data, content_type)
            return {"type": "image", "message": "Image uploaded", "image_url": url}

        file_ext = Path(filename).suffix.lower()
        if file_ext not in SUPPORTED_DOCUMENT_TYPES:
            msg = f"Unsupported file type: {content_type or file_ext}"
            raise ValueError(msg)

        if file_ext == ".json":
            results = self.ingest_products(DocumentLoader.load_json(data))
            stored = [item for item in results if item["status"] == "success"]
            return {
                "type": "json",
                "message": "JSON products processed",
                "products_created": len(stored),
                "products": results,
            }

        if not product_id:
            msg = "productId is required for document uploads"
            raise ValueError(msg)
        text = DocumentLoader.load_text(filename, data)
        stored = self.attach_document(product_id, Path(filename).stem, text)
        return {
            "type": file_ext.lstrip("."),
            "message": "Document processed",
            "records": stored,
        }
