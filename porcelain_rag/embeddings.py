"""OpenAI embeddings service."""

import numpy as np
from openai import OpenAI

from .config import config

logger = config.get_logger(__name__)


class EmbeddingService:
    """Turns product snippets and user queries into embedding vectors."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        batch_size: int | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            batch_size: Texts per embeddings request. If None, uses
                config.EMBEDDING_BATCH_SIZE.
        """
        api_key = api_key or config.get_openai_api_key()
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key,
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
        )
        self.model = model or config.EMBEDDING_MODEL
        self.batch_size = batch_size or config.EMBEDDING_BATCH_SIZE

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a single query string.

        Returns:
            np.ndarray: The embedding vector for the input text.
        """
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
            )
            embedding = np.array(response.data[0].embedding)
        except Exception:
            logger.exception("Error generating query embedding")
            raise
        else:
            return embedding

    def embed_texts(self, texts: list[str]) -> list[np.ndarray]:
        """Embed many snippets, ``batch_size`` texts per request.

        Returns:
            list[np.ndarray]: One vector per input text, in input order.
        """
        embeddings: list[np.ndarray] = []
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size

        for i in range(0, len(texts), self.batch_size):
            batch_texts = texts[i : i + self.batch_size]
            batch_number = i // self.batch_size + 1
            try:
                response = self.client.embeddings.create(
                    model=self.model,
                    input=batch_texts,
                )
            except Exception:
                logger.exception(
                    "Error embedding batch %d/%d", batch_number, total_batches
                )
                raise
            embeddings.extend(np.array(data.embedding) for data in response.data)
            logger.info("Embedded batch %d/%d", batch_number, total_batches)

        return embeddings

    def check(self) -> bool:
        """Probe the embeddings API with a tiny request.

        Returns:
            True if the API key and model are usable.
        """
        try:
            self.embed_query("test")
        except Exception:  # noqa: BLE001
            logger.warning("OpenAI embeddings check failed")
            return False
        return True
