"""Wiring of the assistant's collaborators."""

from dataclasses import dataclass

from .config import config
from .conversation import ConversationService
from .embeddings import EmbeddingService
from .generation import ChatGenerator
from .ingestion import ProductIngestor
from .retrieval import Retriever
from .store import SupabaseStore

logger = config.get_logger(__name__)


@dataclass
class Services:
    """Everything a request handler may need, built once per process."""

    store: SupabaseStore
    embedding_service: EmbeddingService
    retriever: Retriever
    generator: ChatGenerator
    conversations: ConversationService
    ingestor: ProductIngestor


def build_services(
    store: SupabaseStore | None = None,
    embedding_service: EmbeddingService | None = None,
    generator: ChatGenerator | None = None,
) -> Services:
    """Build the services from configuration, reusing any that are given.

    Returns:
        Services: Collaborators sharing one store and one embedding service.
    """
    store = store or SupabaseStore()
    embedding_service = embedding_service or EmbeddingService()
    generator = generator or ChatGenerator()
    retriever = Retriever(embedding_service, store)
    services = Services(
        store=store,
        embedding_service=embedding_service,
        retriever=retriever,
        generator=generator,
        conversations=ConversationService(retriever, generator, store),
        ingestor=ProductIngestor(store, embedding_service),
    )
    logger.info(
        "Assistant ready (chat model %s, embedding model %s)",
        generator.model,
        embedding_service.model,
    )
    return services
