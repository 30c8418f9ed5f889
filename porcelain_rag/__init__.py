"""Porcelain Assistant - RAG customer support over a product knowledge base."""

from .conversation import ConversationService
from .document_processing import DocumentLoader, TextChunker
from .embeddings import EmbeddingService
from .generation import ChatGenerator
from .ingestion import ProductIngestor
from .models import (
    ChatResult,
    Conversation,
    EmbeddingRecord,
    Message,
    Product,
    ProvenanceItem,
    RetrievedDocument,
)
from .prompts import ESCALATION_MESSAGE
from .retrieval import Retriever
from .services import Services, build_services
from .store import SupabaseStore

__all__ = [
    "ESCALATION_MESSAGE",
    "ChatGenerator",
    "ChatResult",
    "Conversation",
    "ConversationService",
    "DocumentLoader",
    "EmbeddingRecord",
    "EmbeddingService",
    "Message",
    "Product",
    "ProductIngestor",
    "ProvenanceItem",
    "Retriever",
    "RetrievedDocument",
    "Services",
    "SupabaseStore",
    "TextChunker",
    "build_services",
]
