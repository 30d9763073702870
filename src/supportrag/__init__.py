"""
supportrag - Retrieval-augmented question answering over support documents.
"""

from supportrag.exceptions import (
    ConfigurationMissing,
    DimensionMismatchError,
    EmbeddingFailureReason,
    EmbeddingUnavailable,
    RAGError,
    StoreUnavailable,
    UnsupportedInput,
)
from supportrag.providers import AnswerGenerator, OpenAIAnswerGenerator
from supportrag.rag import (
    ChromaVectorStore,
    FakeEmbedding,
    IngestionResult,
    LocalEmbedding,
    MemoryVectorStore,
    OpenAIEmbedding,
    QueryResponse,
    RAGContext,
    RAGPipeline,
    StoredDocument,
    TextInput,
    WordChunker,
    chunk_text,
    clean_text,
)
from supportrag.service import handle_chat, handle_upload
from supportrag.utils.config import RAGConfig, load_config

__version__ = "0.1.0"
__all__ = [
    # Errors
    "ConfigurationMissing",
    "DimensionMismatchError",
    "EmbeddingFailureReason",
    "EmbeddingUnavailable",
    "RAGError",
    "StoreUnavailable",
    "UnsupportedInput",
    # Providers
    "AnswerGenerator",
    "OpenAIAnswerGenerator",
    # RAG
    "ChromaVectorStore",
    "FakeEmbedding",
    "IngestionResult",
    "LocalEmbedding",
    "MemoryVectorStore",
    "OpenAIEmbedding",
    "QueryResponse",
    "RAGContext",
    "RAGPipeline",
    "StoredDocument",
    "TextInput",
    "WordChunker",
    "chunk_text",
    "clean_text",
    # Boundaries
    "handle_chat",
    "handle_upload",
    # Config
    "RAGConfig",
    "load_config",
]
