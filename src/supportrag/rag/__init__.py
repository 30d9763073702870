"""Retrieval pipeline for supportrag.

This module provides:
- Chunk, stored document and response data structures
- Word-bounded chunking with overlap
- Embedding providers (local sentence-transformers, OpenAI, fake)
- Vector stores (memory, ChromaDB)
- The query/ingestion pipeline and the context that wires it up

Example:
    ```python
    from supportrag.rag import (
        RAGPipeline,
        TextInput,
        LocalEmbedding,
        MemoryVectorStore,
    )

    pipeline = RAGPipeline(LocalEmbedding(), MemoryVectorStore())

    await pipeline.ingest([TextInput(name="policy.txt", content=text)])
    answer = await pipeline.query("What is the return policy?")
    ```
"""

# Data structures
from .document import (
    Chunk,
    ChunkMetadata,
    ErrorResponse,
    IngestionResult,
    QueryResponse,
    SearchResult,
    StoredDocument,
    TextInput,
    document_id,
)

# Base classes
from .base import (
    BaseChunker,
    BaseEmbedding,
    BaseVectorStore,
)

# Chunking
from .chunking import (
    WordChunker,
    chunk_text,
    clean_text,
)

# Embedding providers
from .embeddings import (
    FakeEmbedding,
    LocalEmbedding,
    OpenAIEmbedding,
)

# Vector stores
from .vectorstore import (
    ChromaVectorStore,
    MemoryVectorStore,
    cosine_similarity,
)

# Retrieval and pipeline
from .retriever import VectorRetriever
from .pipeline import (
    NO_DOCUMENTS_RESPONSE,
    NO_MATCHES_RESPONSE,
    QueryStage,
    RAGPipeline,
    build_context,
    build_prompt,
    format_source,
)
from .context import RAGContext

__all__ = [
    # Data structures
    "Chunk",
    "ChunkMetadata",
    "ErrorResponse",
    "IngestionResult",
    "QueryResponse",
    "SearchResult",
    "StoredDocument",
    "TextInput",
    "document_id",
    # Base classes
    "BaseChunker",
    "BaseEmbedding",
    "BaseVectorStore",
    # Chunking
    "WordChunker",
    "chunk_text",
    "clean_text",
    # Embeddings
    "FakeEmbedding",
    "LocalEmbedding",
    "OpenAIEmbedding",
    # Vector stores
    "ChromaVectorStore",
    "MemoryVectorStore",
    "cosine_similarity",
    # Pipeline
    "VectorRetriever",
    "NO_DOCUMENTS_RESPONSE",
    "NO_MATCHES_RESPONSE",
    "QueryStage",
    "RAGPipeline",
    "build_context",
    "build_prompt",
    "format_source",
    "RAGContext",
]
