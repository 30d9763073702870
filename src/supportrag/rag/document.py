"""Chunk, stored document and response data structures."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class ChunkMetadata(BaseModel):
    """Positional metadata attached to every chunk.

    Attributes:
        source: Identifier of the originating document (e.g. filename)
        chunk_index: Zero-based position of the chunk within its source
        page_number: Page of the source, only for paged formats
    """

    source: str
    chunk_index: int = 0
    page_number: Optional[int] = None


class Chunk(BaseModel):
    """A word-bounded slice of a source document, ready to be embedded."""

    content: str
    metadata: ChunkMetadata

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return (
            f"Chunk(source={self.metadata.source!r}, "
            f"index={self.metadata.chunk_index}, content={content_preview!r})"
        )


def document_id(source: str, chunk_index: int) -> str:
    """Build the store id for a chunk; re-uploads of a source overwrite it."""
    return f"{source}-{chunk_index}"


class StoredDocument(BaseModel):
    """A chunk persisted in a vector store.

    Attributes:
        id: Unique identifier within the store
        content: The chunk text
        embedding: Embedding vector for the content
        metadata: Source and position of the chunk
    """

    id: str
    content: str
    embedding: list[float] = Field(default_factory=list)
    metadata: ChunkMetadata

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: list[float]) -> "StoredDocument":
        return cls(
            id=document_id(chunk.metadata.source, chunk.metadata.chunk_index),
            content=chunk.content,
            embedding=embedding,
            metadata=chunk.metadata,
        )

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return f"StoredDocument(id={self.id!r}, content={content_preview!r})"


class SearchResult(BaseModel):
    """A stored document paired with its similarity to the query.

    Attributes:
        document: The matching document
        score: Cosine similarity (higher is better)
    """

    document: StoredDocument
    score: float

    def __repr__(self) -> str:
        return f"SearchResult(id={self.document.id!r}, score={self.score:.4f})"


class TextInput(BaseModel):
    """A named plain-text input for ingestion.

    Attributes:
        name: Source name, usually the uploaded filename
        content: Raw text, or bytes decoded as UTF-8
    """

    name: str
    content: Union[str, bytes]

    @property
    def extension(self) -> str:
        _, dot, suffix = self.name.rpartition(".")
        return suffix.lower() if dot else ""

    def text(self) -> str:
        if isinstance(self.content, bytes):
            return self.content.decode("utf-8", errors="replace")
        return self.content


class IngestionResult(BaseModel):
    """Outcome of an ingestion call."""

    success: bool = True
    total_chunks_created: int = 0
    total_documents_in_store: int = 0
    files_processed: int = 0
    files_skipped: int = 0
    message: str = ""


class QueryResponse(BaseModel):
    """Answer to a user query with the chunks it was grounded on."""

    response: str
    sources: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Structured error returned at the ingestion and query boundaries.

    Attributes:
        error: Short human-readable summary
        kind: Stable machine-readable error kind
        details: Human-readable detail string
        retryable: Whether retrying the same call may succeed
        context: Operation context (file, batch index, stage, ...)
    """

    error: str
    kind: str
    details: str = ""
    retryable: bool = False
    context: dict[str, Any] = Field(default_factory=dict)
