"""Base classes and abstract interfaces for RAG components."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Literal, Optional, Sequence

from supportrag.exceptions import (
    DimensionMismatchError,
    EmbeddingFailureReason,
    EmbeddingUnavailable,
    RAGError,
    StoreUnavailable,
)

if TYPE_CHECKING:
    from .document import Chunk, SearchResult, StoredDocument

logger = logging.getLogger(__name__)

EmbeddingMode = Literal["document", "query"]


class BaseChunker(ABC):
    """Abstract base class for document chunkers.

    Chunkers split documents into smaller pieces for indexing.
    """

    @abstractmethod
    def chunk(self, text: str, source: str) -> list["Chunk"]:
        """Split a document into chunks.

        Args:
            text: Document text
            source: Identifier of the document

        Returns:
            List of chunks
        """
        pass


class BaseEmbedding(ABC):
    """Abstract base class for embedding models.

    Embedding models convert text into dense vector representations of a
    fixed dimension. Subclasses implement ``_embed_one`` and may override
    ``_embed_group`` when the backend embeds a list in one call.

    ``embed_documents`` works through its input in sub-batches of
    ``concurrency`` texts: texts inside a sub-batch are embedded concurrently,
    sub-batches run one after another. This bounds the number of outstanding
    requests to a remote backend.
    """

    def __init__(self, dimension: int = 384, concurrency: int = 10):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        if concurrency <= 0:
            raise ValueError("concurrency must be positive")
        self._dimension = dimension
        self.concurrency = concurrency
        self._truncation_logged = False

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        return self._dimension

    @abstractmethod
    async def _embed_one(self, text: str, mode: EmbeddingMode) -> list[float]:
        """Embed one text with the backend, without dimension adaptation."""
        pass

    async def _embed_group(self, texts: list[str], mode: EmbeddingMode) -> list[list[float]]:
        """Embed one sub-batch concurrently.

        When one text fails the rest of the sub-batch is cancelled and
        awaited before the error propagates, so no request outlives the call.
        """
        tasks = [asyncio.ensure_future(self._embed_one(text, mode)) for text in texts]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def embed(self, text: str) -> list[float]:
        """Embed a single document text."""
        return self._adapt_dimension(await self._embed_one(text, "document"))

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query.

        Backends that tune embeddings differently for short queries use
        their query mode here.
        """
        return self._adapt_dimension(await self._embed_one(text, "query"))

    async def embed_documents(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed a list of documents.

        Either every text is embedded or the call raises; no partial
        result is returned.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors, in input order

        Raises:
            EmbeddingUnavailable: If any sub-batch fails
            ConfigurationMissing: If the backend is not configured
        """
        texts = list(texts)
        vectors: list[list[float]] = []

        for batch_index, start in enumerate(range(0, len(texts), self.concurrency)):
            batch = texts[start : start + self.concurrency]
            try:
                group = await self._embed_group(batch, "document")
            except RAGError as e:
                raise e.with_context(batch_index=batch_index)

            if len(group) != len(batch):
                raise EmbeddingUnavailable(
                    f"Backend returned {len(group)} vectors for {len(batch)} texts",
                    reason=EmbeddingFailureReason.INVALID_OUTPUT,
                    details={"batch_index": batch_index},
                )
            vectors.extend(self._adapt_dimension(vector) for vector in group)

        return vectors

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Alias of :meth:`embed_documents`."""
        return await self.embed_documents(texts)

    def _adapt_dimension(self, vector: list[float]) -> list[float]:
        """Fit a backend vector to the configured dimension.

        Longer vectors are truncated so that every backend writes vectors of
        the same size into a store. Truncation is lossy and its effect on
        retrieval quality depends on the model.
        """
        size = len(vector)
        if size == self._dimension:
            return list(vector)
        if size > self._dimension:
            if not self._truncation_logged:
                logger.warning(
                    f"{type(self).__name__} returned {size}-dimensional vectors; "
                    f"truncating to {self._dimension}"
                )
                self._truncation_logged = True
            return list(vector[: self._dimension])
        raise EmbeddingUnavailable(
            f"Backend returned a {size}-dimensional vector, expected {self._dimension}",
            reason=EmbeddingFailureReason.INVALID_OUTPUT,
        )


class BaseVectorStore(ABC):
    """Abstract base class for vector stores.

    Vector stores persist chunks with their embeddings and search them by
    cosine similarity. This class owns the contract shared by all backends:
    sub-batched idempotent upserts, the dimension invariant and the bounds on
    search results. Subclasses implement the backend calls.
    """

    def __init__(self, batch_size: int = 100, dimension: Optional[int] = None):
        """Initialize the store.

        Args:
            batch_size: Maximum documents per backend upsert call
            dimension: Embedding dimension (fixed by the first upsert if None)
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size
        self._configured_dimension = dimension
        self.dimension = dimension

    def _check_dimension(self, size: int) -> None:
        if self.dimension is not None and size != self.dimension:
            raise DimensionMismatchError(self.dimension, size)

    async def add_documents(self, documents: Sequence["StoredDocument"]) -> None:
        """Upsert documents by id, in sub-batches of ``batch_size``.

        Re-adding an id replaces its content, embedding and metadata. Each
        sub-batch commits fully; when one fails, the sub-batches before it
        stay committed and the error reports how many there were.

        Raises:
            DimensionMismatchError: If embeddings differ in dimension
            StoreUnavailable: If a backend upsert fails
        """
        documents = list(documents)
        if not documents:
            return

        expected = self.dimension or len(documents[0].embedding)
        for doc in documents:
            if len(doc.embedding) != expected:
                raise DimensionMismatchError(expected, len(doc.embedding))

        committed = 0
        for batch_index, start in enumerate(range(0, len(documents), self.batch_size)):
            batch = documents[start : start + self.batch_size]
            try:
                await self._upsert(batch)
            except StoreUnavailable as e:
                raise StoreUnavailable(
                    f"Upsert failed at batch {batch_index} "
                    f"({committed} batches committed): {e.message}",
                    operation="upsert",
                    batch_index=batch_index,
                    committed_batches=committed,
                    retryable=e.retryable,
                ) from e
            except RAGError as e:
                raise e.with_context(batch_index=batch_index, committed_batches=committed)
            committed += 1
            self.dimension = expected

        logger.debug(f"Upserted {len(documents)} documents in {committed} batches")

    async def similarity_search(
        self,
        query_embedding: list[float],
        k: int = 3,
    ) -> list["StoredDocument"]:
        """Return up to ``k`` documents, most similar first."""
        results = await self.similarity_search_with_score(query_embedding, k)
        return [result.document for result in results]

    async def similarity_search_with_score(
        self,
        query_embedding: list[float],
        k: int = 3,
    ) -> list["SearchResult"]:
        """Search for similar documents.

        ``k`` is a maximum: fewer results come back when the store holds
        fewer than ``k`` documents.

        Args:
            query_embedding: Query embedding vector
            k: Maximum number of results

        Returns:
            List of search results sorted by descending similarity
        """
        if k <= 0:
            return []
        self._check_dimension(len(query_embedding))
        results = await self._query(query_embedding, k)
        return results[:k]

    @abstractmethod
    async def _upsert(self, documents: list["StoredDocument"]) -> None:
        """Write one sub-batch to the backend."""
        pass

    @abstractmethod
    async def _query(self, query_embedding: list[float], k: int) -> list["SearchResult"]:
        """Run a nearest-neighbour query against the backend."""
        pass

    @abstractmethod
    async def get(self, id: str) -> Optional["StoredDocument"]:
        """Get a stored document by its id.

        Returns:
            The document if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_document_count(self) -> int:
        """Return the number of distinct ids in the store."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every stored document."""
        pass
