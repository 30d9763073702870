"""Retriever implementations."""

import logging

from .base import BaseEmbedding, BaseVectorStore
from .document import SearchResult

logger = logging.getLogger(__name__)


class VectorRetriever:
    """Vector similarity retriever.

    Retrieves documents based on embedding similarity.
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        vectorstore: BaseVectorStore,
    ):
        """Initialize the vector retriever.

        Args:
            embedding: Embedding model for queries
            vectorstore: Vector store to search
        """
        self.embedding = embedding
        self.vectorstore = vectorstore

    async def embed(self, query: str) -> list[float]:
        """Embed the query in the backend's query mode."""
        return await self.embedding.embed_query(query)

    async def search(self, query_embedding: list[float], k: int = 3) -> list[SearchResult]:
        """Search the vector store with an embedded query."""
        results = await self.vectorstore.similarity_search_with_score(query_embedding, k)
        logger.debug(f"Retrieved {len(results)} of {k} requested documents")
        return results

    async def retrieve(self, query: str, k: int = 3) -> list[SearchResult]:
        """Retrieve documents using vector similarity."""
        query_embedding = await self.embed(query)
        return await self.search(query_embedding, k)
