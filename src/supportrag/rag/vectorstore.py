"""Vector store implementations."""

import asyncio
import logging
import math
from typing import Any, Callable, Optional, TypeVar

from supportrag.exceptions import ConfigurationMissing, DimensionMismatchError, StoreUnavailable
from supportrag.utils.lazy import LazyResource

from .base import BaseVectorStore
from .document import ChunkMetadata, SearchResult, StoredDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two vectors.

    Both vectors are normalized here, so stored embeddings of any
    magnitude compare fairly.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


class MemoryVectorStore(BaseVectorStore):
    """In-memory vector store for testing and small datasets.

    Stores all vectors in memory and performs exact similarity search.
    Documents with exactly equal scores keep insertion order.
    Not suitable for large-scale production use.
    """

    def __init__(self, batch_size: int = 100, dimension: Optional[int] = None) -> None:
        """Initialize the memory vector store."""
        super().__init__(batch_size=batch_size, dimension=dimension)
        self._documents: dict[str, StoredDocument] = {}

    async def _upsert(self, documents: list[StoredDocument]) -> None:
        for doc in documents:
            self._documents[doc.id] = doc.model_copy(deep=True)

    async def _query(self, query_embedding: list[float], k: int) -> list[SearchResult]:
        """Search for similar documents using cosine similarity."""
        if not self._documents:
            return []

        scored = [
            (doc, cosine_similarity(query_embedding, doc.embedding))
            for doc in self._documents.values()
        ]
        # Stable sort keeps insertion order for ties
        scored.sort(key=lambda item: item[1], reverse=True)

        return [
            SearchResult(document=doc.model_copy(deep=True), score=score)
            for doc, score in scored[:k]
        ]

    async def get(self, id: str) -> Optional[StoredDocument]:
        """Get a document by its id."""
        doc = self._documents.get(id)
        return doc.model_copy(deep=True) if doc else None

    async def get_document_count(self) -> int:
        """Return the number of documents."""
        return len(self._documents)

    async def clear(self) -> None:
        """Clear all documents."""
        self._documents.clear()
        self.dimension = self._configured_dimension


class ChromaVectorStore(BaseVectorStore):
    """ChromaDB vector store implementation.

    Uses ChromaDB for vector storage, in one of four modes:

    - ``ephemeral``: in-process, in-memory
    - ``persistent``: in-process, stored under ``persist_directory``
    - ``http``: a Chroma server at ``host``:``port``
    - ``cloud``: Chroma Cloud, needs ``api_key``

    Nothing is contacted at construction; the client and collection are
    created once, on first use. Missing settings raise
    ``ConfigurationMissing`` at that point.

    Requires the 'chroma' extra to be installed.
    """

    MODES = ("ephemeral", "persistent", "http", "cloud")

    def __init__(
        self,
        collection_name: str = "customer-support-rag",
        mode: str = "ephemeral",
        persist_directory: Optional[str] = None,
        host: str = "localhost",
        port: int = 8000,
        api_key: Optional[str] = None,
        tenant: Optional[str] = None,
        database: Optional[str] = None,
        batch_size: int = 100,
        dimension: Optional[int] = None,
    ):
        """Initialize the ChromaDB vector store.

        Args:
            collection_name: Name of the ChromaDB collection
            mode: Client mode (ephemeral, persistent, http, cloud)
            persist_directory: Directory for persistent mode
            host: Server host for http mode
            port: Server port for http mode
            api_key: API key for cloud mode
            tenant: Tenant for cloud mode
            database: Database for cloud mode
            batch_size: Maximum documents per upsert call
            dimension: Embedding dimension (fixed by the first upsert if None)
        """
        if mode not in self.MODES:
            raise ValueError(f"Unknown Chroma mode {mode!r}; expected one of {self.MODES}")

        super().__init__(batch_size=batch_size, dimension=dimension)
        self.collection_name = collection_name
        self.mode = mode
        self.persist_directory = persist_directory
        self.host = host
        self.port = port
        self.api_key = api_key
        self.tenant = tenant
        self.database = database
        self._client = LazyResource(self._create_client, name=f"Chroma {mode} client")
        self._collection = LazyResource(
            self._create_collection,
            name=f"Chroma collection '{collection_name}'",
        )

    def check_configuration(self) -> None:
        """Raise ConfigurationMissing for settings the chosen mode needs."""
        if not self.collection_name:
            raise ConfigurationMissing("collection_name", "Vector store collection name is not set.")
        if self.mode == "persistent" and not self.persist_directory:
            raise ConfigurationMissing("chroma_path")
        if self.mode == "cloud" and not self.api_key:
            raise ConfigurationMissing(
                "CHROMA_API_KEY",
                "CHROMA_API_KEY is not set. Chroma Cloud mode needs an API key.",
            )

    async def _run(self, fn: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    async def _create_client(self) -> Any:
        """Create the ChromaDB client for the configured mode."""
        self.check_configuration()

        try:
            import chromadb
        except ImportError as e:
            raise ConfigurationMissing(
                "chromadb",
                "ChromaDB vector store requires 'chromadb'. "
                "Install it with: pip install chromadb",
            ) from e

        def build() -> Any:
            if self.mode == "persistent":
                return chromadb.PersistentClient(path=self.persist_directory)
            if self.mode == "http":
                return chromadb.HttpClient(host=self.host, port=self.port)
            if self.mode == "cloud":
                kwargs = {"api_key": self.api_key}
                if self.tenant:
                    kwargs["tenant"] = self.tenant
                if self.database:
                    kwargs["database"] = self.database
                return chromadb.CloudClient(**kwargs)
            return chromadb.EphemeralClient()

        try:
            return await self._run(build)
        except Exception as e:
            raise StoreUnavailable(
                f"Failed to connect to ChromaDB ({self.mode}): {e}",
                operation="connect",
            ) from e

    async def _create_collection(self) -> Any:
        """Get or create the collection."""
        client = await self._client.get()
        try:
            return await self._run(
                lambda: client.get_or_create_collection(
                    name=self.collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
            )
        except Exception as e:
            raise StoreUnavailable(
                f"Failed to open collection '{self.collection_name}': {e}",
                operation="connect",
            ) from e

    async def _call(self, operation: str, fn: Callable[[Any], T]) -> T:
        """Run a collection call in a thread, mapping backend failures."""
        collection = await self._collection.get()
        try:
            return await self._run(lambda: fn(collection))
        except Exception as e:
            raise StoreUnavailable(
                f"ChromaDB {operation} failed on '{self.collection_name}': {e}",
                operation=operation,
            ) from e

    @staticmethod
    def _to_metadata(metadata: ChunkMetadata) -> dict[str, Any]:
        # Chroma rejects None values
        return metadata.model_dump(exclude_none=True)

    @staticmethod
    def _to_document(
        id: str,
        content: Optional[str],
        metadata: Optional[dict[str, Any]],
        embedding: Any,
    ) -> StoredDocument:
        metadata = dict(metadata or {})
        return StoredDocument(
            id=id,
            content=content or "",
            embedding=[float(x) for x in embedding] if embedding is not None else [],
            metadata=ChunkMetadata(
                source=str(metadata.get("source", "")),
                chunk_index=int(metadata.get("chunk_index", 0)),
                page_number=metadata.get("page_number"),
            ),
        )

    async def _upsert(self, documents: list[StoredDocument]) -> None:
        """Upsert one sub-batch into ChromaDB."""
        ids = [doc.id for doc in documents]
        contents = [doc.content for doc in documents]
        embeddings = [doc.embedding for doc in documents]
        metadatas = [self._to_metadata(doc.metadata) for doc in documents]

        await self._call(
            "upsert",
            lambda collection: collection.upsert(
                ids=ids,
                documents=contents,
                embeddings=embeddings,
                metadatas=metadatas,
            ),
        )
        logger.debug(f"Upserted {len(ids)} documents into '{self.collection_name}'")

    async def _query(self, query_embedding: list[float], k: int) -> list[SearchResult]:
        """Search for similar documents in ChromaDB."""
        count = await self.get_document_count()
        if count == 0:
            return []

        results = await self._call(
            "query",
            lambda collection: collection.query(
                query_embeddings=[query_embedding],
                n_results=min(k, count),
                include=["documents", "metadatas", "distances", "embeddings"],
            ),
        )

        search_results: list[SearchResult] = []
        if not results or not results["ids"] or not results["ids"][0]:
            return search_results

        documents = results.get("documents")
        metadatas = results.get("metadatas")
        distances = results.get("distances")
        embeddings = results.get("embeddings")

        for i, doc_id in enumerate(results["ids"][0]):
            doc = self._to_document(
                doc_id,
                documents[0][i] if documents is not None else None,
                metadatas[0][i] if metadatas is not None else None,
                embeddings[0][i] if embeddings is not None else None,
            )
            # Cosine distance to similarity
            distance = distances[0][i] if distances is not None else 1.0
            search_results.append(SearchResult(document=doc, score=1.0 - float(distance)))

        return search_results

    async def get(self, id: str) -> Optional[StoredDocument]:
        """Get a document by its id."""
        results = await self._call(
            "get",
            lambda collection: collection.get(
                ids=[id],
                include=["documents", "metadatas", "embeddings"],
            ),
        )

        if not results or not results["ids"]:
            return None

        documents = results.get("documents")
        metadatas = results.get("metadatas")
        embeddings = results.get("embeddings")
        return self._to_document(
            results["ids"][0],
            documents[0] if documents is not None else None,
            metadatas[0] if metadatas is not None else None,
            embeddings[0] if embeddings is not None else None,
        )

    async def get_document_count(self) -> int:
        """Return the number of documents in the collection."""
        return await self._call("count", lambda collection: collection.count())

    async def clear(self) -> None:
        """Delete the collection; it is recreated on next use."""
        await self._collection.get()
        client = await self._client.get()
        try:
            await self._run(lambda: client.delete_collection(self.collection_name))
        except Exception as e:
            raise StoreUnavailable(
                f"Failed to clear collection '{self.collection_name}': {e}",
                operation="clear",
            ) from e

        self._collection.reset()
        self.dimension = self._configured_dimension
