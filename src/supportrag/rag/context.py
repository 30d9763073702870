"""Process-level context owning the shared pipeline resources."""

import logging
from dataclasses import dataclass
from typing import Optional

from supportrag.providers.base import AnswerGenerator
from supportrag.providers.openai import OpenAIAnswerGenerator
from supportrag.utils.config import RAGConfig, load_config
from supportrag.utils.logging import set_log_level

from .base import BaseEmbedding, BaseVectorStore
from .chunking import WordChunker
from .embeddings import FakeEmbedding, LocalEmbedding, OpenAIEmbedding
from .pipeline import RAGPipeline
from .vectorstore import ChromaVectorStore, MemoryVectorStore

logger = logging.getLogger(__name__)


def create_embedding(config: RAGConfig) -> BaseEmbedding:
    """Build the embedding backend selected in the config."""
    if config.embedding_backend == "openai":
        return OpenAIEmbedding(
            model=config.embedding_model or "text-embedding-3-small",
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            dimension=config.embedding_dimension,
            concurrency=config.embedding_concurrency,
        )
    if config.embedding_backend == "fake":
        return FakeEmbedding(
            dimension=config.embedding_dimension,
            concurrency=config.embedding_concurrency,
        )
    return LocalEmbedding(
        model_name=config.embedding_model or "all-MiniLM-L6-v2",
        dimension=config.embedding_dimension,
        concurrency=config.embedding_concurrency,
    )


def create_vectorstore(config: RAGConfig) -> BaseVectorStore:
    """Build the vector store selected in the config."""
    if config.vectorstore == "chroma":
        return ChromaVectorStore(
            collection_name=config.collection_name,
            mode=config.chroma_mode,
            persist_directory=config.chroma_path,
            host=config.chroma_host,
            port=config.chroma_port,
            api_key=config.chroma_api_key,
            tenant=config.chroma_tenant,
            database=config.chroma_database,
            batch_size=config.upsert_batch_size,
            dimension=config.embedding_dimension,
        )
    return MemoryVectorStore(
        batch_size=config.upsert_batch_size,
        dimension=config.embedding_dimension,
    )


def create_generator(config: RAGConfig) -> Optional[AnswerGenerator]:
    """Build the answer generator, or None when it cannot be configured."""
    if not config.generator_enabled:
        return None
    if not config.openai_api_key:
        logger.warning(
            "OPENAI_API_KEY is not set; answers will contain retrieved context only"
        )
        return None
    return OpenAIAnswerGenerator(
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        model=config.generator_model,
        temperature=config.generator_temperature,
        max_tokens=config.generator_max_tokens,
    )


@dataclass
class RAGContext:
    """Shared resources for one process.

    The embedding backend and the store connection are expensive to set
    up. Each is initialized lazily, once, inside the objects held here;
    build one context at startup and pass it (or its pipeline) to every
    request handler.

    Example:
        ```python
        context = RAGContext.from_config(load_config())
        pipeline = context.pipeline()
        ```
    """

    config: RAGConfig
    embedding: BaseEmbedding
    vectorstore: BaseVectorStore
    generator: Optional[AnswerGenerator] = None

    @classmethod
    def from_config(cls, config: Optional[RAGConfig] = None) -> "RAGContext":
        """Select every backend once, from configuration.

        Nothing is loaded or contacted here; credentials are checked on
        first use.
        """
        config = config or load_config()
        set_log_level(config.log_level)

        context = cls(
            config=config,
            embedding=create_embedding(config),
            vectorstore=create_vectorstore(config),
            generator=create_generator(config),
        )
        logger.info(
            f"RAG context ready: embedding={config.embedding_backend}, "
            f"vectorstore={config.vectorstore}, "
            f"generator={'on' if context.generator else 'off'}"
        )
        return context

    def pipeline(self) -> RAGPipeline:
        """Create a pipeline sharing this context's resources."""
        return RAGPipeline(
            embedding=self.embedding,
            vectorstore=self.vectorstore,
            generator=self.generator,
            chunker=WordChunker(self.config.chunk_size, self.config.chunk_overlap),
            top_k=self.config.top_k,
        )
