"""Embedding model implementations."""

import asyncio
import hashlib
import logging
import math
import os
import re
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from supportrag.exceptions import (
    ConfigurationMissing,
    EmbeddingFailureReason,
    EmbeddingUnavailable,
)
from supportrag.utils.lazy import LazyResource

from .base import BaseEmbedding, EmbeddingMode

logger = logging.getLogger(__name__)


class LocalEmbedding(BaseEmbedding):
    """Local embedding model using sentence-transformers.

    Uses HuggingFace sentence-transformers models locally.
    No API calls required, runs entirely on the local machine.
    Output vectors are mean-pooled and L2-normalized.

    The model is loaded once, on first use, and shared by every caller.

    Note: Requires the 'local' extra to be installed.
    """

    # Known model dimensions
    MODEL_DIMENSIONS = {
        "all-MiniLM-L6-v2": 384,
        "all-mpnet-base-v2": 768,
        "paraphrase-multilingual-MiniLM-L12-v2": 384,
        "multi-qa-MiniLM-L6-cos-v1": 384,
    }

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        device: Optional[str] = None,
        normalize: bool = True,
        dimension: Optional[int] = None,
        concurrency: int = 10,
    ):
        """Initialize the local embedding model.

        Args:
            model_name: Name of the sentence-transformers model
            device: Device to run on (cuda, cpu, mps). Auto-detected if None.
            normalize: Whether to normalize embeddings
            dimension: Output dimension (defaults to the model's)
            concurrency: Texts per sub-batch in embed_documents
        """
        super().__init__(
            dimension or self.MODEL_DIMENSIONS.get(model_name, 384),
            concurrency,
        )
        self.model_name = model_name
        self.device = device
        self.normalize = normalize
        self._model = LazyResource(self._load_model, name=f"embedding model {model_name}")

    async def _load_model(self) -> Any:
        """Load the sentence-transformers model in a worker thread."""
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise EmbeddingUnavailable(
                "Local embedding requires 'sentence-transformers'. "
                "Install it with: pip install sentence-transformers",
                reason=EmbeddingFailureReason.MODEL_INIT_FAILED,
            ) from e

        loop = asyncio.get_running_loop()
        try:
            model = await loop.run_in_executor(
                None,
                lambda: SentenceTransformer(self.model_name, device=self.device),
            )
        except Exception as e:
            raise EmbeddingUnavailable(
                f"Failed to load embedding model {self.model_name}: {e}",
                reason=EmbeddingFailureReason.MODEL_INIT_FAILED,
                details={"model": self.model_name},
            ) from e

        logger.info(f"Loaded embedding model: {self.model_name}")
        return model

    async def _encode(self, texts: list[str], mode: EmbeddingMode) -> list[list[float]]:
        model = await self._model.get()

        kwargs: dict[str, Any] = {}
        if mode == "query" and "query" in (getattr(model, "prompts", None) or {}):
            kwargs["prompt_name"] = "query"

        # Run in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        try:
            embeddings = await loop.run_in_executor(
                None,
                lambda: model.encode(
                    texts,
                    normalize_embeddings=self.normalize,
                    convert_to_numpy=True,
                    **kwargs,
                ),
            )
        except Exception as e:
            raise EmbeddingUnavailable(
                f"Embedding model {self.model_name} failed to encode: {e}",
                reason=EmbeddingFailureReason.BACKEND_CALL_FAILED,
                details={"model": self.model_name},
            ) from e

        return embeddings.tolist()

    async def _embed_one(self, text: str, mode: EmbeddingMode) -> list[float]:
        embeddings = await self._encode([text], mode)
        return embeddings[0]

    async def _embed_group(self, texts: list[str], mode: EmbeddingMode) -> list[list[float]]:
        # One encode call per sub-batch; the model batches internally
        return await self._encode(texts, mode)


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI embedding model.

    Uses OpenAI's embedding API (text-embedding-3-small/large). The API
    key comes from the ``api_key`` argument or ``OPENAI_API_KEY``; when
    neither is set, embedding fails with ``ConfigurationMissing`` before
    any request is made.

    Vectors are truncated to ``dimension`` (384 by default) so they can
    share a store with the local model.
    """

    # Native model dimensions
    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        dimension: int = 384,
        concurrency: int = 10,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize the OpenAI embedding model.

        Args:
            model: Model name (text-embedding-3-small, text-embedding-3-large)
            api_key: OpenAI API key (optional, uses env var if not provided)
            base_url: Optional base URL for API
            dimension: Output dimension after truncation
            concurrency: Concurrent requests per sub-batch
            client: Pre-built client (skips key lookup)
        """
        super().__init__(dimension, concurrency)
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self._prebuilt_client = client
        self._client = LazyResource(self._create_client, name="OpenAI embeddings client")

    def check_configuration(self) -> None:
        """Raise ConfigurationMissing if no API key is available."""
        if self._prebuilt_client is None and not (self.api_key or os.environ.get("OPENAI_API_KEY")):
            raise ConfigurationMissing("OPENAI_API_KEY")

    async def _create_client(self) -> AsyncOpenAI:
        if self._prebuilt_client is not None:
            return self._prebuilt_client

        self.check_configuration()
        kwargs: dict[str, Any] = {"api_key": self.api_key or os.environ["OPENAI_API_KEY"]}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return AsyncOpenAI(**kwargs)

    async def _embed_one(self, text: str, mode: EmbeddingMode) -> list[float]:
        """Embed a single text using OpenAI API."""
        client = await self._client.get()

        try:
            response = await client.embeddings.create(
                model=self.model,
                input=text,
            )
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            raise EmbeddingUnavailable(
                f"OpenAI embedding request failed: {e}",
                reason=EmbeddingFailureReason.BACKEND_CALL_FAILED,
                retryable=True,
                details={"model": self.model},
            ) from e
        except openai.APIError as e:
            raise EmbeddingUnavailable(
                f"OpenAI embedding request rejected: {e}",
                reason=EmbeddingFailureReason.BACKEND_CALL_FAILED,
                details={"model": self.model},
            ) from e

        return response.data[0].embedding


_WORD = re.compile(r"\w+")


class FakeEmbedding(BaseEmbedding):
    """Fake embedding that generates deterministic embeddings from text.

    Each word is hashed into one of ``dimension`` buckets and the counts
    are L2-normalized, so texts sharing words get similar vectors. Useful
    for tests and offline demos.
    """

    def __init__(self, dimension: int = 384, seed: int = 42, concurrency: int = 10):
        """Initialize the fake embedding.

        Args:
            dimension: Dimension of the embedding vectors
            seed: Hash seed for reproducibility
            concurrency: Texts per sub-batch in embed_documents
        """
        super().__init__(dimension, concurrency)
        self.seed = seed

    def _hash_text(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in _WORD.findall(text.lower()):
            digest = hashlib.sha256(f"{self.seed}:{word}".encode()).digest()
            vector[int.from_bytes(digest[:8], "big") % self._dimension] += 1.0

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]

    async def _embed_one(self, text: str, mode: EmbeddingMode) -> list[float]:
        return self._hash_text(text)
