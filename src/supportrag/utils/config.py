"""
Configuration utilities.
"""

import json
import os
from pathlib import Path
from typing import Any, Literal

import yaml

from pydantic import BaseModel, model_validator

ENV_PREFIX = "SUPPORTRAG_"


class RAGConfig(BaseModel):
    """Configuration for the retrieval pipeline."""

    # Embedding settings
    embedding_backend: Literal["local", "openai", "fake"] = "local"
    embedding_model: str | None = None
    embedding_dimension: int = 384
    embedding_concurrency: int = 10

    # OpenAI settings (remote embeddings and answer generation)
    openai_api_key: str | None = None
    openai_base_url: str | None = None

    # Vector store settings
    vectorstore: Literal["memory", "chroma"] = "memory"
    collection_name: str = "customer-support-rag"
    chroma_mode: Literal["ephemeral", "persistent", "http", "cloud"] = "persistent"
    chroma_path: str = "./chroma_data"
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_api_key: str | None = None
    chroma_tenant: str | None = None
    chroma_database: str | None = None
    upsert_batch_size: int = 100

    # Chunking and retrieval
    chunk_size: int = 500
    chunk_overlap: int = 50
    top_k: int = 3

    # Answer generation
    generator_enabled: bool = True
    generator_model: str = "gpt-4o-mini"
    generator_temperature: float = 0.3
    generator_max_tokens: int = 1000

    log_level: str = "INFO"

    @model_validator(mode="after")
    def check_sizes(self) -> "RAGConfig":
        for name in ("chunk_size", "top_k", "embedding_dimension",
                     "embedding_concurrency", "upsert_batch_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and less than chunk_size")
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "RAGConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "RAGConfig":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "RAGConfig":
        """Load configuration from environment variables."""
        return cls(**env_overrides(environ))


def env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Collect config values from the environment.

    Every field can be set as ``SUPPORTRAG_<FIELD>``. The OpenAI key
    falls back to ``OPENAI_API_KEY`` and the Chroma key to
    ``CHROMA_API_KEY``.
    """
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    for name in RAGConfig.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in environ:
            values[name] = environ[key]

    if "openai_api_key" not in values and environ.get("OPENAI_API_KEY"):
        values["openai_api_key"] = environ["OPENAI_API_KEY"]
    if "chroma_api_key" not in values and environ.get("CHROMA_API_KEY"):
        values["chroma_api_key"] = environ["CHROMA_API_KEY"]

    return values


def load_config(
    path: str | Path | None = "supportrag.yaml",
    environ: dict[str, str] | None = None,
) -> RAGConfig:
    """
    Load pipeline configuration.

    Values from the file (when it exists) are overridden by the environment.

    Args:
        path: Path to config file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        RAGConfig instance
    """
    data: dict[str, Any] = {}

    if path is not None and Path(path).exists():
        data = RAGConfig.from_file(path).model_dump(exclude_unset=True)

    data.update(env_overrides(environ))
    return RAGConfig(**data)
