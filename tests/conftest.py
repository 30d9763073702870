"""
Test configuration and fixtures.
"""

import pytest

from supportrag.providers.base import AnswerGenerator
from supportrag.rag import FakeEmbedding, MemoryVectorStore, RAGPipeline


class CountingEmbedding(FakeEmbedding):
    """Fake embedding that records every backend call."""

    def __init__(self, dimension: int = 64, concurrency: int = 10):
        super().__init__(dimension=dimension, concurrency=concurrency)
        self.calls = 0
        self.modes: list[str] = []

    async def _embed_one(self, text, mode):
        self.calls += 1
        self.modes.append(mode)
        return await super()._embed_one(text, mode)


class RecordingGenerator(AnswerGenerator):
    """Answer generator that returns a fixed reply and keeps the prompts."""

    def __init__(self, reply: str = "Returns are accepted within 30 days."):
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def embedding():
    return CountingEmbedding(dimension=64)


@pytest.fixture
def store():
    return MemoryVectorStore()


@pytest.fixture
def generator():
    return RecordingGenerator()


@pytest.fixture
def pipeline(embedding, store):
    """Pipeline without an answer generator (context-only answers)."""
    return RAGPipeline(embedding=embedding, vectorstore=store)


@pytest.fixture
def policy_text():
    return "The return policy allows returns within 30 days."
