"""Tests for the RAG pipeline, its context and the service boundaries."""

import pytest

from conftest import CountingEmbedding, RecordingGenerator
from supportrag import handle_chat, handle_upload
from supportrag.exceptions import (
    ConfigurationMissing,
    EmbeddingUnavailable,
    UnsupportedInput,
)
from supportrag.providers import OpenAIAnswerGenerator
from supportrag.rag import (
    NO_DOCUMENTS_RESPONSE,
    NO_MATCHES_RESPONSE,
    ChromaVectorStore,
    ChunkMetadata,
    FakeEmbedding,
    LocalEmbedding,
    MemoryVectorStore,
    OpenAIEmbedding,
    RAGContext,
    RAGPipeline,
    SearchResult,
    StoredDocument,
    TextInput,
    VectorRetriever,
    WordChunker,
    build_context,
    build_prompt,
    format_source,
)
from supportrag.utils.config import RAGConfig


def make_result(source: str, index: int, content: str, score: float = 0.9) -> SearchResult:
    return SearchResult(
        document=StoredDocument(
            id=f"{source}-{index}",
            content=content,
            embedding=[1.0, 0.0],
            metadata=ChunkMetadata(source=source, chunk_index=index),
        ),
        score=score,
    )


class FailingEmbedding(FakeEmbedding):
    async def _embed_one(self, text, mode):
        raise EmbeddingUnavailable("backend down", retryable=True)


class FailingGenerator(RecordingGenerator):
    async def generate(self, prompt: str) -> str:
        raise RuntimeError("generator timed out")


class TestContextAssembly:
    """Tests for context, prompt and citation helpers."""

    def test_format_source(self):
        result = make_result("policy.txt", 0, "text")
        assert format_source(result.document) == "policy.txt (Chunk 1)"

    def test_build_context_order(self):
        results = [
            make_result("a.txt", 2, "most relevant", 0.9),
            make_result("b.txt", 0, "less relevant", 0.5),
        ]

        context = build_context(results)

        assert context == (
            "[Document 1: a.txt]\nmost relevant\n\n"
            "[Document 2: b.txt]\nless relevant"
        )

    def test_build_prompt(self):
        prompt = build_prompt("CONTEXT", "QUESTION?")

        assert "CONTEXT" in prompt
        assert "QUESTION?" in prompt
        assert "If the answer isn't in the documents, say so." in prompt


class TestIngestion:
    """Tests for RAGPipeline.ingest and add_text."""

    @pytest.mark.asyncio
    async def test_ingest_text_file(self, pipeline, store, policy_text):
        result = await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        assert result.success
        assert result.total_chunks_created == 1
        assert result.total_documents_in_store == 1
        assert result.files_processed == 1
        assert result.files_skipped == 0

        stored = await store.get("policy.txt-0")
        assert stored.content == policy_text
        assert stored.metadata.source == "policy.txt"

    @pytest.mark.asyncio
    async def test_bytes_content(self, pipeline, store):
        await pipeline.ingest([TextInput(name="a.txt", content="café hours".encode("utf-8"))])
        assert (await store.get("a.txt-0")).content == "café hours"

    @pytest.mark.asyncio
    async def test_unsupported_extension_skipped(self, pipeline, policy_text):
        result = await pipeline.ingest([
            TextInput(name="policy.txt", content=policy_text),
            TextInput(name="notes.docx", content=b"binary"),
            TextInput(name="README", content="no extension"),
        ])

        assert result.files_processed == 1
        assert result.files_skipped == 2
        assert result.total_chunks_created == 1

    @pytest.mark.asyncio
    async def test_pdf_rejected_before_processing(self, pipeline, store, embedding, policy_text):
        with pytest.raises(UnsupportedInput) as exc_info:
            await pipeline.ingest([
                TextInput(name="policy.txt", content=policy_text),
                TextInput(name="manual.pdf", content=b"%PDF-1.4"),
            ])

        assert exc_info.value.file_type == "pdf"
        assert "TXT" in exc_info.value.describe()
        assert embedding.calls == 0
        assert await store.get_document_count() == 0

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, pipeline):
        with pytest.raises(UnsupportedInput) as exc_info:
            await pipeline.ingest([TextInput(name="empty.txt", content="  \n ")])

        assert exc_info.value.source == "empty.txt"
        assert "appears to be empty" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_reupload_overwrites(self, pipeline, store):
        text = " ".join(f"word{i}" for i in range(30))
        pipeline.chunker = WordChunker(chunk_size=10, overlap=2)

        first = await pipeline.ingest([TextInput(name="a.txt", content=text)])
        second = await pipeline.ingest([TextInput(name="a.txt", content=text)])

        assert first.total_chunks_created == 4
        assert second.total_documents_in_store == first.total_documents_in_store == 4

    @pytest.mark.asyncio
    async def test_embedding_sub_batches(self, store):
        embedding = CountingEmbedding(concurrency=3)
        pipeline = RAGPipeline(embedding, store, chunker=WordChunker(chunk_size=5, overlap=1))
        text = " ".join(f"w{i}" for i in range(41))

        created = await pipeline.add_text(text, "long.txt")

        assert created == 10
        assert embedding.calls == 10
        assert await store.get_document_count() == 10

    @pytest.mark.asyncio
    async def test_error_enriched_with_source(self, store):
        pipeline = RAGPipeline(FailingEmbedding(dimension=8), store)

        with pytest.raises(EmbeddingUnavailable) as exc_info:
            await pipeline.ingest([TextInput(name="faq.txt", content="hello there")])

        assert exc_info.value.details["source"] == "faq.txt"
        assert exc_info.value.details["batch_index"] == 0


class TestQuery:
    """Tests for RAGPipeline.query."""

    @pytest.mark.asyncio
    async def test_empty_store_skips_embedding(self, pipeline, embedding):
        response = await pipeline.query("What is the return policy?")

        assert response.response == NO_DOCUMENTS_RESPONSE
        assert response.sources == []
        assert embedding.calls == 0

    @pytest.mark.asyncio
    async def test_end_to_end_without_generator(self, pipeline, policy_text):
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        response = await pipeline.query("What is the return policy?")

        assert response.sources == ["policy.txt (Chunk 1)"]
        assert response.response
        assert policy_text in response.response
        assert "AI answer generation is unavailable" in response.response

    @pytest.mark.asyncio
    async def test_end_to_end_with_generator(self, embedding, store, generator, policy_text):
        pipeline = RAGPipeline(embedding, store, generator=generator)
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        response = await pipeline.query("What is the return policy?")

        assert response.response == generator.reply
        assert response.sources == ["policy.txt (Chunk 1)"]
        assert len(generator.prompts) == 1
        assert "[Document 1: policy.txt]" in generator.prompts[0]
        assert policy_text in generator.prompts[0]
        assert "What is the return policy?" in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_query_uses_query_mode(self, pipeline, embedding, policy_text):
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        await pipeline.query("return policy")

        assert embedding.modes[-1] == "query"
        assert embedding.modes[:-1] == ["document"]

    @pytest.mark.asyncio
    async def test_top_k_and_ranking(self, embedding, store):
        pipeline = RAGPipeline(embedding, store, top_k=2)
        await pipeline.ingest([
            TextInput(name="returns.txt", content="Returns are accepted within 30 days of purchase."),
            TextInput(name="shipping.txt", content="Shipping takes five business days."),
            TextInput(name="warranty.txt", content="The warranty covers manufacturing defects."),
        ])

        response = await pipeline.query("Are returns accepted within 30 days?")

        assert len(response.sources) == 2
        assert response.sources[0] == "returns.txt (Chunk 1)"

    @pytest.mark.asyncio
    async def test_fewer_documents_than_k(self, pipeline, policy_text):
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        response = await pipeline.query("returns", k=5)

        assert len(response.sources) == 1

    @pytest.mark.asyncio
    async def test_zero_k_finds_nothing(self, pipeline, embedding, policy_text):
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        response = await pipeline.query("returns", k=0)

        assert response.response == NO_MATCHES_RESPONSE
        assert response.sources == []

    @pytest.mark.asyncio
    async def test_retrieve(self, embedding, store):
        pipeline = RAGPipeline(embedding, store, top_k=2)
        await pipeline.ingest([
            TextInput(name="returns.txt", content="Returns are accepted within 30 days of purchase."),
            TextInput(name="shipping.txt", content="Shipping takes five business days."),
            TextInput(name="warranty.txt", content="The warranty covers manufacturing defects."),
        ])

        results = await pipeline.retrieve("Are returns accepted within 30 days?")

        assert len(results) == 2
        assert results[0].document.metadata.source == "returns.txt"
        assert results[0].score >= results[1].score
        assert len(await pipeline.retrieve("returns", k=3)) == 3
        assert await pipeline.retrieve("returns", k=0) == []

    @pytest.mark.asyncio
    async def test_retriever_embeds_in_query_mode(self, embedding, store):
        await RAGPipeline(embedding, store).ingest([
            TextInput(name="shipping.txt", content="Shipping takes five business days."),
        ])
        retriever = VectorRetriever(embedding, store)

        results = await retriever.retrieve("How long does shipping take?", k=1)

        assert [r.document.id for r in results] == ["shipping.txt-0"]
        assert embedding.modes[-1] == "query"

    @pytest.mark.asyncio
    async def test_error_enriched_with_stage(self, store):
        await store.add_documents([make_result("a.txt", 0, "text").document])
        pipeline = RAGPipeline(FailingEmbedding(dimension=2), store)

        with pytest.raises(EmbeddingUnavailable) as exc_info:
            await pipeline.query("hello")

        assert exc_info.value.details["stage"] == "embed_query"

    @pytest.mark.asyncio
    async def test_missing_credential(self, store, monkeypatch):
        """Remote embeddings without a key fail with ConfigurationMissing."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        await store.add_documents([
            StoredDocument(
                id="a.txt-0",
                content="text",
                embedding=[0.1] * 384,
                metadata=ChunkMetadata(source="a.txt"),
            )
        ])
        pipeline = RAGPipeline(OpenAIEmbedding(), store)

        with pytest.raises(ConfigurationMissing):
            await pipeline.query("hello")

    @pytest.mark.asyncio
    async def test_clear(self, pipeline, policy_text):
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        await pipeline.clear()

        assert await pipeline.count_documents() == 0
        assert (await pipeline.query("policy")).response == NO_DOCUMENTS_RESPONSE

    def test_invalid_top_k(self, embedding, store):
        with pytest.raises(ValueError):
            RAGPipeline(embedding, store, top_k=0)


class TestService:
    """Tests for the structured upload and chat boundaries."""

    @pytest.mark.asyncio
    async def test_upload_and_chat(self, pipeline, policy_text):
        upload = await handle_upload(pipeline, [TextInput(name="policy.txt", content=policy_text)])

        assert upload["success"] is True
        assert upload["total_chunks_created"] == 1
        assert upload["total_documents_in_store"] == 1

        chat = await handle_chat(pipeline, {"message": "What is the return policy?"})

        assert chat["sources"] == ["policy.txt (Chunk 1)"]
        assert chat["response"]

    @pytest.mark.asyncio
    async def test_upload_without_files(self, pipeline):
        result = await handle_upload(pipeline, [])

        assert result["kind"] == "unsupported_input"
        assert result["error"] == "No files provided"

    @pytest.mark.asyncio
    async def test_upload_pdf(self, pipeline):
        result = await handle_upload(pipeline, [TextInput(name="a.pdf", content=b"%PDF")])

        assert result["error"] == "Failed to process documents"
        assert result["kind"] == "unsupported_input"
        assert "TXT" in result["details"]
        assert result["context"]["file_type"] == "pdf"
        assert result["retryable"] is False

    @pytest.mark.asyncio
    async def test_chat_without_message(self, pipeline):
        for payload in ({}, {"message": ""}, {"message": 42}):
            result = await handle_chat(pipeline, payload)
            assert result["kind"] == "unsupported_input"
            assert result["error"] == "No message provided"

    @pytest.mark.asyncio
    async def test_chat_configuration_error(self, store, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        await store.add_documents([
            StoredDocument(
                id="a.txt-0",
                content="text",
                embedding=[0.1] * 384,
                metadata=ChunkMetadata(source="a.txt"),
            )
        ])
        pipeline = RAGPipeline(OpenAIEmbedding(), store)

        result = await handle_chat(pipeline, {"message": "hello"})

        assert result["kind"] == "configuration_missing"
        assert result["context"]["setting"] == "OPENAI_API_KEY"
        assert result["context"]["stage"] == "embed_query"

    @pytest.mark.asyncio
    async def test_chat_generator_failure(self, embedding, store, policy_text):
        pipeline = RAGPipeline(embedding, store, generator=FailingGenerator())
        await pipeline.ingest([TextInput(name="policy.txt", content=policy_text)])

        result = await handle_chat(pipeline, {"message": "return policy?"})

        assert result["kind"] == "internal_error"
        assert result["error"] == "Failed to process query"
        assert "generator timed out" in result["details"]


class TestRAGContext:
    """Tests for building the pipeline from configuration."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        context = RAGContext.from_config(RAGConfig())

        assert isinstance(context.embedding, LocalEmbedding)
        assert isinstance(context.vectorstore, MemoryVectorStore)
        assert context.generator is None

    def test_reads_environment_without_config(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("SUPPORTRAG_EMBEDDING_BACKEND", "fake")
        monkeypatch.setenv("SUPPORTRAG_TOP_K", "5")

        context = RAGContext.from_config()

        assert isinstance(context.embedding, FakeEmbedding)
        assert isinstance(context.generator, OpenAIAnswerGenerator)
        assert context.pipeline().top_k == 5

    def test_openai_backends(self):
        config = RAGConfig(embedding_backend="openai", openai_api_key="sk-test")

        context = RAGContext.from_config(config)

        assert isinstance(context.embedding, OpenAIEmbedding)
        assert context.embedding.dimension == 384
        assert isinstance(context.generator, OpenAIAnswerGenerator)

    def test_generator_disabled(self):
        config = RAGConfig(openai_api_key="sk-test", generator_enabled=False)
        assert RAGContext.from_config(config).generator is None

    def test_chroma_store_needs_no_connection(self, tmp_path):
        config = RAGConfig(vectorstore="chroma", chroma_path=str(tmp_path / "db"))

        context = RAGContext.from_config(config)

        assert isinstance(context.vectorstore, ChromaVectorStore)
        assert context.vectorstore.collection_name == "customer-support-rag"

    @pytest.mark.asyncio
    async def test_pipelines_share_resources(self, policy_text):
        config = RAGConfig(embedding_backend="fake", chunk_size=20, chunk_overlap=5, top_k=2)
        context = RAGContext.from_config(config)

        first = context.pipeline()
        second = context.pipeline()
        await first.ingest([TextInput(name="policy.txt", content=policy_text)])

        assert first.embedding is second.embedding
        assert first.chunker.chunk_size == 20
        assert second.top_k == 2
        assert await second.count_documents() == 1
