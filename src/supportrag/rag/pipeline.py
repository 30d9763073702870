"""RAG pipeline: document ingestion and grounded question answering."""

import logging
from enum import Enum
from typing import Optional, Sequence, TYPE_CHECKING

from supportrag.exceptions import RAGError, UnsupportedInput

from .base import BaseChunker, BaseEmbedding, BaseVectorStore
from .chunking import WordChunker
from .document import (
    IngestionResult,
    QueryResponse,
    SearchResult,
    StoredDocument,
    TextInput,
)
from .retriever import VectorRetriever

if TYPE_CHECKING:
    from supportrag.providers.base import AnswerGenerator

logger = logging.getLogger(__name__)

NO_DOCUMENTS_RESPONSE = (
    "I don't have any documents to search through yet. "
    "Please upload some policy documents first."
)
NO_MATCHES_RESPONSE = "No relevant documents found."

GENERATION_UNAVAILABLE_NOTE = (
    "(Note: AI answer generation is unavailable. Configure an answer "
    "generator, e.g. set OPENAI_API_KEY, to get AI-generated responses.)"
)

PROMPT_TEMPLATE = """You are a helpful customer support assistant. Answer questions based only on the provided policy documents.
If the answer isn't in the documents, say so. Be concise and helpful.

Context from policy documents:
{context}

User Question: {question}

Please provide a clear, helpful answer based on the context above."""

SUPPORTED_EXTENSIONS = ("txt",)


class QueryStage(str, Enum):
    """Stages a query moves through, in order."""

    CHECK_STORE = "check_store"
    EMBED_QUERY = "embed_query"
    SEARCH = "search"
    ASSEMBLE_CONTEXT = "assemble_context"
    GENERATE_ANSWER = "generate_answer"
    DONE = "done"


def format_source(document: StoredDocument) -> str:
    """Citation for a retrieved chunk, with a one-based chunk number."""
    return f"{document.metadata.source} (Chunk {document.metadata.chunk_index + 1})"


def build_context(results: Sequence[SearchResult]) -> str:
    """Join retrieved chunks into one context string, most relevant first."""
    return "\n\n".join(
        f"[Document {i + 1}: {result.document.metadata.source}]\n{result.document.content}"
        for i, result in enumerate(results)
    )


def build_prompt(context: str, question: str, template: str = PROMPT_TEMPLATE) -> str:
    """Fill the answer prompt with context and the user question."""
    return template.format(context=context, question=question)


class RAGPipeline:
    """Retrieval-augmented question answering over uploaded documents.

    Ingestion cleans, chunks and embeds plain-text inputs and upserts the
    chunks into the vector store. Queries move through the stages of
    :class:`QueryStage`:

    1. ``CHECK_STORE``: an empty store short-circuits to a canned reply
       without embedding anything.
    2. ``EMBED_QUERY``: the message is embedded in query mode.
    3. ``SEARCH``: the top ``k`` chunks are retrieved.
    4. ``ASSEMBLE_CONTEXT``: chunks are labelled and joined, best first.
    5. ``GENERATE_ANSWER``: the generator answers from the context. With no
       generator the assembled context itself is returned, with a note.

    Example:
        ```python
        pipeline = RAGPipeline(
            embedding=LocalEmbedding(),
            vectorstore=MemoryVectorStore(),
        )

        await pipeline.ingest([TextInput(name="policy.txt", content=text)])
        answer = await pipeline.query("What is the return policy?")
        ```
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        vectorstore: BaseVectorStore,
        generator: Optional["AnswerGenerator"] = None,
        chunker: Optional[BaseChunker] = None,
        top_k: int = 3,
        prompt_template: str = PROMPT_TEMPLATE,
    ):
        """Initialize the RAG pipeline.

        Args:
            embedding: Embedding model for documents and queries
            vectorstore: Vector store for chunk storage
            generator: Answer generator (None for context-only answers)
            chunker: Document chunker (default: WordChunker(500, 50))
            top_k: Number of chunks used as context
            prompt_template: Template with {context} and {question} fields
        """
        if top_k <= 0:
            raise ValueError("top_k must be positive")

        self.embedding = embedding
        self.vectorstore = vectorstore
        self.generator = generator
        self.chunker = chunker or WordChunker()
        self.retriever = VectorRetriever(embedding, vectorstore)
        self.top_k = top_k
        self.prompt_template = prompt_template

    # Ingestion

    def _validate_inputs(self, inputs: Sequence[TextInput]) -> tuple[list[tuple[str, str]], int]:
        """Decode inputs, rejecting bad ones before anything is embedded.

        Returns:
            (source, text) pairs to ingest and the number of skipped inputs
        """
        accepted: list[tuple[str, str]] = []
        skipped = 0

        for item in inputs:
            extension = item.extension
            if extension == "pdf":
                raise UnsupportedInput(
                    "PDF files are not currently supported",
                    source=item.name,
                    file_type="pdf",
                    hint=(
                        "Please use TXT files instead. Extract the text of the PDF "
                        "and save it as a .txt file."
                    ),
                )
            if extension not in SUPPORTED_EXTENSIONS:
                logger.info(f"Skipping {item.name}: unsupported file type")
                skipped += 1
                continue

            text = item.text()
            if not text.strip():
                raise UnsupportedInput(
                    f"File {item.name} appears to be empty",
                    source=item.name,
                    file_type=extension,
                )
            accepted.append((item.name, text))

        return accepted, skipped

    async def add_text(self, text: str, source: str) -> int:
        """Chunk, embed and store one plain-text document.

        Chunk ids are ``{source}-{chunk_index}``, so adding the same source
        again overwrites its chunks.

        Returns:
            Number of chunks stored
        """
        chunks = self.chunker.chunk(text, source)
        if not chunks:
            return 0

        logger.info(f"Processing {source}: {len(chunks)} chunks created")

        try:
            embeddings = await self.embedding.embed_documents([c.content for c in chunks])
            documents = [
                StoredDocument.from_chunk(chunk, embedding)
                for chunk, embedding in zip(chunks, embeddings)
            ]
            await self.vectorstore.add_documents(documents)
        except RAGError as e:
            raise e.with_context(source=source)

        logger.info(f"Stored {len(documents)} chunks from {source}")
        return len(documents)

    async def ingest(self, inputs: Sequence[TextInput]) -> IngestionResult:
        """Ingest a list of plain-text inputs.

        ``.txt`` inputs are ingested, ``.pdf`` inputs and empty files are
        rejected with ``UnsupportedInput`` before any input is processed,
        and other extensions are skipped and counted.

        Args:
            inputs: Named text inputs

        Returns:
            Chunk and document totals
        """
        accepted, skipped = self._validate_inputs(inputs)

        total_chunks = 0
        for source, text in accepted:
            total_chunks += await self.add_text(text, source)

        total_documents = await self.vectorstore.get_document_count()

        return IngestionResult(
            success=True,
            total_chunks_created=total_chunks,
            total_documents_in_store=total_documents,
            files_processed=len(accepted),
            files_skipped=skipped,
            message=(
                f"Successfully processed {len(accepted)} file(s) "
                f"into {total_chunks} chunks"
            ),
        )

    # Querying

    async def retrieve(self, query: str, k: Optional[int] = None) -> list[SearchResult]:
        """Retrieve the chunks most similar to a query."""
        return await self.retriever.retrieve(query, k if k is not None else self.top_k)

    async def query(self, message: str, k: Optional[int] = None) -> QueryResponse:
        """Answer a question from the stored documents.

        Args:
            message: The user question
            k: Number of chunks to use (default: top_k)

        Returns:
            The answer and one citation per chunk used

        Raises:
            RAGError: From the embedding backend or store, with the failing
                stage in its details
        """
        k = k if k is not None else self.top_k
        stage = QueryStage.CHECK_STORE

        try:
            count = await self.vectorstore.get_document_count()
            logger.debug(f"Vector store has {count} documents")
            if count == 0:
                return QueryResponse(response=NO_DOCUMENTS_RESPONSE, sources=[])

            stage = QueryStage.EMBED_QUERY
            query_embedding = await self.retriever.embed(message)

            stage = QueryStage.SEARCH
            results = await self.retriever.search(query_embedding, k)
            if not results:
                return QueryResponse(response=NO_MATCHES_RESPONSE, sources=[])

            stage = QueryStage.ASSEMBLE_CONTEXT
            context = build_context(results)
            sources = [format_source(result.document) for result in results]

            stage = QueryStage.GENERATE_ANSWER
            if self.generator is None:
                response = (
                    "Based on the uploaded documents, here are the most relevant "
                    f"sections:\n\n{context}\n\n{GENERATION_UNAVAILABLE_NOTE}"
                )
            else:
                prompt = build_prompt(context, message, self.prompt_template)
                response = await self.generator.generate(prompt)

            stage = QueryStage.DONE
        except RAGError as e:
            raise e.with_context(stage=stage.value)
        finally:
            logger.debug(f"Query finished at stage {stage.value}")

        return QueryResponse(response=response, sources=sources)

    # Store management

    async def count_documents(self) -> int:
        """Return the number of stored chunks."""
        return await self.vectorstore.get_document_count()

    async def clear(self) -> None:
        """Remove every stored chunk."""
        await self.vectorstore.clear()
        logger.info("Cleared vector store")
