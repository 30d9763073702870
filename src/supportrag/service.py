"""
Ingestion and query boundaries.

These functions sit behind whatever transport exposes the pipeline. They
never raise: results and errors both come back as plain dicts, errors with
a stable ``kind`` and a human-readable ``details`` string.
"""

import logging
from typing import Any, Sequence

from supportrag.exceptions import RAGError, UnsupportedInput
from supportrag.rag.document import ErrorResponse, TextInput
from supportrag.rag.pipeline import RAGPipeline

logger = logging.getLogger(__name__)


async def handle_upload(pipeline: RAGPipeline, inputs: Sequence[TextInput]) -> dict[str, Any]:
    """
    Ingest uploaded text files.

    Returns:
        ``{"success", "total_chunks_created", "total_documents_in_store", ...}``
        or ``{"error", "kind", "details", ...}``
    """
    if not inputs:
        return UnsupportedInput("No files provided").to_response().model_dump()

    try:
        result = await pipeline.ingest(inputs)
    except RAGError as e:
        logger.error(f"Upload failed: {e}")
        return e.to_response("Failed to process documents").model_dump()
    except Exception as e:
        logger.exception("Upload failed")
        return ErrorResponse(
            error="Failed to process documents",
            kind="internal_error",
            details=str(e),
        ).model_dump()

    logger.info(result.message)
    return result.model_dump()


async def handle_chat(pipeline: RAGPipeline, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Answer a chat message.

    Args:
        pipeline: Pipeline to query
        payload: Request body, ``{"message": str}``

    Returns:
        ``{"response", "sources"}`` or ``{"error", "kind", "details", ...}``
    """
    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        return UnsupportedInput("No message provided").to_response().model_dump()

    try:
        answer = await pipeline.query(message)
    except RAGError as e:
        logger.error(f"Query failed: {e}")
        return e.to_response("Failed to process query").model_dump()
    except Exception as e:
        logger.exception("Query failed")
        return ErrorResponse(
            error="Failed to process query",
            kind="internal_error",
            details=str(e),
        ).model_dump()

    return answer.model_dump()
