"""
Exceptions raised by the retrieval pipeline.

Every error carries a stable machine-readable ``kind`` and a ``details`` dict
that callers enrich with operation context (file, batch index, stage) as the
error bubbles up.
"""

from enum import Enum
from typing import Any


class RAGError(Exception):
    """Base exception for retrieval pipeline errors."""

    kind: str = "rag_error"
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def with_context(self, **context: Any) -> "RAGError":
        """Attach operation context without overwriting what a lower layer set."""
        for key, value in context.items():
            self.details.setdefault(key, value)
        return self

    def describe(self) -> str:
        """Human-readable detail string for structured responses."""
        return self.message

    def to_response(self, error: str | None = None):
        """Convert to the structured error returned at the boundary."""
        from supportrag.rag.document import ErrorResponse

        return ErrorResponse(
            error=error or self.message,
            kind=self.kind,
            details=self.describe(),
            retryable=self.retryable,
            context=dict(self.details),
        )


class ConfigurationMissing(RAGError):
    """Raised when a credential or required setting is absent."""

    kind = "configuration_missing"

    def __init__(self, setting: str, message: str | None = None):
        self.setting = setting
        super().__init__(
            message or f"{setting} is not set. Please add it to your environment or config file.",
            {"setting": setting},
        )


class EmbeddingFailureReason(str, Enum):
    """Why an embedding backend could not produce vectors."""

    MODEL_INIT_FAILED = "model_init_failed"
    BACKEND_CALL_FAILED = "backend_call_failed"
    INVALID_OUTPUT = "invalid_output"


class EmbeddingUnavailable(RAGError):
    """Raised when the embedding backend fails to load or to answer."""

    kind = "embedding_unavailable"

    def __init__(
        self,
        message: str,
        reason: EmbeddingFailureReason = EmbeddingFailureReason.BACKEND_CALL_FAILED,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ):
        self.reason = reason
        self.retryable = retryable
        details = dict(details or {})
        details["reason"] = reason.value
        super().__init__(message, details)


class StoreUnavailable(RAGError):
    """Raised when the vector store backend fails.

    For upserts, ``batch_index`` is the sub-batch that failed and
    ``committed_batches`` counts the sub-batches already persisted.
    """

    kind = "store_unavailable"

    def __init__(
        self,
        message: str,
        operation: str,
        batch_index: int | None = None,
        committed_batches: int | None = None,
        retryable: bool = True,
    ):
        self.operation = operation
        self.batch_index = batch_index
        self.committed_batches = committed_batches
        self.retryable = retryable

        details: dict[str, Any] = {"operation": operation}
        if batch_index is not None:
            details["batch_index"] = batch_index
        if committed_batches is not None:
            details["committed_batches"] = committed_batches
        super().__init__(message, details)


class UnsupportedInput(RAGError):
    """Raised for inputs the pipeline cannot ingest (wrong type, empty)."""

    kind = "unsupported_input"

    def __init__(
        self,
        message: str,
        source: str | None = None,
        file_type: str | None = None,
        hint: str | None = None,
    ):
        self.source = source
        self.file_type = file_type
        self.hint = hint

        details: dict[str, Any] = {}
        if source:
            details["source"] = source
        if file_type:
            details["file_type"] = file_type
        if hint:
            details["hint"] = hint
        super().__init__(message, details)

    def describe(self) -> str:
        return self.hint or self.message


class DimensionMismatchError(ValueError):
    """Raised when vectors of different dimensions meet in one store."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )
