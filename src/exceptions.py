"""Application exception hierarchy.

All custom exceptions inherit from SemanticSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    VALIDATION_ERROR = "LSS-1002"

    # Embedding errors (3xxx)
    EMBEDDING_BACKEND_ERROR = "LSS-3000"
    EMBEDDING_MODEL_UNAVAILABLE = "LSS-3001"
    EMBEDDING_DIMENSION_MISMATCH = "LSS-3002"

    # Vector store errors (4xxx)
    PERSISTENCE_READ_ERROR = "LSS-4001"
    PERSISTENCE_WRITE_ERROR = "LSS-4002"
    SNAPSHOT_DECODE_ERROR = "LSS-4003"
    SNAPSHOT_VERSION_UNSUPPORTED = "LSS-4004"


class SemanticSearchError(Exception):
    """Base exception for all semantic search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logs and tooling."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(SemanticSearchError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class EmbeddingError(SemanticSearchError):
    """Embedding backend error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_BACKEND_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class PersistenceError(SemanticSearchError):
    """Reading or writing the persisted store document failed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PERSISTENCE_READ_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
