"""
Structured error handling for the Automotora CRM Engine.

Provides custom exceptions and standardized error response models
for consistent API error responses.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # LLM errors (5xx) - message generation aborted, nothing persisted
    LLM_PROVIDER_ERROR = "LLM_PROVIDER_ERROR"
    LLM_AUTHENTICATION_ERROR = "LLM_AUTHENTICATION_ERROR"
    LLM_EMPTY_RESPONSE = "LLM_EMPTY_RESPONSE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"

    # Server errors (5xx)
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """
    Standardized error response format.

    All API errors return this structure for consistent client handling.
    """

    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error details (field errors, etc.)",
    )
    request_id: Optional[str] = Field(
        None,
        description="Request ID for tracing",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the error occurred",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "Client 42 not found",
                "error_code": "NOT_FOUND",
                "details": {"resource": "client", "id": 42},
                "request_id": "550e8400-e29b-41d4-a716-446655440000",
                "timestamp": "2025-01-15T10:30:00Z",
            }
        }
    }


# Custom Exceptions


class CRMBaseError(Exception):
    """Base exception for all CRM engine errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(CRMBaseError):
    """Raised when input is well-formed but violates a business rule."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            status_code=400,
        )


class ClientNotFoundError(CRMBaseError):
    """Raised when a client id does not resolve to an existing client."""

    def __init__(self, client_id: int):
        super().__init__(
            message=f"Client {client_id} not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"resource": "client", "id": client_id},
            status_code=404,
        )


class ConflictError(CRMBaseError):
    """Raised when a write collides with an existing record."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.CONFLICT,
            details=details,
            status_code=409,
        )


class StorageUnavailableError(CRMBaseError):
    """Raised when the database cannot be reached."""

    retryable = True

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(
            message=message,
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            status_code=503,
        )


class PersistenceError(CRMBaseError):
    """Raised when a generated message could not be written to the client's history."""

    def __init__(self, client_id: int, reason: Optional[str] = None):
        details: Dict[str, Any] = {"client_id": client_id}
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"Generated message could not be saved for client {client_id}",
            error_code=ErrorCode.PERSISTENCE_ERROR,
            details=details,
            status_code=500,
        )


# Generation failures: the LLM gave no usable text, nothing was persisted


class GenerationError(CRMBaseError):
    """Base class for text-generation failures."""

    retryable = True


class LLMProviderError(GenerationError):
    """Raised when LLM provider fails."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.LLM_PROVIDER_ERROR,
            details={"provider": provider} if provider else None,
            status_code=502,
        )


class LLMAuthenticationError(GenerationError):
    """Raised when the LLM provider rejects the configured API key."""

    retryable = False

    def __init__(self, provider: Optional[str] = None):
        super().__init__(
            message="LLM authentication failed - check the configured API key",
            error_code=ErrorCode.LLM_AUTHENTICATION_ERROR,
            details={"provider": provider} if provider else None,
            status_code=502,
        )


class EmptyGenerationError(GenerationError):
    """Raised when the LLM returns no text."""

    def __init__(self, provider: Optional[str] = None):
        super().__init__(
            message="LLM returned an empty message",
            error_code=ErrorCode.LLM_EMPTY_RESPONSE,
            details={"provider": provider} if provider else None,
            status_code=502,
        )


class LLMTimeoutError(GenerationError):
    """Raised when LLM request times out."""

    def __init__(self, timeout_seconds: int):
        super().__init__(
            message=f"LLM request timed out after {timeout_seconds} seconds",
            error_code=ErrorCode.LLM_TIMEOUT,
            details={"timeout_seconds": timeout_seconds},
            status_code=504,
        )


class LLMRateLimitedError(GenerationError):
    """Raised when LLM provider rate limits the request."""

    def __init__(self, provider: str, retry_after: Optional[int] = None):
        super().__init__(
            message=f"Rate limited by {provider}",
            error_code=ErrorCode.LLM_RATE_LIMITED,
            details={"provider": provider, "retry_after": retry_after},
            status_code=503,
        )
