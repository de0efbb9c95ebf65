"""Custom exceptions for the application.

This module defines application-specific exceptions with structured
error codes and metadata for consistent error handling across the API
and the WebSocket channel.

Exception Hierarchy:
- AppError (base)
  ├── ValidationError
  ├── NotFoundError
  │   └── SessionNotFoundError
  ├── StorageError
  ├── CacheError
  ├── ConfigurationError
  └── ProviderError
      ├── ProviderAuthError
      ├── ProviderNotFoundError
      ├── ProviderRateLimitedError
      ├── ProviderUnavailableError
      └── ProviderUnknownError

Usage:
    try:
        result = await chat_service.run_turn(content, sink)
    except ProviderRateLimitedError as e:
        await sink.on_token("\\n" + e.user_message)

Attributes:
    code: Machine-readable error code (e.g., "SESSION_NOT_FOUND")
    message: Operator-facing error message (redacted, may be logged)
    user_message: Safe sentence that can be shown to the end user
    http_status: Status code used when the error reaches an HTTP handler
    details: Additional context for debugging
    retryable: Whether the operation can be retried
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID


class AppError(Exception):
    """Base exception for application errors.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        user_message: Client-safe message
        http_status: HTTP status for API responses
        details: Additional context for debugging
        retryable: Whether the operation can be retried
        timestamp: When the error occurred
    """

    code: str = "APP_ERROR"
    message: str = "An unexpected error occurred"
    user_message: str = "Sorry, I ran into an issue completing that request. Please try again in a moment."
    http_status: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
    ) -> None:
        """Initialize error with optional message and details."""
        self.message = message or self.message
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable
        self.timestamp = datetime.now(UTC)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error": {
                "code": self.code,
                "message": self.user_message,
                "details": self.details,
                "retryable": self.retryable,
                "timestamp": self.timestamp.isoformat(),
            }
        }

    def __str__(self) -> str:
        """String representation with code."""
        return f"[{self.code}] {self.message}"


class ValidationError(AppError):
    """Raised when inbound content is rejected before any side effect."""

    code = "VALIDATION_ERROR"
    message = "Validation failed"
    user_message = "Messages must be between 1 and 4000 characters."
    http_status = 400

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, details=details)
        if message:
            self.user_message = message


class NotFoundError(AppError):
    """Base exception for resource not found errors."""

    code = "NOT_FOUND"
    message = "Resource not found"
    user_message = "The requested resource was not found."
    http_status = 404

    def __init__(
        self,
        resource: str,
        identifier: str | UUID,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not found error."""
        self.resource = resource
        self.identifier = identifier
        full_details = {"resource": resource, "identifier": str(identifier)}
        if details:
            full_details.update(details)
        super().__init__(
            message=f"{resource} not found: {identifier}",
            details=full_details,
        )


class SessionNotFoundError(NotFoundError):
    """Raised when a session is looked up by id and does not exist."""

    code = "SESSION_NOT_FOUND"
    message = "Session not found"
    user_message = "That conversation could not be found."

    def __init__(self, session_id: UUID | str) -> None:
        """Initialize session not found error."""
        super().__init__(
            resource="Session",
            identifier=session_id,
        )


class StorageError(AppError):
    """Raised when a durable store operation fails. Fatal to the turn."""

    code = "STORAGE_ERROR"
    message = "Storage operation failed"
    user_message = "Sorry, I couldn't save this conversation right now. Please try again in a moment."
    http_status = 503
    retryable = True


class CacheError(AppError):
    """Raised internally when a cache operation fails.

    Never surfaced to clients: the cache layer logs it and degrades to a
    miss or a no-op.
    """

    code = "CACHE_ERROR"
    message = "Cache operation failed"
    http_status = 503
    retryable = True


class ConfigurationError(AppError):
    """Base exception for configuration errors."""

    code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


class ProviderError(AppError):
    """Base exception for LLM provider failures.

    Attributes:
        model: Model ID of the last attempt, when known
    """

    code = "PROVIDER_ERROR"
    message = "LLM provider request failed"
    http_status = 502

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> None:
        self.model = model
        full_details = dict(details or {})
        if model:
            full_details.setdefault("model", model)
        super().__init__(message=message, details=full_details)


class ProviderAuthError(ProviderError):
    """Provider rejected the credentials."""

    code = "PROVIDER_AUTH"
    message = "LLM provider rejected the API credentials"
    user_message = "The assistant is not configured correctly. Please check the API key configuration."
    http_status = 502


class ProviderNotFoundError(ProviderError):
    """Provider does not know the requested model or version."""

    code = "PROVIDER_MODEL_NOT_FOUND"
    message = "LLM model not found"
    user_message = (
        "The assistant model is currently unavailable. "
        "Please retry, or configure a known-good model."
    )
    http_status = 502


class ProviderRateLimitedError(ProviderError):
    """Provider throttled the request (quota or rate limit)."""

    code = "PROVIDER_RATE_LIMITED"
    message = "LLM provider rate limit reached"
    user_message = "The assistant is getting a lot of requests right now. Please try again in a minute."
    http_status = 429
    retryable = True


class ProviderUnavailableError(ProviderError):
    """Provider or the network path to it is temporarily down."""

    code = "PROVIDER_UNAVAILABLE"
    message = "LLM provider unavailable"
    user_message = "The assistant is temporarily unavailable. Please try again shortly."
    http_status = 503
    retryable = True


class ProviderUnknownError(ProviderError):
    """Catch-all for provider failures that match no other category.

    The (redacted) provider message is passed through to the user.
    """

    code = "PROVIDER_ERROR"
    message = "LLM provider request failed"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> None:
        super().__init__(message=message, details=details, model=model)
        if message:
            self.user_message = f"Sorry, the assistant ran into a problem: {message}"


__all__ = [
    "AppError",
    "ValidationError",
    "NotFoundError",
    "SessionNotFoundError",
    "StorageError",
    "CacheError",
    "ConfigurationError",
    "ProviderError",
    "ProviderAuthError",
    "ProviderNotFoundError",
    "ProviderRateLimitedError",
    "ProviderUnavailableError",
    "ProviderUnknownError",
]
