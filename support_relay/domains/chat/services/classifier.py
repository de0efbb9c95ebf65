"""Failure classification for chat turns.

Maps whatever a collaborator raised (provider SDK, network, database,
Redis) onto the closed AppError taxonomy, and redacts secrets so the
result is safe to log and to show to the user.
"""

import logging
import re
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from support_relay.config import get_settings
from support_relay.exceptions import (
    AppError,
    CacheError,
    ProviderAuthError,
    ProviderError,
    ProviderNotFoundError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
    ProviderUnknownError,
    StorageError,
)

logger = logging.getLogger("chat")

_SECRET_PATTERNS = [
    re.compile(r"AIza[0-9A-Za-z_\-]{20,}"),
    re.compile(r"\bsk-[0-9A-Za-z_\-]{8,}"),
    re.compile(r"(?i)(bearer\s+)[0-9A-Za-z._\-]+"),
    re.compile(r"(?i)([?&](?:key|api_key|apikey)=)[^&\s]+"),
]
_STATUS_IN_TEXT = re.compile(r"(?<![\d.])(401|403|404|429|500|502|503|504)(?![\d.])")

_AUTH_HINTS = ("api key", "api_key", "permission denied", "unauthenticated", "unauthorized")
_NOT_FOUND_HINTS = ("not found", "is not supported", "unknown model")
_RATE_LIMIT_HINTS = ("rate limit", "ratelimit", "quota", "resource has been exhausted", "too many requests")
_UNAVAILABLE_HINTS = (
    "service unavailable",
    "unavailable",
    "overloaded",
    "deadline exceeded",
    "timed out",
    "timeout",
    "connection reset",
)

_STATUS_TO_ERROR: dict[int, type[ProviderError]] = {
    401: ProviderAuthError,
    403: ProviderAuthError,
    404: ProviderNotFoundError,
    429: ProviderRateLimitedError,
    500: ProviderUnavailableError,
    502: ProviderUnavailableError,
    503: ProviderUnavailableError,
    504: ProviderUnavailableError,
}


def redact(text: str) -> str:
    """Strip API keys and bearer tokens from text."""
    redacted = text
    for pattern in _SECRET_PATTERNS:
        if pattern.groups:
            redacted = pattern.sub(lambda m: m.group(1) + "[REDACTED]", redacted)
        else:
            redacted = pattern.sub("[REDACTED]", redacted)
    configured_key = get_settings().google_api_key
    if configured_key:
        redacted = redacted.replace(configured_key, "[REDACTED]")
    return redacted


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        # grpc-style codes expose an int via .value or are callables
        if callable(value):
            try:
                value = value()
            except TypeError:
                continue
        value = getattr(value, "value", value)
        if isinstance(value, tuple) and value:
            value = value[0]
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    match = _STATUS_IN_TEXT.search(str(exc))
    return int(match.group(1)) if match else None


def _provider_error_from_text(text: str) -> type[ProviderError] | None:
    lowered = text.lower()
    if any(h in lowered for h in _AUTH_HINTS):
        return ProviderAuthError
    if any(h in lowered for h in _RATE_LIMIT_HINTS):
        return ProviderRateLimitedError
    if any(h in lowered for h in _NOT_FOUND_HINTS):
        return ProviderNotFoundError
    if any(h in lowered for h in _UNAVAILABLE_HINTS):
        return ProviderUnavailableError
    return None


def classify(exc: BaseException, *, model: str | None = None) -> AppError:
    """Map an exception onto the error taxonomy.

    AppError instances are returned unchanged. Everything else is treated
    as a provider failure unless its type says it came from the database,
    the cache, or the network.

    Args:
        exc: The failure to classify
        model: Model ID of the attempt that failed, if any

    Returns:
        An AppError whose ``__cause__`` is the original exception
    """
    if isinstance(exc, AppError):
        return exc

    text = redact(f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__)

    error: AppError
    if isinstance(exc, SQLAlchemyError):
        error = StorageError(message=text)
    elif isinstance(exc, RedisError):
        error = CacheError(message=text)
    else:
        status = _status_of(exc)
        error_cls = _STATUS_TO_ERROR.get(status) if status is not None else None
        if error_cls is None:
            error_cls = _provider_error_from_text(str(exc))
        if error_cls is None and isinstance(exc, (ConnectionError, TimeoutError, OSError)):
            error_cls = ProviderUnavailableError
        if error_cls is None:
            error = ProviderUnknownError(message=text, model=model)
        else:
            details: dict[str, Any] = {"status_code": status} if status is not None else {}
            error = error_cls(message=text, details=details, model=model)

    error.__cause__ = exc
    return error


def category_of(error: AppError) -> str:
    """Short category label used in logs."""
    if isinstance(error, StorageError):
        return "storage"
    if isinstance(error, CacheError):
        return "cache"
    if isinstance(error, ProviderError):
        return "provider"
    return "request"


def log_failure(error: AppError, **context: Any) -> None:
    """Write the operator diagnostic for a classified failure."""
    level = logging.WARNING if error.retryable or category_of(error) == "request" else logging.ERROR
    logger.log(
        level,
        f"Chat turn failed: {error.code}",
        extra={
            "service": "chat",
            "error_code": error.code,
            "error_category": category_of(error),
            "error": redact(error.message),
            "model": getattr(error, "model", None),
            "metadata": context or None,
        },
    )


__all__ = ["classify", "category_of", "log_failure", "redact"]
