"""
Error taxonomy for the quiz generation pipeline.

Provider adapters turn upstream failures into returned error envelopes;
the exceptions defined here are raised by the resilience layer, the
configuration checks and the request validation, and are converted to a
single structured ErrorInfo before reaching the caller.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from quiz_generator.models.quiz_models import ErrorInfo


class AppError(Exception):
    """Base application error with a machine-readable code."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.context = context or {}


class ValidationError(AppError):
    """Malformed input or output structure (client-fixable)."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, context)


class AIProviderError(AppError):
    """Upstream LLM provider failure, tagged with the provider name."""

    def __init__(self, message: str, provider: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AI_PROVIDER_ERROR", 502, {"provider": provider, **(context or {})})
        self.provider = provider


class ConfigurationError(AppError):
    """Missing or invalid provider credentials."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", 400, context)


class OperationTimeoutError(AppError):
    """An operation exceeded its allotted time budget."""

    def __init__(self, message: str = "Operation timed out", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TIMEOUT_ERROR", 408, context)


class RetryExhaustedError(AppError):
    """Raised when a retry loop ends without ever capturing an exception."""

    def __init__(self, message: str = "Max retry attempts reached", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RETRY_EXHAUSTED", 500, context)


SENSITIVE_FIELDS = ("apikey", "api_key", "password", "token", "secret", "key")


def from_pydantic_error(error: PydanticValidationError, message: str = "Invalid input data") -> ValidationError:
    """Convert a pydantic ValidationError into an application ValidationError."""
    issues = [
        {
            "field": ".".join(str(part) for part in issue["loc"]),
            "message": issue["msg"],
            "code": issue["type"],
        }
        for issue in error.errors()
    ]
    return ValidationError(message, {"issues": issues})


def to_error_info(error: BaseException, where: str) -> ErrorInfo:
    """
    Format any exception as the structured error returned to callers.

    Application errors keep their message, code and context. Anything else is
    reported generically so internal details never leak to clients.
    """
    if isinstance(error, AppError):
        return ErrorInfo(
            message=error.message,
            where=where,
            code=error.code,
            provider=getattr(error, "provider", None),
            context=sanitize_for_logging(error.context),
        )
    if isinstance(error, PydanticValidationError):
        return to_error_info(from_pydantic_error(error), where)
    return ErrorInfo(
        message="Internal server error",
        where=where,
        code="INTERNAL_ERROR",
    )


def validate_required_config(config: Mapping[str, Any], required_fields: Iterable[str]) -> None:
    """Raise ConfigurationError listing every required field that is empty."""
    missing: List[str] = [field for field in required_fields if not config.get(field)]
    if missing:
        raise ConfigurationError(
            f"Missing configuration: {', '.join(missing)}",
            {"missing_fields": missing, "provided_config": sorted(config.keys())}
        )


def sanitize_for_logging(data: Any) -> Any:
    """Return a copy of data with credential-like fields redacted."""
    if isinstance(data, dict):
        sanitized = {}
        for field, value in data.items():
            if any(sensitive in str(field).lower() for sensitive in SENSITIVE_FIELDS):
                sanitized[field] = "[REDACTED]"
            else:
                sanitized[field] = sanitize_for_logging(value)
        return sanitized
    if isinstance(data, list):
        return [sanitize_for_logging(item) for item in data]
    return data
