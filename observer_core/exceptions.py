"""
Exception hierarchy for the key pool and notification services.

Errors carry an ErrorCode, an HTTP-style status, a unique ``error_id`` and
free-form context. They log themselves on construction, at WARNING for caller
mistakes (4xx) and ERROR for server-side or upstream failures (5xx), so call
sites only need to raise.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()

# Context keys that stay out of API payloads
_INTERNAL_CONTEXT_KEYS = ("cause", "error_id", "correlation_id")


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONNECTION_ERROR = "1002"
    CONFIGURATION_ERROR = "1003"
    TIMEOUT_ERROR = "1004"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"
    INTEGRATION_ERROR = "5003"


def _describe_cause(cause: BaseException) -> Dict[str, Any]:
    return {
        "type": type(cause).__name__,
        "message": str(cause),
        "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
    }


class BaseError(Exception):
    """Root of every error raised by observer_core."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Args:
            message: Human-readable message; must never contain a raw API key
            error_code: ErrorCode member
            status_code: HTTP-style status, decides the log level
            cause: Underlying exception, summarized into the context
            **context: Extra fields (key_id, owner_id, target, ...)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.error_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc).isoformat()

        self.context = dict(context)
        self.context["error_id"] = self.error_id
        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id
        if cause is not None:
            self.context["cause"] = _describe_cause(cause)

        self._log_error()

    @property
    def correlation_id(self) -> Optional[str]:
        return self.context.get("correlation_id")

    def _log_error(self) -> None:
        # Imported lazily: the logger module reads config, which must not import exceptions.
        from .utils.logger import get_logger

        log_data: Dict[str, Any] = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "context": {k: v for k, v in self.context.items() if k != "cause"},
        }
        if self.correlation_id:
            log_data["correlation_id"] = self.correlation_id

        logger = get_logger()
        code = self.error_code.value
        if self.status_code >= 500:
            logger.error(f"Error {code}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {code}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {code}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Render the error for an API or job-status response.

        Args:
            include_cause: Add the cause's type and message (never its traceback)
        """
        body: Dict[str, Any] = {
            "id": self.error_id,
            "code": self.error_code.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": {
                k: v for k, v in self.context.items() if k not in _INTERNAL_CONTEXT_KEYS
            },
        }
        if self.correlation_id:
            body["correlation_id"] = self.correlation_id

        cause = self.context.get("cause")
        if include_cause and cause:
            body["cause"] = {"type": cause["type"], "message": cause["message"]}

        return {"error": body}

    def add_context(self, **kwargs: Any) -> "BaseError":
        """Attach more context after construction; returns self."""
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """This error followed by its causes, outermost first."""
        chain: List[Exception] = [self]
        current = self.cause
        while current is not None:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Persistence layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Caller supplied a malformed credential, priority or argument."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class NotFoundError(BaseError):
    """
    Requested record does not exist for this owner.

    Records owned by another account raise the same error so existence is not
    leaked across owners.
    """

    def __init__(self, message: str = "Key not found", cause: Optional[Exception] = None, **context):
        super().__init__(message, ErrorCode.NOT_FOUND, 404, cause, **context)


class ProviderError(BaseError):
    """An external provider answered with a non-2xx status or an unusable body."""

    def __init__(
        self,
        message: str,
        service_name: str,
        provider_status: Optional[int] = None,
        response_body: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        cause: Optional[Exception] = None,
        **context,
    ):
        self.service_name = service_name
        self.provider_status = provider_status
        self.response_body = response_body
        context["service_name"] = service_name
        if provider_status is not None:
            context["provider_status"] = provider_status
        if response_body is not None:
            context["response_body"] = response_body[:500]
        super().__init__(message, error_code, 502, cause, **context)


class TransportError(BaseError):
    """The request never produced a response (connection failure, timeout)."""

    def __init__(
        self,
        message: str,
        service_name: str,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        cause: Optional[Exception] = None,
        **context,
    ):
        self.service_name = service_name
        context["service_name"] = service_name
        super().__init__(message, error_code, 503, cause, **context)


class TemplateError(BaseError):
    """A custom email template could not be rendered."""

    def __init__(self, message: str, cause: Optional[Exception] = None, **context):
        super().__init__(message, ErrorCode.INVALID_FORMAT, 422, cause, **context)


# Factory functions for common error patterns
def not_found(resource_type: str, cause: Optional[Exception] = None, **identifiers) -> NotFoundError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., 'API key')
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., key_id='123')
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return NotFoundError(message, cause=cause, resource_type=resource_type, **identifiers)


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value (never a raw secret)
        reason: Why validation failed
        cause: Original exception if any
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
