"""
Custom error handling for bulk operations.

This module defines every exception raised by the package and a helper for
consistent error logging.
"""

import logging
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """
    Standardized error codes.
    """

    # General errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Transport errors
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    GRAPHQL_ERROR = "GRAPHQL_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Bulk operation errors
    BULK_USER_ERRORS = "BULK_USER_ERRORS"
    BULK_START_FAILED = "BULK_START_FAILED"
    BULK_NOT_FOUND = "BULK_NOT_FOUND"
    BULK_OPERATION_FAILED = "BULK_OPERATION_FAILED"
    BULK_TIMEOUT = "BULK_TIMEOUT"

    # Data errors
    JSONL_PARSE_ERROR = "JSONL_PARSE_ERROR"


class ErrorSeverity(Enum):
    """
    Severity levels for errors.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TransportErrorKind(Enum):
    """Failure families reported by the GraphQL transport."""

    NETWORK = "network"
    HTTP = "http"
    GRAPHQL = "graphql"


class AppException(Exception):
    """
    Base exception for every error raised by the package.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        is_retryable: bool = False,
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Standardized error code
            details: Additional error information
            status_code: Associated HTTP status code
            severity: Error severity
            is_retryable: Whether the failed call may be retried
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        self.severity = severity
        self.is_retryable = is_retryable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the exception to a dictionary.

        Returns:
            Dict: Serializable representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "details": self.details,
            "status_code": self.status_code,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationException(AppException):
    """
    Raised when caller input is missing or malformed. Never retried.
    """

    def __init__(self, message: str, field: str, invalid_value: Any = None, **kwargs):
        """
        Initialize the validation exception.

        Args:
            message: Error message
            field: Field that failed validation
            invalid_value: Value that caused the error
            **kwargs: Additional arguments for AppException
        """
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            status_code=422,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.field = field
        self.invalid_value = invalid_value

        # Tokens must never end up in logs
        shown_value = None
        if invalid_value is not None and field != "access_token":
            shown_value = str(invalid_value)

        self.details.update({"field": field, "invalid_value": shown_value})


class TransportException(AppException):
    """
    Raised when a GraphQL request cannot be completed.
    """

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind = TransportErrorKind.NETWORK,
        error_code: ErrorCode = ErrorCode.NETWORK_ERROR,
        endpoint: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("status_code", 503)
        super().__init__(message=message, error_code=error_code, **kwargs)
        self.kind = kind
        self.endpoint = endpoint

        self.details.update({"kind": kind.value, "endpoint": endpoint})


class NetworkException(TransportException):
    """Connection refused, DNS failure, timeout and similar. Retryable."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            kind=TransportErrorKind.NETWORK,
            error_code=ErrorCode.NETWORK_ERROR,
            is_retryable=True,
            **kwargs,
        )


class HttpStatusException(TransportException):
    """
    Non-2xx response from the API.

    429 and 5xx are transient and retryable; every other status is final.
    """

    def __init__(self, message: str, api_response_code: int, body: Optional[str] = None, **kwargs):
        rate_limited = api_response_code == 429
        retryable = rate_limited or api_response_code >= 500

        super().__init__(
            message=message,
            kind=TransportErrorKind.HTTP,
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED if rate_limited else ErrorCode.HTTP_ERROR,
            status_code=api_response_code,
            severity=ErrorSeverity.HIGH if api_response_code >= 500 else ErrorSeverity.MEDIUM,
            is_retryable=retryable,
            **kwargs,
        )
        self.api_response_code = api_response_code
        self.rate_limited = rate_limited

        self.details.update(
            {
                "api_response_code": api_response_code,
                "rate_limited": rate_limited,
                "body": body[:500] if body else None,
            }
        )


class GraphQLException(TransportException):
    """
    GraphQL-layer failure on a 2xx response. Treated as a logic or schema
    error, so it is never retried.
    """

    def __init__(self, messages: List[str], **kwargs):
        self.messages = list(messages)
        super().__init__(
            message=f"GraphQL errors: {', '.join(self.messages)}",
            kind=TransportErrorKind.GRAPHQL,
            error_code=ErrorCode.GRAPHQL_ERROR,
            status_code=400,
            is_retryable=False,
            **kwargs,
        )
        self.details.update({"messages": self.messages})


class UserErrorsException(AppException):
    """
    The start mutation returned field-level userErrors.
    """

    def __init__(self, messages: List[str], user_errors: Optional[List[Dict[str, Any]]] = None, **kwargs):
        self.messages = list(messages)
        super().__init__(
            message=f"User errors starting bulk operation: {', '.join(self.messages)}",
            error_code=ErrorCode.BULK_USER_ERRORS,
            status_code=400,
            severity=ErrorSeverity.LOW,
            **kwargs,
        )
        self.details.update({"user_errors": user_errors or []})


class BulkOperationStartException(AppException):
    """The start mutation did not hand back a bulk operation."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, error_code=ErrorCode.BULK_START_FAILED, **kwargs)


class BulkOperationNotFoundException(AppException):
    """
    Polling found no bulk operation for the given id, even after the
    bounded not-found retries.
    """

    def __init__(self, operation_id: str, attempts: int, **kwargs):
        super().__init__(
            message=f"Could not find bulk operation {operation_id} after {attempts} attempts",
            error_code=ErrorCode.BULK_NOT_FOUND,
            status_code=404,
            **kwargs,
        )
        self.operation_id = operation_id
        self.attempts = attempts

        self.details.update({"operation_id": operation_id, "attempts": attempts})


class BulkOperationFailedException(AppException):
    """
    The bulk operation reached FAILED, CANCELLED or EXPIRED.
    """

    def __init__(self, operation_id: str, status: str, error_code_value: Optional[str] = None, **kwargs):
        super().__init__(
            message=(
                f"Bulk operation {operation_id} failed with status {status}. "
                f"Error code: {error_code_value}"
            ),
            error_code=ErrorCode.BULK_OPERATION_FAILED,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.operation_id = operation_id
        self.status = status
        self.api_error_code = error_code_value

        self.details.update({"operation_id": operation_id, "status": status, "error_code": error_code_value})


class BulkOperationTimeoutException(AppException):
    """
    The wall-clock budget ran out before the operation reached a terminal state.
    """

    def __init__(self, operation_id: str, last_status: str, timeout_seconds: float, elapsed: float, **kwargs):
        super().__init__(
            message=(
                f"Bulk operation {operation_id} timed out after {timeout_seconds:g} seconds. "
                f"Last status: {last_status}"
            ),
            error_code=ErrorCode.BULK_TIMEOUT,
            status_code=504,
            **kwargs,
        )
        self.operation_id = operation_id
        self.last_status = last_status
        self.timeout_seconds = timeout_seconds

        self.details.update(
            {
                "operation_id": operation_id,
                "last_status": last_status,
                "timeout_seconds": timeout_seconds,
                "elapsed": round(elapsed, 3),
            }
        )


class JsonlParseException(AppException):
    """
    A line of the result file is not valid JSON.
    """

    def __init__(self, line_number: int, raw_line: str, reason: str, **kwargs):
        super().__init__(
            message=f"Failed to parse JSONL line {line_number}: {reason}",
            error_code=ErrorCode.JSONL_PARSE_ERROR,
            status_code=502,
            **kwargs,
        )
        self.line_number = line_number
        self.raw_line = raw_line

        self.details.update({"line_number": line_number, "line": raw_line[:100]})


# === UTILITY FUNCTIONS ===


def log_error(
    exception: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log an error consistently.

    Args:
        exception: Exception to log
        context: Additional context
        level: Logging level
    """
    context = context or {}

    log_data = {
        "exception_type": type(exception).__name__,
        "exception_message": str(exception),
        **context,
    }

    if isinstance(exception, AppException):
        message = f"{exception.error_code.value}: {exception.message}"
        log_data.update(
            {
                "error_code": exception.error_code.value,
                "severity": exception.severity.value,
                "is_retryable": exception.is_retryable,
            }
        )
    else:
        message = f"Unhandled exception: {type(exception).__name__}: {str(exception)}"
        log_data["traceback"] = traceback.format_exc()

    logger.log(level, message, extra=log_data)
