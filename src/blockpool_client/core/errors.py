"""Typed error taxonomy for the RPC client.

Every failure surfaced by the client is a ``BlockpoolError`` subclass, so
callers branch on ``kind`` or ``retryable`` instead of parsing message text.
Technical detail (for logs) and the end-user message (for display) are kept
separate.
"""

import logging
import traceback
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    """Coarse error category used for retry decisions."""

    CONNECTION = "connection"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    SERVER_UNAVAILABLE = "server_unavailable"
    REQUEST = "request"
    CANCELLED = "cancelled"


class ErrorCode(StrEnum):
    """Stable machine-readable error codes."""

    CONNECTION_FAILED = "CONNECTION_FAILED"
    SESSION_UNAUTHORIZED = "SESSION_UNAUTHORIZED"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"
    REQUEST_FAILED = "REQUEST_FAILED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    UNEXPECTED = "UNEXPECTED"


class BlockpoolError(Exception):
    """
    Base class for all client errors.

    Parameters
    ----------
    message : str
        Technical message, intended for logs
    context : dict[str, Any] | None
        Extra diagnostic context (operation, address, network, ...)
    suggestions : list[str] | None
        Short hints appended to the display message

    """

    kind: ErrorKind = ErrorKind.REQUEST
    code: ErrorCode = ErrorCode.UNEXPECTED
    retryable: bool = False
    default_user_message = "Something went wrong while talking to the Sei data service."

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = {**(context or {}), "timestamp": datetime.now(UTC).isoformat()}
        self.suggestions = suggestions or []

    @property
    def user_message(self) -> str:
        """Concise message safe to show to end users."""
        return self.default_user_message

    def display_message(self) -> str:
        """
        Get the user-facing message with suggestions.

        Returns
        -------
        str
            Message for display

        """
        if not self.suggestions:
            return self.user_message
        hints = "\n".join(f"- {s}" for s in self.suggestions)
        return f"{self.user_message}\n\nSuggestions:\n{hints}"

    def technical_details(self) -> dict[str, Any]:
        """
        Get technical details for debugging.

        Returns
        -------
        dict[str, Any]
            Message, code, kind, context and formatted traceback

        """
        return {
            "error": self.message,
            "kind": self.kind.value,
            "code": self.code.value,
            "retryable": self.retryable,
            "context": self.context,
            "traceback": "".join(traceback.format_exception(self)) if self.__traceback__ else None,
        }


class RpcConnectionError(BlockpoolError):
    """The session could not be established or was lost."""

    kind = ErrorKind.CONNECTION
    code = ErrorCode.CONNECTION_FAILED
    retryable = True
    default_user_message = "Unable to reach the Sei data service. Live data is temporarily unavailable."

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        *,
        unauthorized: bool = False,
    ) -> None:
        super().__init__(message, context, ["Check your network connection", "Try again in a moment"])
        self.unauthorized = unauthorized
        if unauthorized:
            self.code = ErrorCode.SESSION_UNAUTHORIZED


class RpcTimeoutError(BlockpoolError):
    """A request attempt exceeded its deadline."""

    kind = ErrorKind.TIMEOUT
    code = ErrorCode.TIMEOUT
    retryable = True
    default_user_message = "The Sei data service took too long to respond."

    def __init__(self, message: str = "Request timed out", context: dict[str, Any] | None = None) -> None:
        super().__init__(message, context, ["Wait a moment and try again", "Try a simpler query first"])


class RateLimitError(BlockpoolError):
    """
    Admission denied locally or by the remote side.

    Parameters
    ----------
    reset_time : datetime | None
        When the next request slot frees up, if known

    """

    kind = ErrorKind.RATE_LIMIT
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    retryable = True

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        context: dict[str, Any] | None = None,
        *,
        reset_time: datetime | None = None,
    ) -> None:
        suggestions = ["Wait a moment before making another request"]
        if reset_time is not None:
            suggestions.insert(0, f"Try again after {reset_time.astimezone().strftime('%H:%M:%S')}")
        super().__init__(message, context, suggestions)
        self.reset_time = reset_time

    @property
    def retry_after(self) -> float | None:
        """Seconds until ``reset_time``, or None when unknown."""
        if self.reset_time is None:
            return None
        return max(0.0, (self.reset_time - datetime.now(UTC)).total_seconds())

    @property
    def user_message(self) -> str:
        return "You are making requests too quickly. Please wait before trying again."


class ServerUnavailableError(BlockpoolError):
    """The remote side returned a 5xx or a malformed payload."""

    kind = ErrorKind.SERVER_UNAVAILABLE
    code = ErrorCode.SERVER_UNAVAILABLE
    retryable = True
    default_user_message = "The Sei data service is currently unavailable. This usually resolves within minutes."

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, context)
        self.status_code = status_code


class RpcRequestError(BlockpoolError):
    """
    A well-formed error returned by the remote side.

    Parameters
    ----------
    code_value : int | None
        Remote RPC error code, or the HTTP status for plain 4xx replies
    data : Any
        Remote-provided error data

    """

    kind = ErrorKind.REQUEST
    code = ErrorCode.REQUEST_FAILED
    retryable = False

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        *,
        code_value: int | None = None,
        data: Any = None,
    ) -> None:
        super().__init__(message, context)
        self.code_value = code_value
        self.data = data

    @property
    def user_message(self) -> str:
        return f"The request could not be completed: {self.message}"


class RequestCancelledError(BlockpoolError):
    """The caller cancelled an in-flight request."""

    kind = ErrorKind.CANCELLED
    code = ErrorCode.REQUEST_CANCELLED
    retryable = False
    default_user_message = "The request was cancelled."

    def __init__(self, message: str = "Request cancelled", context: dict[str, Any] | None = None) -> None:
        super().__init__(message, context)


class UnexpectedError(BlockpoolError):
    """Fallback for failures outside the taxonomy."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, context, ["This is usually temporary, please try again"])

    @property
    def user_message(self) -> str:
        operation = self.context.get("operation", "processing the request")
        return f"An unexpected error occurred while {operation}."


def wrap_error(error: BaseException, operation: str, **context: Any) -> BlockpoolError:
    """
    Convert any exception into the client error taxonomy.

    Classification is by exception type, never by message text.

    Parameters
    ----------
    error : BaseException
        Error to convert
    operation : str
        Human-readable operation name (e.g. 'wallet balance lookup')
    **context : Any
        Extra diagnostic context

    Returns
    -------
    BlockpoolError
        ``error`` itself when it is already a ``BlockpoolError``

    """
    if isinstance(error, BlockpoolError):
        error.context.setdefault("operation", operation)
        return error

    ctx = {**context, "operation": operation}
    if isinstance(error, TimeoutError):
        wrapped: BlockpoolError = RpcTimeoutError(str(error) or "Request timed out", ctx)
    elif isinstance(error, OSError):
        wrapped = RpcConnectionError(str(error) or type(error).__name__, ctx)
    else:
        wrapped = UnexpectedError(str(error) or type(error).__name__, ctx)
    wrapped.__cause__ = error
    return wrapped


def log_and_format(error: BaseException, operation: str, **context: Any) -> str:
    """
    Log technical details and return the user-facing message.

    Parameters
    ----------
    error : BaseException
        Error to report
    operation : str
        Operation that failed

    Returns
    -------
    str
        Display message for end users

    """
    wrapped = wrap_error(error, operation, **context)
    logger.error("%s failed: %s", operation, wrapped.technical_details())
    return wrapped.display_message()
