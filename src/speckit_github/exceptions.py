"""
Error taxonomy for the Speckit GitHub MCP Server.

Every failure that crosses the tool boundary is a ClassifiedError tagged with
one kind from a closed enumeration and marked retryable or not. Classification
of upstream HTTP failures is a pure function of status and message so it can
be tested without any network mocking.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

import requests
from github import GithubException
from loguru import logger


class ErrorKind(Enum):
    """Closed set of error kinds surfaced to MCP clients."""
    AUTH_MISSING_CREDENTIALS = "AUTH_MISSING_CREDENTIALS"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_FAILED = "AUTH_FAILED"
    GITHUB_RATE_LIMIT = "GITHUB_RATE_LIMIT"
    GITHUB_FORBIDDEN = "GITHUB_FORBIDDEN"
    GITHUB_NOT_FOUND = "GITHUB_NOT_FOUND"
    GITHUB_VALIDATION = "GITHUB_VALIDATION"
    GITHUB_SERVER_ERROR = "GITHUB_SERVER_ERROR"
    TASK_VALIDATION = "TASK_VALIDATION"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS


RETRYABLE_KINDS = frozenset({ErrorKind.GITHUB_RATE_LIMIT, ErrorKind.GITHUB_SERVER_ERROR})

# Human readable messages for upstream HTTP failures
_STATUS_MESSAGES = {
    ErrorKind.AUTH_INVALID_TOKEN: "Invalid GitHub authentication token",
    ErrorKind.GITHUB_RATE_LIMIT: "GitHub API rate limit exceeded",
    ErrorKind.GITHUB_FORBIDDEN: "Access forbidden to GitHub resource",
    ErrorKind.GITHUB_NOT_FOUND: "GitHub resource not found",
    ErrorKind.GITHUB_VALIDATION: "GitHub API validation failed",
    ErrorKind.GITHUB_SERVER_ERROR: "GitHub server error",
    ErrorKind.UNKNOWN_ERROR: "Unexpected GitHub API error",
}


class ClassifiedError(Exception):
    """Base exception for all Speckit GitHub errors."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        logger.error(f"{kind.value}: {message}")
        if details:
            logger.debug(f"Error details: {details}")
        if cause:
            logger.debug(f"Caused by: {cause!r}")

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape returned through the tool boundary. code mirrors kind."""
        return {
            "kind": self.kind.value,
            "code": self.kind.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "retryable": self.retryable,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value}, message={self.message!r})"


class AuthError(ClassifiedError):
    """Raised when credentials are missing, invalid or rejected."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.AUTH_FAILED,
        status: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if status is not None:
            details["status"] = status
        cause = kwargs.pop("cause", None)
        super().__init__(kind, message, details=details, cause=cause)


class ConfigurationError(ClassifiedError):
    """Raised when there are configuration issues at startup."""

    def __init__(self, message: str, missing_vars: Optional[list] = None, **kwargs):
        details = kwargs.pop("details", {})
        if missing_vars:
            details["missing_environment_variables"] = missing_vars
        cause = kwargs.pop("cause", None)
        super().__init__(ErrorKind.SYSTEM_ERROR, message, details=details, cause=cause)


def classify_status(status: Optional[int], message: str = "") -> ErrorKind:
    """
    Map an upstream HTTP status and message to an error kind.

    Args:
        status: HTTP status code, or None when no response was received
        message: Upstream error message

    Returns:
        The error kind for this failure
    """
    if status is None:
        return ErrorKind.UNKNOWN_ERROR
    if status == 401:
        return ErrorKind.AUTH_INVALID_TOKEN
    if status == 403:
        if "rate limit" in (message or "").lower():
            return ErrorKind.GITHUB_RATE_LIMIT
        return ErrorKind.GITHUB_FORBIDDEN
    if status == 429:
        return ErrorKind.GITHUB_RATE_LIMIT
    if status == 404:
        return ErrorKind.GITHUB_NOT_FOUND
    if status == 422:
        return ErrorKind.GITHUB_VALIDATION
    if status >= 500:
        return ErrorKind.GITHUB_SERVER_ERROR
    return ErrorKind.UNKNOWN_ERROR


def from_status(
    status: Optional[int],
    message: str = "",
    details: Optional[Dict[str, Any]] = None,
    cause: Optional[Exception] = None
) -> ClassifiedError:
    """Build a ClassifiedError for an upstream HTTP failure."""
    kind = classify_status(status, message)
    error_details = {"status": status, "originalMessage": message}
    error_details.update(details or {})
    return ClassifiedError(kind, _STATUS_MESSAGES[kind], details=error_details, cause=cause)


def _github_message(exc: GithubException) -> str:
    data = exc.data
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    if isinstance(data, str) and data:
        return data
    return getattr(exc, "message", None) or str(exc)


def from_github_exception(
    exc: GithubException,
    context: Optional[Dict[str, Any]] = None
) -> ClassifiedError:
    """
    Classify a PyGithub exception.

    Args:
        exc: Exception raised by PyGithub
        context: Operation context merged into the error details

    Returns:
        Classified error carrying the upstream status
    """
    message = _github_message(exc)
    details = dict(context or {})
    headers = {k.lower(): v for k, v in (exc.headers or {}).items()}

    kind = classify_status(exc.status, message)
    if kind is ErrorKind.GITHUB_RATE_LIMIT and headers.get("x-ratelimit-reset"):
        details["resetTime"] = headers["x-ratelimit-reset"]
    if kind is ErrorKind.GITHUB_VALIDATION and isinstance(exc.data, dict) and exc.data.get("errors"):
        details["errors"] = exc.data["errors"]

    return from_status(exc.status, message, details=details, cause=exc)


def kind_of_exception(exc: BaseException) -> ErrorKind:
    """Error kind an exception would be classified as, without building the error."""
    if isinstance(exc, ClassifiedError):
        return exc.kind
    if isinstance(exc, GithubException):
        return classify_status(exc.status, _github_message(exc))
    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return ErrorKind.GITHUB_SERVER_ERROR
    return ErrorKind.UNKNOWN_ERROR


def classify_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None
) -> ClassifiedError:
    """
    Classify any exception raised by a component.

    ClassifiedErrors pass through untouched; GitHub and network failures are
    mapped through the taxonomy; anything else becomes UNKNOWN_ERROR.
    """
    if isinstance(exc, ClassifiedError):
        return exc
    if isinstance(exc, GithubException):
        return from_github_exception(exc, context)
    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        details = {"status": None, "network": True, "originalMessage": str(exc)}
        details.update(context or {})
        return ClassifiedError(
            ErrorKind.GITHUB_SERVER_ERROR,
            f"Network error talking to GitHub: {exc.__class__.__name__}",
            details=details,
            cause=exc
        )

    details = {"originalError": exc.__class__.__name__}
    details.update(context or {})
    return ClassifiedError(
        ErrorKind.UNKNOWN_ERROR,
        str(exc) or "Unknown error occurred",
        details=details,
        cause=exc
    )


def retry_after_seconds(exc: GithubException, default: float) -> float:
    """
    Work out how long GitHub asked us to wait before retrying.

    Uses Retry-After when present, otherwise the distance to
    X-RateLimit-Reset, otherwise the supplied default.
    """
    headers = {k.lower(): v for k, v in (exc.headers or {}).items()}
    try:
        if headers.get("retry-after") is not None:
            return max(0.0, float(headers["retry-after"]))
        if headers.get("x-ratelimit-reset") is not None:
            return max(0.0, float(headers["x-ratelimit-reset"]) - time.time())
    except (TypeError, ValueError):
        logger.warning(f"Unparseable rate limit headers: {headers}")
    return default
