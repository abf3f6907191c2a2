"""
CivicBridge Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a message, an optional context dict, an HTTP
       status code and a machine-readable error code. A single global handler
       (registered in main.py) turns them into structured JSON responses.
Who:   Raised by services, the auth dependency and middleware.

Exception Hierarchy:
    CivicBridgeError (base)
    ├── ValidationError             → 400 Bad Request
    │   ├── InvalidQueryError       → 400 (malformed search parameters)
    │   ├── MissingAnswersError     → 400 (application lacks an answer)
    │   ├── InvalidStatusError      → 400 (unknown project status)
    │   ├── InvalidTransitionError  → 400 (status change not allowed)
    │   └── UnsupportedMediaTypeError → 400 (attachment type not allowed)
    ├── UnauthorizedError           → 401 (not permitted for this user)
    ├── ForbiddenError              → 403 (role may not perform the action)
    ├── NotFoundError               → 404
    ├── RateLimitExceededError      → 429
    ├── FileStorageError            → 500
    └── DatabaseError               → 500
"""

from typing import Any, Dict, Iterable, Optional


class CivicBridgeError(Exception):
    """
    Base exception for all CivicBridge application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional info returned as `details` (never secrets)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CivicBridgeError):
    """
    Raised when client input fails validation.

    When:    Malformed form fields, invalid date ranges, integrity violations.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidQueryError(ValidationError):
    """Raised when search parameters cannot be turned into a filter."""

    error_code = "invalid_query"

    def __init__(
        self,
        message: str = "invalid query",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field=field, context=context)


class MissingAnswersError(ValidationError):
    """Raised when an application does not answer every project question."""

    error_code = "missing_answers"

    def __init__(self, missing: Iterable[str]):
        missing = list(missing)
        super().__init__(
            message="Answers are missing for at least one question.",
            field="answers",
            context={"missing": missing},
        )
        self.missing = missing


class InvalidStatusError(ValidationError):
    """Raised for a project status outside of open / closed / completed."""

    error_code = "invalid_status"

    def __init__(self, status: str, allowed: Iterable[str]):
        allowed = list(allowed)
        super().__init__(
            message=f"Unrecognised project status '{status}'",
            field="status",
            context={"status": status, "allowed": allowed},
        )


class InvalidTransitionError(ValidationError):
    """Raised when the lifecycle does not allow moving between two statuses."""

    error_code = "invalid_transition"

    def __init__(self, current: str, target: str):
        if target == "completed":
            message = "Project cannot be completed if it is not closed"
        else:
            message = f"Project cannot move from '{current}' to '{target}'"
        super().__init__(
            message=message,
            field="status",
            context={"current": current, "target": target},
        )
        self.current = current
        self.target = target


class UnsupportedMediaTypeError(ValidationError):
    """Raised when an uploaded attachment has a content type outside the allow-list."""

    error_code = "unsupported_media_type"

    def __init__(self, content_type: str, allowed: Iterable[str]):
        allowed = sorted(allowed)
        super().__init__(
            message=f"Unaccepted mimetype: {content_type}",
            field="file",
            context={"content_type": content_type, "allowed": allowed},
        )


class UnauthorizedError(CivicBridgeError):
    """
    Raised when the caller is not allowed to act on the resource.

    When:    Non-creator edits/deletes a project, politician applies or
             bookmarks, or no authenticated user was forwarded.
    HTTP:    401
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(CivicBridgeError):
    """Raised when the caller's role can never perform the action (HTTP 403)."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Forbidden",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(CivicBridgeError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records; services convert that into
    this exception so routes stay free of status-code logic.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(CivicBridgeError):
    """Raised when a client exceeds the per-IP request rate limit (HTTP 429)."""

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class FileStorageError(CivicBridgeError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(CivicBridgeError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the context is
    logged server-side only.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
