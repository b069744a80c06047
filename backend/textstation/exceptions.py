"""
TextStation Backend — Custom Exception Hierarchy
=================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and routes; caught by global handlers.

Exception Hierarchy:
    TextStationError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── AnalysisError            → 500 Internal Server Error (message returned)
    ├── ExportError              → 500 Internal Server Error
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error (generic message)
    └── DriveServiceError        → 502 Bad Gateway

Note that a rule store read failure is NOT an exception at the HTTP boundary:
the rule repository recovers it into an explicit fallback result
(see services/rule_repository.py).
"""

from typing import Any, Dict, Optional


class TextStationError(Exception):
    """
    Base exception for all TextStation application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client
                  unless the handler explicitly opts in)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TextStationError):
    """
    Raised when client input fails validation.

    When:    Missing required body fields (text, keyword, id, title/content),
             malformed identifiers.
    HTTP:    400 Bad Request

    Why 400 (not 422):
        Request bodies are parsed leniently so the API can answer with the
        same 400 + message contract the UI already handles. FastAPI's own
        422 still applies to structurally invalid JSON.
    """

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


class PermissionDeniedError(TextStationError):
    """
    Raised when an operation is not allowed on an existing resource.

    When:    Deleting a shared snippet.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "This operation is not permitted",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(TextStationError):
    """
    Raised when a requested resource does not exist.

    When:    Snippet or backup lookup with an unknown ID, or a snippet whose
             shared flag does not match the request.
    HTTP:    404 Not Found
    """

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


class AnalysisError(TextStationError):
    """
    Raised when text analysis aborts.

    When:    A style rule pattern cannot be compiled, or any unexpected failure
             while evaluating rules against the text.
    HTTP:    500 Internal Server Error

    No partial result is ever returned alongside this error. The message
    names the failing rule so that whoever maintains the rule store can
    fix it, so the handler returns it verbatim.
    """

    def __init__(
        self,
        message: str = "Text analysis failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExportError(TextStationError):
    """
    Raised when PDF rendering fails.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "PDF generation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(TextStationError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, export directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(TextStationError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DriveServiceError(TextStationError):
    """
    Raised when a Google Drive call required by the request fails.

    When:    Drive search query fails or credentials are not configured.
    HTTP:    502 Bad Gateway (the upstream service failed, not us)

    Drive *backup* of an exported PDF never raises this; it is optional and
    reported through DriveUploadResult instead.
    """

    def __init__(
        self,
        message: str = "Google Drive is currently unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(TextStationError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, answered by RateLimitMiddleware itself
    """

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
