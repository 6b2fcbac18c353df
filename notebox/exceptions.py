"""
Notebox Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception carries a human-readable message and an optional
       context dict. Global exception handlers (registered in main.py) map
       them to HTTP status codes and a structured JSON body.
Who:   Raised by services, the object store and the auth dependency.

Exception Hierarchy:
    NoteboxError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── DatabaseError            → 500 Internal Server Error
    └── ObjectStoreError         → 500 Internal Server Error
        └── ObjectNotFoundError  → 500 (object absent before a delete)
"""

from typing import Any, Dict, Optional


class NoteboxError(Exception):
    """
    Base exception for all Notebox application errors.

    Attributes:
        message:  Error description returned in the API response
        context:  Additional debug info (logged, returned only for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteboxError):
    """
    Raised when client input fails validation that pydantic cannot express.

    When:    Empty upload filename, unparsable request body.
    HTTP:    400 Bad Request
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


class AuthenticationError(NoteboxError):
    """Raised when Telegram init data is required but missing or invalid (401)."""

    def __init__(
        self,
        message: str = "Authentication failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(NoteboxError):
    """Raised when a local retrieval URL has a bad signature or has expired (403)."""

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

class NotFoundError(NoteboxError):
    """
    Raised when a requested note or attachment does not exist.

    SQLAlchemy returns None (or a zero rowcount) for missing rows; the
    service layer converts that into this exception.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(NoteboxError):
    """
    Raised when a write would collide with existing state.

    When:    Uploading a file whose name and extension already exist on the
             note (both would map to the same object key).
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The request conflicts with existing data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PayloadTooLargeError(NoteboxError):
    """Raised when an upload exceeds MAX_UPLOAD_SIZE (413)."""

    def __init__(self, max_bytes: int, context: Optional[Dict[str, Any]] = None):
        max_mb = max_bytes / (1024 * 1024)
        ctx = context or {}
        ctx["max_bytes"] = max_bytes
        super().__init__(
            message=f"File exceeds the maximum upload size of {max_mb:.0f}MB.",
            context=ctx,
        )
        self.max_bytes = max_bytes


class DatabaseError(NoteboxError):
    """
    Raised when a database operation fails unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    The driver's error text goes into `context` (logged), not into `message`.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ObjectStoreError(NoteboxError):
    """
    Raised when an object store operation fails.

    When:    Bucket creation or upload failed, URL could not be signed, or an
             object is still present after a delete.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Object storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ObjectNotFoundError(ObjectStoreError):
    """Raised by `delete()` when the object did not exist in the first place."""

    def __init__(self, bucket: str, key: str):
        super().__init__(
            message=f"Object '{key}' does not exist in bucket '{bucket}'",
            context={"bucket": bucket, "key": key},
        )
        self.bucket = bucket
        self.key = key
