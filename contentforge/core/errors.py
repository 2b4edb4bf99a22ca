"""Error Hierarchy — typed, categorized exceptions for all ContentForge failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Category is the stable error kind exposed to callers (not_found, forbidden, ...)
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ContentForgeError base: services wrap it in Result,
      the HTTP shell re-raises it for the global handler (ADR: uniform error shape)
    - NotFound covers "exists but owned by someone else" — callers cannot tell
      the two apart (ADR: anti-enumeration)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Stable error kinds surfaced to callers."""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_INPUT = "invalid_input"
    QUOTA_EXCEEDED = "quota_exceeded"
    DEPENDENCY_FAILURE = "dependency_failure"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    project_id: str | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class ContentForgeError(Exception):
    """Base exception for all ContentForge errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def kind(self) -> str:
        return self.category.value

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "operation": self.context.operation,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ResourceNotFoundError(ContentForgeError):
    """Resource absent, or not owned by the caller."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ForbiddenError(ContentForgeError):
    """Caller lacks the privilege or subscription tier for the operation."""
    def __init__(self, message: str, code: str = "FORBIDDEN", context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.FORBIDDEN,
            ErrorSeverity.WARNING, context, 403,
        )


class InvalidInputError(ContentForgeError):
    """Constraint violation on caller input (bounds, required fields, unknown fields)."""
    def __init__(self, message: str, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_INPUT", ErrorCategory.INVALID_INPUT,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class QuotaExceededError(ContentForgeError):
    """Monthly export quota exhausted."""
    def __init__(self, used: int, limit: int, context: ErrorContext | None = None):
        super().__init__(
            f"Monthly export limit exceeded ({used}/{limit})",
            "QUOTA_EXCEEDED", ErrorCategory.QUOTA_EXCEEDED,
            ErrorSeverity.WARNING, context, 429,
        )
        self.used = used
        self.limit = limit


class ConflictError(ContentForgeError):
    """Concurrent modification lost a race."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DependencyFailureError(ContentForgeError):
    """An external collaborator (renderer, blob store) failed."""
    def __init__(
        self,
        message: str,
        code: str = "DEPENDENCY_FAILURE",
        dependency: str = "external",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.DEPENDENCY_FAILURE,
            ErrorSeverity.CRITICAL, context, 502,
        )
        self.dependency = dependency


class RenderFailedError(DependencyFailureError):
    """Renderer call failed, timed out, or returned no bytes."""
    def __init__(self, message: str = "Failed to generate image", context: ErrorContext | None = None):
        super().__init__(message, "RENDER_FAILED", "renderer", context)


class UploadFailedError(DependencyFailureError):
    """Blob store rejected or failed the upload."""
    def __init__(self, message: str = "Failed to upload exported image", context: ErrorContext | None = None):
        super().__init__(message, "UPLOAD_FAILED", "blob_store", context)


class DatabaseError(ContentForgeError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class InternalError(ContentForgeError):
    """Unexpected failure — message is always generic."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "An unexpected error occurred",
            "INTERNAL_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
