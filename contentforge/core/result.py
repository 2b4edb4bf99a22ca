"""Result — success/failure value returned by every core service operation.

Invariants:
    - A Result carries exactly one of value or error
    - Service methods decorated with returns_result never raise
    - Unexpected exceptions become InternalError; raw text is logged, never returned

Design Decisions:
    - Result over exceptions at the service boundary: callers (HTTP shell, scheduler,
      tests) branch on typed failures without try/except around every call
    - unwrap() re-raises the carried ContentForgeError so the HTTP shell keeps
      a single global error handler (ADR: uniform error shape)
    - Decorator rolls back self.db on failure: a failed operation never leaves
      pending writes on a shared session
"""

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from contentforge.core.errors import (
    ContentForgeError,
    DatabaseError,
    ErrorContext,
    InternalError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a core operation."""
    value: T | None = None
    error: ContentForgeError | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ContentForgeError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> str | None:
        """Stable error kind (ErrorCategory value), None on success."""
        return self.error.kind if self.error else None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def returns_result(
    operation: str,
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Result]]]:
    """Wrap an async service method so it always returns a Result.

    The wrapped method returns a plain value (wrapped into success) or a Result
    (passed through), and signals failure by raising ContentForgeError.
    """

    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Result]]:
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs) -> Result:
            try:
                out = await fn(self, *args, **kwargs)
            except ContentForgeError as e:
                await _rollback(self)
                if e.context.operation is None:
                    e.context.operation = operation
                return Result.failure(e)
            except IntegrityError as e:
                await _rollback(self)
                logger.warning(
                    f"Integrity error during {operation}: {e}",
                    extra={"error_code": "INVALID_INPUT"},
                )
                return Result.failure(InvalidInputError(
                    "Integrity constraint violated",
                    context=ErrorContext(operation=operation),
                ))
            except SQLAlchemyError as e:
                await _rollback(self)
                logger.error(
                    f"Database error during {operation}: {e}",
                    extra={"error_code": "DATABASE_ERROR"},
                )
                return Result.failure(DatabaseError(
                    "Database operation failed", operation,
                    context=ErrorContext(operation=operation),
                ))
            except Exception as e:
                await _rollback(self)
                logger.error(
                    f"Unexpected error during {operation}: {e}",
                    exc_info=True,
                    extra={"error_code": "INTERNAL_ERROR"},
                )
                return Result.failure(InternalError(ErrorContext(operation=operation)))
            if isinstance(out, Result):
                return out
            return Result.success(out)

        return wrapper

    return decorator


async def _rollback(service: object) -> None:
    db = getattr(service, "db", None)
    if db is None:
        return
    try:
        await db.rollback()
    except SQLAlchemyError as e:
        logger.error(f"Rollback failed: {e}")
