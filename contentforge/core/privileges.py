"""Privilege Markers — declare which core operations need an elevated caller.

Invariants:
    - Marker is metadata only: the core never authenticates or authorizes
    - required_privilege() reads the marker through functools.wraps chains

Design Decisions:
    - Attribute on the function over a registry: the marker travels with the
      method, so the HTTP shell and tests inspect the same object
"""

from typing import Callable, TypeVar

from contentforge.core.domain_types import Privilege

F = TypeVar("F", bound=Callable)

_MARKER = "__required_privilege__"


def requires_privilege(privilege: Privilege) -> Callable[[F], F]:
    """Mark an operation as requiring the given caller privilege."""
    def decorator(fn: F) -> F:
        setattr(fn, _MARKER, privilege)
        return fn
    return decorator


def required_privilege(fn: Callable) -> Privilege:
    """Privilege a callable requires; USER when unmarked."""
    while fn is not None:
        marker = getattr(fn, _MARKER, None)
        if marker is not None:
            return marker
        fn = getattr(fn, "__wrapped__", None)
    return Privilege.USER
