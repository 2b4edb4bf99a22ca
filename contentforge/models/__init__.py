"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - User is the ownership root; projects and history are scoped by user_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
"""

from contentforge.models.user import User  # noqa: F401
from contentforge.models.template import Template  # noqa: F401
from contentforge.models.project import Project  # noqa: F401
from contentforge.models.history_entry import HistoryEntry  # noqa: F401
