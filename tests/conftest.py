"""Root conftest — shared test configuration."""

import os

# Never reach real collaborators from tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RENDERER_URL", "")
os.environ.setdefault("STORAGE_URL", "")
os.environ.setdefault("LOG_FORMAT", "text")
