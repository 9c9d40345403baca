"""Runtime settings read from the environment."""

import logging
import os
from typing import Optional

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg://postgres:postgres@db:5432/app")


def resolve_log_level(name: Optional[str]) -> str:
    """Upper-cased level name, or INFO when ``name`` is not a logging level."""
    level = (name or "INFO").strip().upper()
    # getLevelName maps known names to ints and echoes unknown ones back as "Level X".
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


LOG_LEVEL = resolve_log_level(os.getenv("LOG_LEVEL"))

# Comma-separated list; "*" allows any origin.
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Create tables at startup instead of running Alembic (demo / local use).
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "false").strip().lower() in ("1", "true", "yes")

CONTENT_PREVIEW_CHARS = 200
