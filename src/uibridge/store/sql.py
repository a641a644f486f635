"""SQLAlchemy table definitions for the local screenshot store.

The store is a single SQLite file; ``METADATA.create_all`` is run by
``ScreenshotStore`` on construction.
"""

from __future__ import annotations

import logging
from pathlib import Path

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

TIMESTAMP = sa.DateTime(timezone=True)

METADATA = sa.MetaData()

# ---------------------------------------------------------------------------
# One row per auto-saved capture
# ---------------------------------------------------------------------------

screenshots = sa.Table(
    "screenshots",
    METADATA,
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("file_name", sa.Text(), nullable=False),
    sa.Column("folder", sa.Text(), nullable=True),
    sa.Column("data_url", sa.Text(), nullable=False),
    sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("created_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
)
sa.Index("idx_screenshots_file_name", screenshots.c.file_name)
sa.Index("idx_screenshots_created_at", screenshots.c.created_at)


def build_engine(*, db_path: str | Path, echo: bool = False) -> sa.Engine:
    """Create a SQLite engine, creating the parent directory if needed."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Opening screenshot store at %s", path)
    return sa.create_engine(f"sqlite:///{path}", echo=echo, future=True)


def build_session_factory(*, db_path: str | Path) -> sessionmaker:
    """Return a ``sessionmaker`` bound to the screenshot store engine."""
    engine = build_engine(db_path=db_path)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
