"""Screenshot persistence store.

Follows the constructor / session pattern of the other stores: pass a
*db_path* for a local SQLite file or a pre-built *session_factory*.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from uibridge.store.sql import METADATA, build_session_factory, screenshots

logger = logging.getLogger(__name__)


class ScreenshotStore:
    """Keep captured screenshots (as data URLs) in a local database.

    Args:
        db_path: Path of the SQLite file. Mutually exclusive with
            *session_factory*.
        session_factory: Pre-configured ``sessionmaker``.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        session_factory: sessionmaker | None = None,
    ) -> None:
        if session_factory is not None:
            self._session_factory = session_factory
        elif db_path is not None:
            self._session_factory = build_session_factory(db_path=db_path)
        else:
            raise ValueError("ScreenshotStore needs db_path or session_factory")

        with self._session_factory() as session:
            METADATA.create_all(session.connection())
            session.commit()

    def add(self, *, file_name: str, folder: str | None, data_url: str, size: int) -> int:
        """Insert one screenshot and return its row id."""
        with self._session_factory() as session:
            result = session.execute(
                sa.insert(screenshots).values(
                    file_name=file_name,
                    folder=folder,
                    data_url=data_url,
                    size=size,
                    created_at=datetime.now(timezone.utc),
                )
            )
            session.commit()
            row_id = result.inserted_primary_key[0]
        logger.info("Screenshot %s stored (id=%s)", file_name, row_id)
        return row_id

    def get(self, screenshot_id: int) -> dict[str, Any] | None:
        """Return one stored screenshot as a dict, or ``None``."""
        with self._session_factory() as session:
            row = session.execute(sa.select(screenshots).where(screenshots.c.id == screenshot_id)).first()
        return dict(row._mapping) if row else None

    def list(self, *, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        """Newest-first listing without the (large) ``data_url`` column."""
        stmt = (
            sa.select(
                screenshots.c.id,
                screenshots.c.file_name,
                screenshots.c.folder,
                screenshots.c.size,
                screenshots.c.created_at,
            )
            .order_by(screenshots.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        with self._session_factory() as session:
            rows = session.execute(stmt).all()
        return [dict(r._mapping) for r in rows]
