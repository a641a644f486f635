"""Auto-save targets for captured screenshots.

``ScreenshotSaver.save`` writes the image to every target enabled by the
save config:

* ``download`` — decode the data URL into ``<download_dir>/<folder>/<fileName>``;
* ``serverEndpoint`` — POST ``{fileName, folder, dataUrl, timestamp}`` as JSON;
* ``persistLocally`` — insert into the SQLite ``ScreenshotStore``.

Any target failure surfaces as ``PersistenceError``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError

from uibridge.capture.data_url import approximate_size, decode_data_url
from uibridge.exceptions import PersistenceError
from uibridge.models.execution import utc_now_iso
from uibridge.store.screenshot_store import ScreenshotStore

logger = logging.getLogger(__name__)


class ScreenshotSaver:
    """Persist screenshots to the targets named in a save config.

    Args:
        download_dir: Root directory for ``download`` saves.
        store_path: SQLite file for ``persistLocally`` saves (opened lazily).
        timeout_sec: HTTP timeout for ``serverEndpoint`` uploads.
        transport: Optional httpx transport (tests inject ``MockTransport``).
    """

    def __init__(
        self,
        download_dir: str | Path,
        *,
        store_path: str | Path | None = None,
        timeout_sec: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.download_dir = Path(download_dir)
        self._store_path = store_path
        self._store: ScreenshotStore | None = None
        self._timeout_sec = timeout_sec
        self._transport = transport

    @property
    def store(self) -> ScreenshotStore:
        if self._store is None:
            if self._store_path is None:
                raise PersistenceError("persistLocally requested but no store path is configured")
            self._store = ScreenshotStore(self._store_path)
        return self._store

    async def save(self, data_url: str, file_name: str, save_config: dict[str, Any]) -> list[str]:
        """Write the screenshot to every enabled target.

        Returns:
            Locations written, in target order.

        Raises:
            PersistenceError: If any enabled target fails.
        """
        written: list[str] = []
        try:
            if save_config.get("download", True):
                written.append(await asyncio.to_thread(self._write_file, data_url, file_name, save_config))
            if save_config.get("serverEndpoint"):
                written.append(await self._upload(data_url, file_name, save_config))
            if save_config.get("persistLocally"):
                row_id = await asyncio.to_thread(
                    self.store.add,
                    file_name=file_name,
                    folder=save_config.get("folder"),
                    data_url=data_url,
                    size=approximate_size(data_url),
                )
                written.append(f"store:{row_id}")
        except PersistenceError:
            raise
        except (OSError, ValueError, httpx.HTTPError, SQLAlchemyError) as exc:
            logger.warning("Failed to save screenshot %s: %s", file_name, exc)
            raise PersistenceError(f"Screenshot save failed: {exc}") from exc
        return written

    def _write_file(self, data_url: str, file_name: str, save_config: dict[str, Any]) -> str:
        _, payload = decode_data_url(data_url)
        folder = save_config.get("folder") or ""
        target_dir = self.download_dir / folder if folder else self.download_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / Path(file_name).name
        path.write_bytes(payload)
        logger.info("Screenshot written to %s", path)
        return str(path)

    async def _upload(self, data_url: str, file_name: str, save_config: dict[str, Any]) -> str:
        endpoint = save_config["serverEndpoint"]
        body = {
            "fileName": file_name,
            "folder": save_config.get("folder"),
            "dataUrl": data_url,
            "timestamp": utc_now_iso(),
        }
        async with httpx.AsyncClient(timeout=self._timeout_sec, transport=self._transport) as client:
            resp = await client.post(endpoint, json=body)
            resp.raise_for_status()
        logger.info("Screenshot uploaded to %s: %s", endpoint, file_name)
        return endpoint
