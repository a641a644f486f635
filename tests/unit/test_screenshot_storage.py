"""Unit tests for screenshot auto-save targets and the SQLite store."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from fakes import PNG_1PX, data_url_for
from uibridge.capture.storage import ScreenshotSaver
from uibridge.exceptions import PersistenceError
from uibridge.store.screenshot_store import ScreenshotStore

pytestmark = pytest.mark.anyio

DATA_URL = data_url_for()


class TestScreenshotSaver:
    async def test_download_target(self, tmp_path: Path) -> None:
        saver = ScreenshotSaver(tmp_path)
        written = await saver.save(DATA_URL, "home.png", {"folder": "run-1"})
        assert written == [str(tmp_path / "run-1" / "home.png")]
        assert (tmp_path / "run-1" / "home.png").read_bytes() == PNG_1PX

    async def test_download_strips_directories_from_name(self, tmp_path: Path) -> None:
        saver = ScreenshotSaver(tmp_path)
        await saver.save(DATA_URL, "../../escape.png", {})
        assert (tmp_path / "escape.png").is_file()

    async def test_upload_target(self, tmp_path: Path) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"ok": True})

        saver = ScreenshotSaver(tmp_path, transport=httpx.MockTransport(handler))
        written = await saver.save(
            DATA_URL, "home.png", {"download": False, "serverEndpoint": "https://upload.test/shots", "folder": "f"}
        )
        assert written == ["https://upload.test/shots"]
        body = json.loads(seen[0].content)
        assert body["fileName"] == "home.png"
        assert body["folder"] == "f"
        assert body["dataUrl"] == DATA_URL
        assert body["timestamp"]

    async def test_upload_failure(self, tmp_path: Path) -> None:
        saver = ScreenshotSaver(tmp_path, transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        with pytest.raises(PersistenceError, match="Screenshot save failed"):
            await saver.save(DATA_URL, "home.png", {"download": False, "serverEndpoint": "https://upload.test/"})

    async def test_local_store_target(self, tmp_path: Path) -> None:
        saver = ScreenshotSaver(tmp_path, store_path=tmp_path / "shots.db")
        written = await saver.save(DATA_URL, "home.png", {"download": False, "persistLocally": True, "folder": "x"})
        assert written == ["store:1"]
        row = saver.store.get(1)
        assert row["file_name"] == "home.png"
        assert row["data_url"] == DATA_URL

    async def test_local_store_without_path(self, tmp_path: Path) -> None:
        saver = ScreenshotSaver(tmp_path)
        with pytest.raises(PersistenceError):
            await saver.save(DATA_URL, "home.png", {"download": False, "persistLocally": True})

    async def test_bad_data_url(self, tmp_path: Path) -> None:
        with pytest.raises(PersistenceError):
            await ScreenshotSaver(tmp_path).save("not-a-data-url", "x.png", {})

    async def test_unwritable_download_dir(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        with pytest.raises(PersistenceError):
            await ScreenshotSaver(blocker).save(DATA_URL, "x.png", {"folder": "sub"})

    async def test_all_targets(self, tmp_path: Path) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200))
        saver = ScreenshotSaver(tmp_path / "dl", store_path=tmp_path / "s.db", transport=transport)
        written = await saver.save(
            DATA_URL, "a.png", {"serverEndpoint": "https://upload.test/", "persistLocally": True}
        )
        assert len(written) == 3


class TestScreenshotStore:
    def test_add_get_list(self, tmp_path: Path) -> None:
        store = ScreenshotStore(tmp_path / "nested" / "shots.db")
        first = store.add(file_name="a.png", folder=None, data_url=DATA_URL, size=10)
        second = store.add(file_name="b.png", folder="run", data_url=DATA_URL, size=20)
        assert store.get(first)["file_name"] == "a.png"
        listing = store.list()
        assert [r["id"] for r in listing] == [second, first]
        assert "data_url" not in listing[0]
        assert store.list(limit=1, offset=1)[0]["id"] == first

    def test_missing_row(self, tmp_path: Path) -> None:
        assert ScreenshotStore(tmp_path / "s.db").get(99) is None

    def test_requires_path_or_factory(self) -> None:
        with pytest.raises(ValueError):
            ScreenshotStore()

    def test_reopen_keeps_rows(self, tmp_path: Path) -> None:
        ScreenshotStore(tmp_path / "s.db").add(file_name="a.png", folder=None, data_url=DATA_URL, size=1)
        assert len(ScreenshotStore(tmp_path / "s.db").list()) == 1
