"""UIBridge test configuration: shared fixtures for unit and integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeDocument, FakeRasterizer, FakeSource, el
from uibridge.dom.base import Rect


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from uibridge.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch):
    """Settings with every on-disk path under *tmp_path* and remote control off."""
    monkeypatch.delenv("UIBRIDGE_ENV", raising=False)
    from uibridge.settings.config import Settings

    return Settings(
        project_root=tmp_path,
        remote={"enabled": False},
        capture={"timeout_sec": 2},
        screenshot={"download_dir": str(tmp_path / "downloads"), "store_path": str(tmp_path / "shots.db")},
        api={"screenshots_dir": str(tmp_path / "controller-shots")},
    )


# ---------------------------------------------------------------------------
# Page fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def document() -> FakeDocument:
    """A small login form."""
    return FakeDocument(
        el(
            "form",
            "",
            el("label", "Email", for_="email", rect=Rect(20, 20, 100, 20)),
            el("input", id="email", type="email", placeholder="you@example.com", rect=Rect(20, 50, 200, 30)),
            el(
                "button",
                "Sign in",
                id="submit",
                class_="btn primary",
                data_testid="login-btn",
                rect=Rect(20, 100, 120, 40),
            ),
            el("a", "Forgot your password?", href="/reset", aria_label="Reset password", rect=Rect(20, 160, 200, 20)),
            id="login",
            rect=Rect(0, 0, 600, 400),
        ),
    )


@pytest.fixture()
def rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture()
async def bridge(anyio_backend, document, settings, rasterizer, tmp_path):
    """Initialised bridge over the fake login page with an in-memory rasterizer."""
    from uibridge.capture.loader import CapabilityLoader
    from uibridge.capture.storage import ScreenshotSaver
    from uibridge.core.bridge import UIBridge
    from uibridge.dom.events import DomEventEmitter, RecordingEmitter
    from uibridge.monitoring.event_bus import EventBus, InMemorySink

    bus = EventBus(source="test")
    sink = InMemorySink()
    bus.add_sink(sink)
    b = UIBridge(
        document,
        settings=settings,
        emitter=RecordingEmitter(DomEventEmitter()),
        capture_loader=CapabilityLoader([FakeSource("fake", rasterizer)]),
        saver=ScreenshotSaver(tmp_path / "downloads", store_path=tmp_path / "shots.db"),
        event_bus=bus,
    )
    b.sink = sink
    await b.init()
    return b
