"""Capability loader for the external rasterizer.

The capture command does not rasterize pages itself. It asks a
``CapabilityLoader`` for a ``Rasterizer``; the loader walks an ordered
list of ``RasterizerSource`` objects, loads each candidate, and accepts
the first one whose 1×1 functional probe succeeds. The accepted
rasterizer is cached for the lifetime of the loader.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

from uibridge.dom.base import Element
from uibridge.exceptions import CapabilityLoadError

logger = logging.getLogger(__name__)


@runtime_checkable
class Surface(Protocol):
    """Canvas-like rasterization result."""

    width: int
    height: int

    async def to_data_url(self, mime: str, quality: float) -> str:
        """Encode the pixels as a ``data:`` URL."""
        ...


@runtime_checkable
class Rasterizer(Protocol):
    """Renders an element (or the page) to a ``Surface``."""

    async def rasterize(self, element: Element, options: dict[str, Any]) -> Surface:
        """Rasterize *element* with capture *options*."""
        ...

    async def probe(self) -> None:
        """Render a 1×1 test element; raise if the rasterizer is not functional."""
        ...


@runtime_checkable
class RasterizerSource(Protocol):
    """One candidate origin for a rasterizer (a CDN script, a native API, …)."""

    name: str

    async def load(self) -> Rasterizer:
        """Fetch / install the rasterizer; raise on failure."""
        ...


class CapabilityLoader:
    """Resolve a working rasterizer from an ordered source list.

    Args:
        sources: Candidate sources in preference order.
        load_timeout_sec: Per-source budget covering load and probe.
    """

    def __init__(self, sources: list[RasterizerSource], *, load_timeout_sec: float = 10.0) -> None:
        self._sources = list(sources)
        self._load_timeout_sec = load_timeout_sec
        self._rasterizer: Rasterizer | None = None
        self._accepted_source: str | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._rasterizer is not None

    @property
    def accepted_source(self) -> str | None:
        """Name of the source whose rasterizer passed the probe."""
        return self._accepted_source

    async def ensure(self) -> Rasterizer:
        """Return the cached rasterizer, loading one if needed.

        Raises:
            CapabilityLoadError: When every source failed to load or probe.
        """
        if self._rasterizer is not None:
            return self._rasterizer

        async with self._lock:
            if self._rasterizer is not None:
                return self._rasterizer

            attempts: list[tuple[str, str]] = []
            for source in self._sources:
                try:
                    rasterizer = await asyncio.wait_for(
                        self._load_and_probe(source), timeout=self._load_timeout_sec
                    )
                except asyncio.TimeoutError:
                    logger.warning("Timeout loading rasterizer from %s", source.name)
                    attempts.append((source.name, "timeout"))
                    continue
                except Exception as exc:
                    logger.warning("Rasterizer source %s failed: %s", source.name, exc)
                    attempts.append((source.name, str(exc) or type(exc).__name__))
                    continue

                logger.info("Rasterizer loaded and validated from %s", source.name)
                self._rasterizer = rasterizer
                self._accepted_source = source.name
                return rasterizer

            raise CapabilityLoadError(attempts)

    async def _load_and_probe(self, source: RasterizerSource) -> Rasterizer:
        rasterizer = await source.load()
        await rasterizer.probe()
        return rasterizer

    def reset(self) -> None:
        """Forget the accepted rasterizer (e.g. after the page navigated)."""
        self._rasterizer = None
        self._accepted_source = None


def build_playwright_loader(
    page: Any,
    sources: list[str],
    *,
    native_fallback: bool = True,
    load_timeout_sec: float = 10.0,
) -> CapabilityLoader:
    """Loader trying each html2canvas script URL, then Playwright's native capture."""
    from uibridge.capture.html2canvas import ScriptTagSource
    from uibridge.capture.native import NativeScreenshotSource

    candidates: list[RasterizerSource] = [ScriptTagSource(page, url) for url in sources]
    if native_fallback:
        candidates.append(NativeScreenshotSource(page))
    return CapabilityLoader(candidates, load_timeout_sec=load_timeout_sec)
