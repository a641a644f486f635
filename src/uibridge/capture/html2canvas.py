"""html2canvas rasterizer injected into a Playwright page from a script URL."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from uibridge.dom.base import Element

if TYPE_CHECKING:
    from playwright.async_api import JSHandle, Page

logger = logging.getLogger(__name__)

_IS_LOADED_JS = "() => typeof window.html2canvas === 'function'"

_PROBE_JS = """
async () => {
  const probe = document.createElement('div');
  probe.style.position = 'absolute';
  probe.style.left = '-9999px';
  probe.style.width = '1px';
  probe.style.height = '1px';
  document.body.appendChild(probe);
  try {
    await window.html2canvas(probe, {width: 1, height: 1, logging: false});
  } finally {
    probe.remove();
  }
  return true;
}
"""

_RENDER_JS = "(el, opts) => window.html2canvas(el, opts)"


class CanvasSurface:
    """A ``<canvas>`` living in the page, addressed through a JS handle."""

    def __init__(self, handle: JSHandle, width: int, height: int) -> None:
        self.handle = handle
        self.width = width
        self.height = height

    async def to_data_url(self, mime: str, quality: float) -> str:
        return await self.handle.evaluate("(c, [m, q]) => c.toDataURL(m, q)", [mime, quality])


class Html2CanvasRasterizer:
    """Render elements with the page's ``window.html2canvas``."""

    def __init__(self, page: Page) -> None:
        self.page = page

    async def probe(self) -> None:
        await self.page.evaluate(_PROBE_JS)

    async def rasterize(self, element: Element, options: dict[str, Any]) -> CanvasSurface:
        handle = getattr(element, "handle", None)
        if handle is None:
            raise TypeError("html2canvas can only rasterize Playwright elements")
        # undefined keys must not reach html2canvas as null
        js_options = {k: v for k, v in options.items() if v is not None}
        canvas = await handle.evaluate_handle(_RENDER_JS, js_options)
        size = await canvas.evaluate("c => [c.width, c.height]")
        return CanvasSurface(canvas, int(size[0]), int(size[1]))


class ScriptTagSource:
    """Load html2canvas by appending a ``<script src=…>`` to the page.

    If the page already exposes ``window.html2canvas`` no script is added.
    """

    def __init__(self, page: Page, url: str) -> None:
        self.page = page
        self.url = url
        self.name = url

    async def load(self) -> Html2CanvasRasterizer:
        if not await self.page.evaluate(_IS_LOADED_JS):
            logger.debug("Injecting html2canvas from %s", self.url)
            await self.page.add_script_tag(url=self.url)
            if not await self.page.evaluate(_IS_LOADED_JS):
                raise RuntimeError("script loaded but html2canvas is not a function")
        return Html2CanvasRasterizer(self.page)
