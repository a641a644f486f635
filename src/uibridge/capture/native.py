"""Fallback rasterizer backed by Playwright's own screenshot API."""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any

from PIL import Image

from uibridge.capture.data_url import encode_data_url
from uibridge.dom.base import Element

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_PIL_FORMATS = {"image/png": "PNG", "image/jpeg": "JPEG", "image/webp": "WEBP"}


class ImageSurface:
    """Encoded PNG bytes; re-encoded with Pillow for other formats."""

    def __init__(self, png: bytes) -> None:
        self.png = png
        with Image.open(io.BytesIO(png)) as image:
            self.width, self.height = image.size

    async def to_data_url(self, mime: str, quality: float) -> str:
        pil_format = _PIL_FORMATS.get(mime)
        if pil_format is None or pil_format == "PNG":
            return encode_data_url("image/png", self.png)

        with Image.open(io.BytesIO(self.png)) as image:
            if pil_format == "JPEG" and image.mode != "RGB":
                image = image.convert("RGB")
            buffer = io.BytesIO()
            image.save(buffer, format=pil_format, quality=max(1, min(100, round(quality * 100))))
        return encode_data_url(mime, buffer.getvalue())


class PlaywrightScreenshotRasterizer:
    """Capture pixels through ``Page.screenshot`` / ``ElementHandle.screenshot``."""

    def __init__(self, page: Page) -> None:
        self.page = page

    async def probe(self) -> None:
        png = await self.page.screenshot(type="png", clip={"x": 0, "y": 0, "width": 1, "height": 1})
        ImageSurface(png)

    async def rasterize(self, element: Element, options: dict[str, Any]) -> ImageSurface:
        omit_background = options.get("backgroundColor") is None
        if options.get("fullPage"):
            png = await self.page.screenshot(type="png", full_page=True, omit_background=omit_background)
            return ImageSurface(png)

        handle = getattr(element, "handle", None)
        if handle is None:
            raise TypeError("native capture can only rasterize Playwright elements")
        png = await handle.screenshot(type="png", omit_background=omit_background)
        return ImageSurface(png)


class NativeScreenshotSource:
    """Always-available source; used after the script sources."""

    name = "playwright-native"

    def __init__(self, page: Page) -> None:
        self.page = page

    async def load(self) -> PlaywrightScreenshotRasterizer:
        return PlaywrightScreenshotRasterizer(self.page)
