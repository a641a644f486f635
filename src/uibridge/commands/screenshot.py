"""``screenshot`` command: rasterize the page or one element to a data URL.

The pixels come from an external rasterizer resolved by the bridge's
``CapabilityLoader``. This module only decides *what* is captured (target,
background, excluded elements, full page extent), names the file, and
hands it to the ``ScreenshotSaver`` when ``saveConfig.autoSave`` is set.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from uibridge.capture.data_url import approximate_size
from uibridge.dom.base import Document, Element
from uibridge.exceptions import CaptureTimeoutError, ElementNotFoundError, InvalidSelectorError
from uibridge.models.command import CommandDescriptor, CommandParameter
from uibridge.models.execution import utc_now_iso

if TYPE_CHECKING:
    from uibridge.capture.loader import Rasterizer, Surface
    from uibridge.core.bridge import UIBridge

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND = "#ffffff"
TRANSPARENT = frozenset({"", "transparent", "rgba(0, 0, 0, 0)"})


class ScreenshotOptions(BaseModel):
    """Capture options; accepts ``full_page`` or ``fullPage`` style keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    selector: Any = None
    format: str = "png"
    quality: float = 0.92
    full_page: bool = False
    exclude_selectors: list[str] = Field(default_factory=list)
    background_color: str | None = "auto"
    scale: float | None = None
    save_config: dict[str, Any] = Field(default_factory=dict)


def ensure_extension(file_name: str, fmt: str) -> str:
    extension = "jpg" if fmt == "jpeg" else fmt
    if not file_name.lower().endswith(f".{extension}"):
        return f"{file_name}.{extension}"
    return file_name


def generate_file_name(
    save_config: dict[str, Any],
    *,
    fmt: str = "png",
    selector: Any = None,
    full_page: bool = False,
    width: int | None = None,
    height: int | None = None,
    now: datetime | None = None,
) -> str:
    """Build ``prefix[_selector][_fullpage][_WxH][_timestamp].ext``.

    The selector, full-page and dimension parts are only added when
    ``includeMetadata`` is set; ``customName`` replaces the whole scheme.
    """
    custom = save_config.get("customName")
    if custom:
        return ensure_extension(custom, fmt)

    name = save_config.get("prefix") or "screenshot"
    if save_config.get("includeMetadata"):
        if selector:
            name += "_" + (re.sub(r"[#.]", "", selector)[:20] if isinstance(selector, str) else "element")
        if full_page:
            name += "_fullpage"
        name += f"_{width or 'auto'}x{height or 'auto'}"

    if save_config.get("timestamp"):
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d_%H-%M-%S")
        name += f"_{stamp}"

    return ensure_extension(name, fmt)


async def detect_background(document: Document, element: Element) -> str:
    """First non-transparent background on the ancestor chain, then body, then html."""
    current: Element | None = element
    while current is not None and await current.tag_name() != "html":
        color = (await current.computed_style()).background_color
        if color not in TRANSPARENT:
            return color
        current = await current.parent()

    for fallback in (await document.body(), await document.document_element()):
        color = (await fallback.computed_style()).background_color
        if color not in TRANSPARENT:
            return color

    return DEFAULT_BACKGROUND


async def _hide(document: Document, selectors: list[str]) -> list[tuple[Element, str]]:
    hidden: list[tuple[Element, str]] = []
    for selector in selectors:
        try:
            elements = await document.query_all(selector)
        except Exception as exc:
            logger.warning("Invalid selector for hiding: %s (%s)", selector, exc)
            continue
        for element in elements:
            previous = await element.set_inline_style("display", "none")
            hidden.append((element, previous))
    return hidden


async def _restore(hidden: list[tuple[Element, str]]) -> None:
    for element, previous in hidden:
        await element.set_inline_style("display", previous)


async def _render(
    rasterizer: Rasterizer, element: Element, options: dict[str, Any], mime: str, quality: float
) -> tuple[Surface, str]:
    surface = await rasterizer.rasterize(element, options)
    return surface, await surface.to_data_url(mime, quality)


async def run_screenshot(bridge: UIBridge, options: dict[str, Any] | None = None) -> dict[str, Any]:
    document = bridge.document
    opts = ScreenshotOptions.model_validate(options or {})
    save_config = {**bridge.get_screenshot_config(), **opts.save_config}
    viewport = await document.viewport()
    scale = opts.scale if opts.scale is not None else viewport.device_pixel_ratio

    if opts.selector:
        try:
            target = await bridge.find_element(opts.selector)
        except InvalidSelectorError:
            target = None
        if target is None:
            raise ElementNotFoundError(opts.selector, "screenshot")
    else:
        target = await document.body()

    background = opts.background_color
    if background == "auto":
        background = await detect_background(document, target)
        logger.debug("Auto-detected background color: %s", background)

    rasterizer = await bridge.capture_loader.ensure()

    full = opts.full_page
    raster_options: dict[str, Any] = {
        "useCORS": True,
        "allowTaint": False,
        "backgroundColor": background,
        "scale": scale,
        "logging": bridge.settings.bridge.debug,
        "fullPage": full,
        "width": viewport.scroll_width if full else None,
        "height": viewport.scroll_height if full else None,
        "windowWidth": viewport.scroll_width if full else None,
        "windowHeight": viewport.scroll_height if full else None,
        "x": 0 if full else None,
        "y": 0 if full else None,
        "foreignObjectRendering": True,
        "imageTimeout": 15000,
        "removeContainer": True,
    }

    timeout = bridge.settings.capture.timeout_sec
    hidden = await _hide(document, opts.exclude_selectors)
    try:
        surface, data_url = await asyncio.wait_for(
            _render(rasterizer, target, raster_options, f"image/{opts.format}", opts.quality),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise CaptureTimeoutError(timeout) from None
    finally:
        await _restore(hidden)

    file_name = generate_file_name(
        save_config,
        fmt=opts.format,
        selector=opts.selector,
        full_page=full,
        width=surface.width,
        height=surface.height,
    )

    if save_config.get("autoSave"):
        await bridge.saver.save(data_url, file_name, save_config)

    folder = save_config.get("folder")
    result: dict[str, Any] = {
        "success": True,
        "dataUrl": data_url,
        "width": surface.width,
        "height": surface.height,
        "format": opts.format,
        "fileName": file_name,
        "filePath": f"{folder}/{file_name}" if folder else file_name,
        "size": approximate_size(data_url),
        "timestamp": utc_now_iso(),
        "saveConfig": save_config,
    }

    if opts.selector:
        result["element"] = (await bridge.selector_engine.describe(target)).model_dump()
        if save_config.get("includeMetadata"):
            result["metadata"] = {
                "selector": opts.selector,
                "element": result["element"],
                "viewport": {"width": viewport.width, "height": viewport.height},
                "userAgent": await document.user_agent(),
                "timestamp": result["timestamp"],
            }

    logger.info(
        "Screenshot captured: %sx%s, %s bytes, %s",
        result["width"],
        result["height"],
        result["size"],
        result["filePath"],
    )
    return result


SCREENSHOT_COMMAND = CommandDescriptor(
    name="screenshot",
    description="Takes a screenshot of the page or a specific element",
    parameters=[
        CommandParameter(
            name="options",
            type="ScreenshotOptions",
            required=False,
            description=(
                "Screenshot options: { selector?, format?, quality?, fullPage?, excludeSelectors?, saveConfig? }"
            ),
        )
    ],
    execute=run_screenshot,
    examples=[
        "execute('screenshot')",
        "execute('screenshot', { format: 'png', quality: 0.9 })",
        "execute('screenshot', { selector: '#main-content' })",
        "execute('screenshot', { fullPage: true, saveConfig: { autoSave: true, folder: 'tests' } })",
    ],
)
