"""``click`` command: synthetic pointer interaction with one element."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from uibridge.dom.base import Element, Rect
from uibridge.dom.events import button_code, buttons_mask
from uibridge.exceptions import ElementNotFoundError, NotVisibleError, ObscuredError
from uibridge.models.command import CommandDescriptor, CommandParameter
from uibridge.models.execution import utc_now_iso

if TYPE_CHECKING:
    from uibridge.core.bridge import UIBridge

logger = logging.getLogger(__name__)

SCROLL_SETTLE_SEC = 0.1
CLICK_GAP_SEC = 0.05
CHANGE_DELAY_SEC = 0.01

# Edge anchors sit 1px inside the box so the point still hits the element
_EDGE_INSET = 1


class ClickOptions(BaseModel):
    """Click options; accepts ``click_count`` or ``clickCount`` style keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    force: bool = False
    position: str = "center"
    button: str = "left"
    click_count: int = 1
    delay: float = 0
    scroll_into_view: bool = True


def anchor_point(rect: Rect, position: str) -> dict[str, float]:
    """Pixel coordinate of a named anchor on *rect* (unknown names → center)."""
    cx = rect.left + rect.width / 2
    cy = rect.top + rect.height / 2
    left = rect.left + _EDGE_INSET
    right = rect.right - _EDGE_INSET
    top = rect.top + _EDGE_INSET
    bottom = rect.bottom - _EDGE_INSET
    anchors = {
        "center": (cx, cy),
        "topLeft": (left, top),
        "topRight": (right, top),
        "bottomLeft": (left, bottom),
        "bottomRight": (right, bottom),
        "topCenter": (cx, top),
        "bottomCenter": (cx, bottom),
        "leftCenter": (left, cy),
        "rightCenter": (right, cy),
    }
    x, y = anchors.get(position, anchors["center"])
    return {"x": x, "y": y}


async def is_actionable(bridge: UIBridge, element: Element) -> bool:
    """True when the element at the centre of *element*'s box is it or a descendant."""
    rect = await element.bounding_box()
    hit = await bridge.document.element_from_point(rect.left + rect.width / 2, rect.top + rect.height / 2)
    if hit is None:
        return False
    return await element.contains(hit)


async def run_click(bridge: UIBridge, selector: Any, options: dict[str, Any] | None = None) -> dict[str, Any]:
    element = await bridge.find_element(selector)
    if element is None:
        raise ElementNotFoundError(selector)

    opts = ClickOptions.model_validate(options or {})
    engine = bridge.selector_engine
    logger.debug("Clicking %s with %s", await element.tag_name(), opts)

    if opts.scroll_into_view:
        await element.scroll_into_view(smooth=True)
        await asyncio.sleep(SCROLL_SETTLE_SEC)

    if not opts.force:
        if not await engine.is_visible(element):
            raise NotVisibleError()
        if not await is_actionable(bridge, element):
            raise ObscuredError()

    position = anchor_point(await element.bounding_box(), opts.position)
    init = {
        "clientX": position["x"],
        "clientY": position["y"],
        "button": button_code(opts.button),
        "buttons": buttons_mask(opts.button),
        "detail": opts.click_count,
    }

    emitter = bridge.emitter
    await emitter.emit(element, "mouseover", init)
    await emitter.emit(element, "mouseenter", init)
    await emitter.emit(element, "mousedown", init)
    if opts.delay > 0:
        await asyncio.sleep(opts.delay / 1000)
    await emitter.emit(element, "mouseup", init)

    for i in range(opts.click_count):
        if i > 0:
            await asyncio.sleep(CLICK_GAP_SEC)
        await emitter.emit(element, "click", {**init, "detail": i + 1})

    if await engine.is_focusable(element):
        await element.focus()

    if await element.tag_name() == "select":
        await asyncio.sleep(CHANGE_DELAY_SEC)
        await emitter.emit(element, "change", {"bubbles": True})

    info = await engine.describe(element)
    return {
        "success": True,
        "element": info.model_dump(),
        "position": position,
        "timestamp": utc_now_iso(),
    }


CLICK_COMMAND = CommandDescriptor(
    name="click",
    description="Clicks on an element using synthetic mouse events",
    parameters=[
        CommandParameter(
            name="selector",
            type="Selector",
            required=True,
            description="Element to click (CSS selector string or selector object)",
        ),
        CommandParameter(
            name="options",
            type="ClickOptions",
            required=False,
            description="Click options: { force?, position?, button?, clickCount?, delay?, scrollIntoView? }",
        ),
    ],
    execute=run_click,
    examples=[
        "execute('click', '#submit-button')",
        "execute('click', { text: 'Submit' })",
        "execute('click', { stableId: 'login-btn' })",
        "execute('click', '#button', { position: 'center', clickCount: 2 })",
    ],
)
