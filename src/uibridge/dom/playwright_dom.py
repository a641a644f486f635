"""Playwright-backed ``Document`` implementation.

Wraps a ``playwright.async_api.Page`` so the selector engine and commands
operate on a real, already-rendered page. Queries that have no native
Playwright equivalent (text-node walking, ``elementFromPoint``) are run as
small in-page functions via ``evaluate_handle``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from uibridge.dom.base import ComputedStyle, Document, Element, Rect, Viewport

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, JSHandle, Page

logger = logging.getLogger(__name__)

_FIND_TEXT_JS = """
([text, partial]) => {
  const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT, null, false);
  let node;
  while ((node = walker.nextNode())) {
    const value = node.textContent.trim();
    if (partial ? value.includes(text) : value === text) {
      return node.parentElement;
    }
  }
  return null;
}
"""

_STYLE_JS = """
el => {
  const s = window.getComputedStyle(el);
  return {display: s.display, visibility: s.visibility, opacity: s.opacity, backgroundColor: s.backgroundColor};
}
"""

_RECT_JS = """
el => {
  const r = el.getBoundingClientRect();
  return {x: r.left, y: r.top, width: r.width, height: r.height};
}
"""

_VIEWPORT_JS = """
() => ({
  width: window.innerWidth,
  height: window.innerHeight,
  devicePixelRatio: window.devicePixelRatio || 1,
  scrollWidth: document.documentElement.scrollWidth,
  scrollHeight: document.documentElement.scrollHeight,
})
"""


class PlaywrightElement(Element):
    """``Element`` over a Playwright ``ElementHandle``."""

    def __init__(self, handle: ElementHandle) -> None:
        self.handle = handle

    def __repr__(self) -> str:
        return f"PlaywrightElement({self.handle!r})"

    async def tag_name(self) -> str:
        return await self.handle.evaluate("el => el.tagName.toLowerCase()")

    async def attributes(self) -> dict[str, str]:
        return await self.handle.evaluate(
            "el => Object.fromEntries(Array.from(el.attributes, a => [a.name, a.value]))"
        )

    async def get_attribute(self, name: str) -> str | None:
        return await self.handle.get_attribute(name)

    async def text_content(self) -> str:
        return (await self.handle.text_content()) or ""

    async def bounding_box(self) -> Rect:
        box = await self.handle.evaluate(_RECT_JS)
        return Rect(x=box["x"], y=box["y"], width=box["width"], height=box["height"])

    async def computed_style(self) -> ComputedStyle:
        style = await self.handle.evaluate(_STYLE_JS)
        try:
            opacity = float(style.get("opacity") or 1)
        except ValueError:
            opacity = 1.0
        return ComputedStyle(
            display=style.get("display", ""),
            visibility=style.get("visibility", ""),
            opacity=opacity,
            background_color=style.get("backgroundColor", ""),
        )

    async def parent(self) -> Element | None:
        return _wrap(await self.handle.evaluate_handle("el => el.parentElement"))

    async def contains(self, other: Element) -> bool:
        if not isinstance(other, PlaywrightElement):
            return False
        return await self.handle.evaluate("(el, other) => el === other || el.contains(other)", other.handle)

    async def query(self, css: str) -> Element | None:
        found = await self.handle.query_selector(css)
        return PlaywrightElement(found) if found else None

    async def scroll_into_view(self, *, smooth: bool = True) -> None:
        behavior = "smooth" if smooth else "auto"
        await self.handle.evaluate(
            "(el, behavior) => el.scrollIntoView({behavior, block: 'center'})", behavior
        )

    async def focus(self) -> None:
        await self.handle.focus()

    async def dispatch_event(self, event_type: str, init: dict[str, Any] | None = None) -> None:
        await self.handle.dispatch_event(event_type, init or {})

    async def set_inline_style(self, prop: str, value: str) -> str:
        return await self.handle.evaluate(
            """(el, [prop, value]) => {
                 const previous = el.style.getPropertyValue(prop);
                 el.style.setProperty(prop, value);
                 return previous;
               }""",
            [prop, value],
        )


class PlaywrightDocument(Document):
    """``Document`` over a Playwright async ``Page``."""

    def __init__(self, page: Page) -> None:
        self.page = page

    async def query(self, css: str) -> Element | None:
        found = await self.page.query_selector(css)
        return PlaywrightElement(found) if found else None

    async def query_all(self, css: str) -> list[Element]:
        return [PlaywrightElement(h) for h in await self.page.query_selector_all(css)]

    async def xpath(self, expression: str) -> Element | None:
        found = await self.page.query_selector(f"xpath={expression}")
        return PlaywrightElement(found) if found else None

    async def xpath_all(self, expression: str) -> list[Element]:
        return [PlaywrightElement(h) for h in await self.page.query_selector_all(f"xpath={expression}")]

    async def find_text(self, text: str, *, partial: bool = False) -> Element | None:
        return _wrap(await self.page.evaluate_handle(_FIND_TEXT_JS, [text, partial]))

    async def get_by_id(self, element_id: str) -> Element | None:
        return _wrap(await self.page.evaluate_handle("id => document.getElementById(id)", element_id))

    async def body(self) -> Element:
        return _wrap(await self.page.evaluate_handle("() => document.body"))  # type: ignore[return-value]

    async def document_element(self) -> Element:
        return _wrap(await self.page.evaluate_handle("() => document.documentElement"))  # type: ignore[return-value]

    async def element_from_point(self, x: float, y: float) -> Element | None:
        return _wrap(
            await self.page.evaluate_handle("([x, y]) => document.elementFromPoint(x, y)", [x, y])
        )

    async def viewport(self) -> Viewport:
        metrics = await self.page.evaluate(_VIEWPORT_JS)
        return Viewport(
            width=metrics["width"],
            height=metrics["height"],
            device_pixel_ratio=metrics["devicePixelRatio"],
            scroll_width=metrics["scrollWidth"],
            scroll_height=metrics["scrollHeight"],
        )

    async def user_agent(self) -> str:
        return await self.page.evaluate("() => navigator.userAgent")

    async def url(self) -> str:
        return self.page.url


def _wrap(handle: JSHandle | None) -> PlaywrightElement | None:
    """Turn a JS handle into a ``PlaywrightElement`` (``None`` for null results)."""
    if handle is None:
        return None
    element = handle.as_element()
    return PlaywrightElement(element) if element is not None else None
