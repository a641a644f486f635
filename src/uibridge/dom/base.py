"""Abstract live-document interface consumed by the selector engine and commands.

The engine never touches a browser directly. It talks to a ``Document``
and the ``Element`` handles it returns; ``uibridge.dom.playwright_dom``
provides the production implementation on top of a Playwright async page.

All operations are coroutines because every real implementation crosses a
process boundary to reach the page.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any


# ---------------------------------------------------------------------------
# Geometry / style value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rect:
    """Viewport-relative bounding box (``getBoundingClientRect`` semantics)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class ComputedStyle:
    """The subset of computed style the engine inspects."""

    display: str = "block"
    visibility: str = "visible"
    opacity: float = 1.0
    background_color: str = "rgba(0, 0, 0, 0)"


@dataclass(frozen=True)
class Viewport:
    """Window metrics of the live page."""

    width: float
    height: float
    device_pixel_ratio: float = 1.0
    scroll_width: float = 0.0
    scroll_height: float = 0.0


# ---------------------------------------------------------------------------
# Element / Document contracts
# ---------------------------------------------------------------------------


class Element(abc.ABC):
    """Handle to one element of the live document."""

    @abc.abstractmethod
    async def tag_name(self) -> str:
        """Lower-case tag name."""

    @abc.abstractmethod
    async def attributes(self) -> dict[str, str]:
        """All attributes as a name → value mapping."""

    async def get_attribute(self, name: str) -> str | None:
        return (await self.attributes()).get(name)

    @abc.abstractmethod
    async def text_content(self) -> str:
        """Raw ``textContent`` of the element."""

    @abc.abstractmethod
    async def bounding_box(self) -> Rect:
        """Current viewport-relative bounding box."""

    @abc.abstractmethod
    async def computed_style(self) -> ComputedStyle:
        """Current computed style."""

    @abc.abstractmethod
    async def parent(self) -> Element | None:
        """Parent element, or ``None`` at the document element."""

    @abc.abstractmethod
    async def contains(self, other: Element) -> bool:
        """True when *other* is this element or one of its descendants."""

    @abc.abstractmethod
    async def query(self, css: str) -> Element | None:
        """First descendant matching *css*."""

    @abc.abstractmethod
    async def scroll_into_view(self, *, smooth: bool = True) -> None:
        """Scroll the element to the centre of the viewport."""

    @abc.abstractmethod
    async def focus(self) -> None:
        """Give the element keyboard focus."""

    @abc.abstractmethod
    async def dispatch_event(self, event_type: str, init: dict[str, Any] | None = None) -> None:
        """Dispatch a synthetic DOM event on the element."""

    @abc.abstractmethod
    async def set_inline_style(self, prop: str, value: str) -> str:
        """Set an inline style property and return its previous inline value."""


class Document(abc.ABC):
    """The live document of one page."""

    @abc.abstractmethod
    async def query(self, css: str) -> Element | None:
        """First element matching a CSS selector."""

    @abc.abstractmethod
    async def query_all(self, css: str) -> list[Element]:
        """All elements matching a CSS selector, in document order."""

    @abc.abstractmethod
    async def xpath(self, expression: str) -> Element | None:
        """First ordered node matching an XPath expression."""

    @abc.abstractmethod
    async def xpath_all(self, expression: str) -> list[Element]:
        """Ordered snapshot of nodes matching an XPath expression."""

    @abc.abstractmethod
    async def find_text(self, text: str, *, partial: bool = False) -> Element | None:
        """Parent element of the first body text node whose stripped content matches."""

    @abc.abstractmethod
    async def get_by_id(self, element_id: str) -> Element | None:
        """``document.getElementById`` equivalent."""

    @abc.abstractmethod
    async def body(self) -> Element:
        """The ``<body>`` element."""

    @abc.abstractmethod
    async def document_element(self) -> Element:
        """The ``<html>`` element."""

    @abc.abstractmethod
    async def element_from_point(self, x: float, y: float) -> Element | None:
        """Topmost element at a viewport coordinate."""

    @abc.abstractmethod
    async def viewport(self) -> Viewport:
        """Current window metrics."""

    async def user_agent(self) -> str:
        return ""

    async def url(self) -> str:
        """Address of the loaded page."""
        return ""
