"""Selector engine — resolves selector descriptors against the live document.

A selector descriptor is either a CSS query string or a mapping whose keys
name resolution strategies. Mapping selectors are evaluated in a single
canonical priority order (``STRATEGY_ORDER``), independent of key order in
the caller's dict; the first strategy whose field is present and resolves
to an element wins.

Multi-element resolution only vectorises the ``path`` (XPath) and
``query`` (CSS) strategies; every other mapping degrades to ``find``
wrapped in a list.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

from uibridge.dom.base import Document, Element
from uibridge.exceptions import InvalidSelectorError
from uibridge.models.element import ElementInfo, ElementPosition

logger = logging.getLogger(__name__)

Strategy = Callable[[Document, Any], Awaitable[Element | None]]

STRATEGY_ORDER: tuple[str, ...] = (
    "path",
    "text",
    "partialText",
    "stableId",
    "legacyId",
    "label",
    "placeholder",
    "accessibleLabel",
    "role",
    "query",
)

# Older descriptor keys still accepted on the wire
STRATEGY_ALIASES: dict[str, str] = {
    "xpath": "path",
    "testId": "stableId",
    "dataTest": "legacyId",
    "ariaLabel": "accessibleLabel",
    "css": "query",
}

FOCUSABLE_TAGS = frozenset({"input", "select", "textarea", "button", "a"})

_TEXT_LIMIT = 100


def _attr_selector(attribute: str, value: Any) -> str:
    return f"[{attribute}={json.dumps(str(value), ensure_ascii=False)}]"


# ---------------------------------------------------------------------------
# Built-in strategies
# ---------------------------------------------------------------------------


async def _by_path(document: Document, value: Any) -> Element | None:
    return await document.xpath(str(value))


async def _by_text(document: Document, value: Any) -> Element | None:
    return await document.find_text(str(value))


async def _by_partial_text(document: Document, value: Any) -> Element | None:
    return await document.find_text(str(value), partial=True)


async def _by_stable_id(document: Document, value: Any) -> Element | None:
    return await document.query(_attr_selector("data-testid", value))


async def _by_legacy_id(document: Document, value: Any) -> Element | None:
    return await document.query(_attr_selector("data-test", value))


async def _by_label(document: Document, value: Any) -> Element | None:
    """Resolve a form control through the text of its ``<label>``."""
    for label in await document.query_all("label"):
        if (await label.text_content()).strip() != value:
            continue
        target = await label.get_attribute("for")
        if target:
            return await document.get_by_id(target)
        nested = await label.query("input, select, textarea")
        if nested is not None:
            return nested
    return None


async def _by_placeholder(document: Document, value: Any) -> Element | None:
    return await document.query(_attr_selector("placeholder", value))


async def _by_accessible_label(document: Document, value: Any) -> Element | None:
    return await document.query(_attr_selector("aria-label", value))


async def _by_role(document: Document, value: Any) -> Element | None:
    return await document.query(_attr_selector("role", value))


async def _by_query(document: Document, value: Any) -> Element | None:
    return await document.query(str(value))


_BUILTIN_STRATEGIES: dict[str, Strategy] = {
    "path": _by_path,
    "text": _by_text,
    "partialText": _by_partial_text,
    "stableId": _by_stable_id,
    "legacyId": _by_legacy_id,
    "label": _by_label,
    "placeholder": _by_placeholder,
    "accessibleLabel": _by_accessible_label,
    "role": _by_role,
    "query": _by_query,
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class SelectorEngine:
    """Map selector descriptors to elements of one ``Document``.

    Args:
        document: The live document to resolve against.
    """

    def __init__(self, document: Document) -> None:
        self.document = document
        self._strategies: dict[str, Strategy] = dict(_BUILTIN_STRATEGIES)
        self._custom_order: list[str] = []

    # ------------------------------------------------------------------
    # Strategy management
    # ------------------------------------------------------------------

    @property
    def strategy_names(self) -> list[str]:
        """Built-in strategies in priority order, then custom ones."""
        return [*STRATEGY_ORDER, *self._custom_order]

    def register_strategy(self, name: str, strategy: Strategy) -> None:
        """Add a custom strategy consulted after the built-ins.

        Raises:
            ValueError: If *name* is empty or names a built-in strategy.
            TypeError: If *strategy* is not callable.
        """
        if not name or not isinstance(name, str):
            raise ValueError("Strategy name must be a non-empty string")
        if name in _BUILTIN_STRATEGIES or name in STRATEGY_ALIASES:
            raise ValueError(f"Cannot replace built-in strategy: {name}")
        if not callable(strategy):
            raise TypeError("Strategy must be a function")
        if name not in self._strategies:
            self._custom_order.append(name)
        self._strategies[name] = strategy
        logger.debug("Registered selector strategy %s", name)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def find(self, selector: Any) -> Element | None:
        """Resolve *selector* to a single element.

        A string is a CSS query and yields ``None`` when nothing matches.
        A mapping must resolve through at least one of its strategies.

        Raises:
            InvalidSelectorError: For any other input, or when no strategy of
                a mapping selector resolves.
        """
        if isinstance(selector, str):
            return await _by_query(self.document, selector)

        fields = self._normalize(selector)
        for name in self.strategy_names:
            value = fields.get(name)
            if not value:
                continue
            element = await self._strategies[name](self.document, value)
            if element is not None:
                logger.debug("Selector %s resolved via %s", selector, name)
                return element

        raise InvalidSelectorError(selector)

    async def find_all(self, selector: Any) -> list[Element]:
        """Resolve *selector* to every matching element, in document order."""
        if isinstance(selector, str):
            return await self.document.query_all(selector)

        fields = self._normalize(selector)
        if fields.get("path"):
            return await self.document.xpath_all(str(fields["path"]))
        if fields.get("query"):
            return await self.document.query_all(str(fields["query"]))

        element = await self.find(fields)
        return [element] if element is not None else []

    def _normalize(self, selector: Any) -> dict[str, Any]:
        """Validate a mapping selector and fold legacy keys onto canonical ones."""
        if not isinstance(selector, dict) or not selector:
            raise InvalidSelectorError(selector)
        fields: dict[str, Any] = {}
        for key, value in selector.items():
            canonical = STRATEGY_ALIASES.get(key, key)
            # An explicit canonical key beats its legacy alias
            if canonical in fields and key != canonical:
                continue
            fields[canonical] = value
        return fields

    # ------------------------------------------------------------------
    # Predicates / description
    # ------------------------------------------------------------------

    async def is_visible(self, element: Element | None) -> bool:
        """True when the element is rendered with area, opaque, and inside the viewport."""
        if element is None:
            return False
        rect = await element.bounding_box()
        style = await element.computed_style()
        viewport = await self.document.viewport()
        return (
            rect.width > 0
            and rect.height > 0
            and style.display != "none"
            and style.visibility != "hidden"
            and style.opacity > 0
            and rect.top < viewport.height
            and rect.bottom > 0
            and rect.left < viewport.width
            and rect.right > 0
        )

    async def is_focusable(self, element: Element) -> bool:
        """Natively focusable tag, or carries ``tabindex`` / ``contenteditable``."""
        if await element.tag_name() in FOCUSABLE_TAGS:
            return True
        attributes = await element.attributes()
        return "tabindex" in attributes or "contenteditable" in attributes

    async def describe(self, element: Element) -> ElementInfo:
        """Snapshot tag, identity, text, geometry and state of *element*."""
        attributes = await element.attributes()
        rect = await element.bounding_box()
        text = (await element.text_content()).strip()[:_TEXT_LIMIT]
        return ElementInfo(
            tag=await element.tag_name(),
            id=attributes.get("id") or None,
            classes=attributes.get("class", "").split(),
            text=text,
            attributes=attributes,
            position=ElementPosition(x=rect.x, y=rect.y, width=rect.width, height=rect.height),
            visible=await self.is_visible(element),
            focusable=await self.is_focusable(element),
        )
