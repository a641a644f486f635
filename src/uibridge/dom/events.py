"""Input event synthesis.

Commands never build events themselves; they hand an ordered sequence of
``(event_type, init)`` pairs to an ``InputEventEmitter``. The default
emitter dispatches them as DOM events on the target element.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from uibridge.dom.base import Element

logger = logging.getLogger(__name__)

BUTTON_CODES = {"left": 0, "middle": 1, "right": 2}
BUTTONS_MASKS = {"left": 1, "middle": 4, "right": 2}


def button_code(button: str) -> int:
    """``MouseEvent.button`` value for a named button (unknown → left)."""
    return BUTTON_CODES.get(button, 0)


def buttons_mask(button: str) -> int:
    """``MouseEvent.buttons`` bitmask for a named button (unknown → left)."""
    return BUTTONS_MASKS.get(button, 1)


@runtime_checkable
class InputEventEmitter(Protocol):
    """Delivers synthetic input events to an element."""

    async def emit(self, element: Element, event_type: str, init: dict[str, Any]) -> None:
        """Deliver one event."""
        ...


class DomEventEmitter:
    """Dispatch events through ``Element.dispatch_event``."""

    async def emit(self, element: Element, event_type: str, init: dict[str, Any]) -> None:
        """Dispatch *event_type* with a bubbling, cancelable init dict."""
        payload = {"bubbles": True, "cancelable": True, **init}
        logger.debug("dispatch %s %s", event_type, payload)
        await element.dispatch_event(event_type, payload)


class RecordingEmitter:
    """Wrap another emitter and keep the ordered event log."""

    def __init__(self, inner: InputEventEmitter | None = None) -> None:
        self._inner = inner
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, element: Element, event_type: str, init: dict[str, Any]) -> None:
        """Record the event, then forward it when an inner emitter is set."""
        self.events.append((event_type, dict(init)))
        if self._inner is not None:
            await self._inner.emit(element, event_type, init)

    @property
    def types(self) -> list[str]:
        """Event types in dispatch order."""
        return [event_type for event_type, _ in self.events]
