"""UIBridge exception hierarchy."""

from __future__ import annotations

import json
from typing import Any


class UIBridgeError(Exception):
    """Base exception for all UIBridge-specific errors."""


# ---------------------------------------------------------------------------
# Selector / element errors
# ---------------------------------------------------------------------------


class InvalidSelectorError(UIBridgeError):
    """Raised when a selector is malformed or no strategy resolves it.

    Attributes:
        selector: The offending selector descriptor.
    """

    def __init__(self, selector: Any) -> None:
        self.selector = selector
        super().__init__(f"Invalid selector: {_encode(selector)}")


class ElementNotFoundError(UIBridgeError):
    """Raised when a command cannot resolve its target element."""

    def __init__(self, selector: Any, context: str = "") -> None:
        self.selector = selector
        where = f" for {context}" if context else ""
        super().__init__(f"Element not found{where}: {_encode(selector)}")


class NotVisibleError(UIBridgeError):
    """Raised when an element fails the visibility predicate."""

    def __init__(self) -> None:
        super().__init__("Element is not visible. Use { force: true } to click anyway.")


class ObscuredError(UIBridgeError):
    """Raised when another element covers the target's centre point."""

    def __init__(self) -> None:
        super().__init__("Element is covered by another element. Use { force: true } to click anyway.")


# ---------------------------------------------------------------------------
# Registry / execution errors
# ---------------------------------------------------------------------------


class RegistrationValidationError(UIBridgeError):
    """Raised when a command descriptor fails registry validation.

    Attributes:
        field: The missing or invalid descriptor field, when known.
    """

    def __init__(self, message: str, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class UnknownCommandError(UIBridgeError):
    """Raised when ``execute`` is called with an unregistered command name.

    Attributes:
        command: The requested command name.
        available: Names registered at the time of the call.
    """

    def __init__(self, command: str, available: list[str]) -> None:
        self.command = command
        self.available = list(available)
        super().__init__(
            f"Unknown command: {command}. Available commands: {', '.join(self.available)}. "
            "Use 'help' for detailed information."
        )


class NotInitializedError(UIBridgeError):
    """Raised when a command is executed before ``init()`` completed."""

    def __init__(self) -> None:
        super().__init__("UIBridge not initialized. Call init() first.")


# ---------------------------------------------------------------------------
# Capture errors
# ---------------------------------------------------------------------------


class CaptureTimeoutError(UIBridgeError):
    """Raised when rasterization exceeds the capture timeout."""

    def __init__(self, timeout_sec: float) -> None:
        self.timeout_sec = timeout_sec
        super().__init__(f"Screenshot capture timed out after {timeout_sec:g} seconds")


class CapabilityLoadError(UIBridgeError):
    """Raised when every rasterizer source failed to load or validate.

    Attributes:
        attempts: ``(source_name, reason)`` pairs in the order tried.
    """

    def __init__(self, attempts: list[tuple[str, str]]) -> None:
        self.attempts = list(attempts)
        tried = "; ".join(f"{name}: {reason}" for name, reason in self.attempts) or "no sources configured"
        super().__init__(f"Failed to load rasterizer from all sources ({tried})")


class PersistenceError(UIBridgeError):
    """Raised when an auto-save target fails."""


# ---------------------------------------------------------------------------
# Remote protocol errors
# ---------------------------------------------------------------------------


class ClientNotFoundError(UIBridgeError):
    """Raised when a client session id is unknown (or was evicted)."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class CommandNotFoundError(UIBridgeError):
    """Raised when a queued command id is unknown."""

    def __init__(self, command_id: str) -> None:
        self.command_id = command_id
        super().__init__(f"Command not found: {command_id}")


class NoClientsConnectedError(UIBridgeError):
    """Raised when a command is submitted while no page agent is registered."""

    def __init__(self) -> None:
        super().__init__("No browser clients connected")


def _encode(selector: Any) -> str:
    try:
        return json.dumps(selector)
    except (TypeError, ValueError):
        return repr(selector)
