"""UIBridge execution core.

``UIBridge`` owns the selector engine, the command registry and the
execution history for one live document. Commands are executed by name:

    bridge = UIBridge(PlaywrightDocument(page))
    await bridge.init()
    await bridge.execute("click", {"text": "Submit"})

Every invocation is recorded as an ``ExecutionRecord`` while it runs and
moved to the bounded, newest-first history once it settles. Lifecycle
events (``initialized``, ``command``, ``error``) go to the ``EventBus``.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Any

from uibridge.core.registry import CommandRegistry
from uibridge.core.selector_engine import STRATEGY_ORDER, SelectorEngine
from uibridge.dom.base import Document, Element
from uibridge.dom.events import DomEventEmitter, InputEventEmitter
from uibridge.exceptions import CapabilityLoadError, NotInitializedError, UnknownCommandError
from uibridge.models.command import CommandDescriptor
from uibridge.models.execution import ExecutionRecord, make_id, utc_now_iso
from uibridge.monitoring.event_bus import EventBus, EventType, LoggingSink
from uibridge.settings import Settings, get_settings

if TYPE_CHECKING:
    from uibridge.capture.loader import CapabilityLoader
    from uibridge.capture.storage import ScreenshotSaver
    from uibridge.remote.channel import RemoteControlChannel

logger = logging.getLogger(__name__)

HELP_ALIASES = frozenset({"help", "--help"})

_USE_CASES = {
    "click": "Interact with buttons, links, form elements, and any clickable UI component",
    "screenshot": "Capture visual state for verification, debugging, or documentation",
    "help": "Discover available commands and learn proper usage syntax",
}

_TIPS = {
    "click": [
        "Try multiple selector strategies if the element is not found",
        "Use force: true if the element is covered",
        "The element is scrolled into view before clicking unless scrollIntoView is false",
    ],
    "screenshot": [
        "Use fullPage: true for a complete page capture",
        "Pass a selector for an element-specific screenshot",
        "Set saveConfig.autoSave to write the file automatically",
    ],
    "help": [
        "Call without arguments for the full command list",
        "Pass a command name for detailed help",
    ],
}

_STRATEGY_SYNTAX = {
    "path": "{ path: '//button[text()=\"Submit\"]' }",
    "text": "{ text: 'Submit' }",
    "partialText": "{ partialText: 'Sub' }",
    "stableId": "{ stableId: 'submit-btn' }",
    "legacyId": "{ legacyId: 'submit-btn' }",
    "label": "{ label: 'Email' }",
    "placeholder": "{ placeholder: 'Search…' }",
    "accessibleLabel": "{ accessibleLabel: 'Close' }",
    "role": "{ role: 'button' }",
    "query": "'#submit' or { query: '#submit' }",
}


class BridgeState(str, Enum):
    """Initialisation state of a ``UIBridge``."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class UIBridge:
    """Command execution core bound to one live document.

    Args:
        document: The page to resolve selectors against.
        settings: Settings instance (defaults to ``get_settings()``).
        emitter: Input event emitter used by ``click``.
        capture_loader: Rasterizer loader used by ``screenshot``. Built from
            the Playwright page on first use when omitted.
        saver: Screenshot persistence targets (built from settings when omitted).
        event_bus: Lifecycle event bus (a ``LoggingSink`` is attached when omitted).
    """

    def __init__(
        self,
        document: Document,
        *,
        settings: Settings | None = None,
        emitter: InputEventEmitter | None = None,
        capture_loader: CapabilityLoader | None = None,
        saver: ScreenshotSaver | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.document = document
        self.selector_engine = SelectorEngine(document)
        self.registry = CommandRegistry()
        self.emitter: InputEventEmitter = emitter or DomEventEmitter()
        self._capture_loader = capture_loader
        self._saver = saver

        if event_bus is None:
            event_bus = EventBus(source="uibridge")
            event_bus.add_sink(LoggingSink())
        self.events = event_bus

        self.remote: RemoteControlChannel | None = None

        self._state = BridgeState.UNINITIALIZED
        self._init_started: float | None = None
        self._screenshot_config: dict[str, Any] = self.settings.screenshot.save_defaults()
        self._running: list[ExecutionRecord] = []
        self._history: list[ExecutionRecord] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is BridgeState.READY

    async def init(self) -> None:
        """Register the configured core commands and become ``ready``.

        Calling ``init`` again once ready (or while initialising) is a no-op.
        """
        if self._state is not BridgeState.UNINITIALIZED:
            logger.debug("UIBridge already %s", self._state.value)
            return

        from uibridge.commands import CORE_COMMANDS

        self._state = BridgeState.INITIALIZING
        self._init_started = time.perf_counter()
        try:
            for name in self.settings.bridge.commands:
                descriptor = CORE_COMMANDS.get(name)
                if descriptor is None:
                    logger.warning("Unknown core command in settings: %s", name)
                    continue
                self.registry.register(name, descriptor)
        except Exception:
            self._state = BridgeState.UNINITIALIZED
            self.registry.clear()
            raise

        self._state = BridgeState.READY
        init_ms = (time.perf_counter() - self._init_started) * 1000
        logger.info("UIBridge initialized in %.2fms (commands: %s)", init_ms, ", ".join(self.registry.get_names()))

        await self.events.emit(
            EventType.INITIALIZED,
            {
                "version": self.settings.bridge.version,
                "commands": self.registry.get_names(),
                "initTime": init_ms,
                "remoteControlEnabled": self.settings.remote.enabled,
            },
        )

        if self.settings.remote.enabled and self.settings.remote.auto_start_polling:
            await self.start_remote_control()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, command_name: str, *args: Any) -> Any:
        """Run *command_name* with positional *args*.

        Returns:
            The command result merged with ``command``, ``duration`` and
            ``timestamp``. ``help`` returns ``get_help()`` output directly.

        Raises:
            NotInitializedError: Before ``init()`` completed.
            UnknownCommandError: If the name is not registered.
            Exception: Whatever the command raised, unchanged.
        """
        if command_name in HELP_ALIASES:
            return self.get_help(args[0] if args else None)

        if not self.is_initialized:
            raise NotInitializedError()

        descriptor = self.registry.get(command_name)
        if descriptor is None:
            raise UnknownCommandError(command_name, self.registry.get_names())

        record = ExecutionRecord(id=make_id("exec"), command=command_name, args=list(args))
        self._running.append(record)
        logger.debug("Executing %s (%s) args=%s", command_name, record.id, args)
        started = time.perf_counter()

        try:
            result = await descriptor.execute(self, *args)
        except Exception as exc:
            duration = (time.perf_counter() - started) * 1000
            record.fail(str(exc), duration)
            self._settle(record)
            logger.info("Command failed: %s (%.2fms): %s", command_name, duration, exc)
            await self.events.emit(
                EventType.ERROR,
                {
                    "command": command_name,
                    "args": list(args),
                    "error": str(exc),
                    "duration": duration,
                    "executionId": record.id,
                },
            )
            raise
        finally:
            self._running = [r for r in self._running if r is not record]

        duration = (time.perf_counter() - started) * 1000
        record.complete(result, duration)
        self._settle(record)
        logger.info("Command completed: %s (%.2fms)", command_name, duration)
        await self.events.emit(
            EventType.COMMAND,
            {
                "command": command_name,
                "args": list(args),
                "result": result,
                "duration": duration,
                "executionId": record.id,
            },
        )

        payload = result if isinstance(result, dict) else {"result": result}
        return {**payload, "command": command_name, "duration": duration, "timestamp": utc_now_iso()}

    def _settle(self, record: ExecutionRecord) -> None:
        self._history.insert(0, record)
        del self._history[self.settings.bridge.history_limit :]

    # ------------------------------------------------------------------
    # Element helpers
    # ------------------------------------------------------------------

    async def find_element(self, selector: Any) -> Element | None:
        """Resolve *selector* through the selector engine."""
        return await self.selector_engine.find(selector)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def discover(self) -> list[dict[str, Any]]:
        """Name, description, parameters and examples of every command."""
        return [descriptor.discovery() for descriptor in self.registry.get_all()]

    def get_history(self, limit: int = 50) -> list[ExecutionRecord]:
        """Settled executions, newest first."""
        return list(self._history[:limit])

    def get_running(self) -> list[ExecutionRecord]:
        """Executions that have started but not settled."""
        return list(self._running)

    def clear_history(self) -> None:
        self._history.clear()
        logger.debug("Command history cleared")

    def get_status(self) -> dict[str, Any]:
        uptime = (time.perf_counter() - self._init_started) * 1000 if self._init_started else 0.0
        return {
            "initialized": self.is_initialized,
            "state": self._state.value,
            "version": self.settings.bridge.version,
            "commands": self.registry.get_names(),
            "commandCount": self.registry.size(),
            "historyLength": len(self._history),
            "runningCount": len(self._running),
            "uptime": uptime,
            "config": self.settings.bridge.model_dump(),
            "remoteControl": self.get_remote_control_status(),
        }

    # ------------------------------------------------------------------
    # Command management
    # ------------------------------------------------------------------

    def register_command(self, name: str, command: CommandDescriptor | dict[str, Any]) -> CommandDescriptor:
        """Register a custom command (overwrites an existing name)."""
        stored = self.registry.register(name, command)
        logger.info("Custom command registered: %s", name)
        return stored

    def unregister_command(self, name: str) -> bool:
        removed = self.registry.unregister(name)
        if removed:
            logger.info("Command unregistered: %s", name)
        return removed

    # ------------------------------------------------------------------
    # Screenshot configuration and capture collaborators
    # ------------------------------------------------------------------

    def configure_screenshots(self, config: dict[str, Any] | None = None, **overrides: Any) -> dict[str, Any]:
        """Merge overrides into the default screenshot save config."""
        self._screenshot_config = {**self._screenshot_config, **(config or {}), **overrides}
        logger.debug("Screenshot configuration updated: %s", self._screenshot_config)
        return self.get_screenshot_config()

    def get_screenshot_config(self) -> dict[str, Any]:
        return dict(self._screenshot_config)

    @property
    def capture_loader(self) -> CapabilityLoader:
        """Rasterizer loader; built from the Playwright page on first use."""
        if self._capture_loader is None:
            page = getattr(self.document, "page", None)
            if page is None:
                raise CapabilityLoadError([])
            from uibridge.capture.loader import build_playwright_loader

            capture = self.settings.capture
            self._capture_loader = build_playwright_loader(
                page,
                capture.rasterizer_sources,
                native_fallback=capture.native_fallback,
                load_timeout_sec=capture.source_load_timeout_sec,
            )
        return self._capture_loader

    def reset_capture(self) -> None:
        """Forget the loaded rasterizer; injected scripts do not survive a navigation."""
        if self._capture_loader is not None:
            self._capture_loader.reset()

    @property
    def saver(self) -> ScreenshotSaver:
        if self._saver is None:
            from uibridge.capture.storage import ScreenshotSaver

            shots = self.settings.screenshot
            self._saver = ScreenshotSaver(
                shots.download_dir,
                store_path=shots.store_path,
                timeout_sec=self.settings.remote.request_timeout_sec,
            )
        return self._saver

    # ------------------------------------------------------------------
    # Help
    # ------------------------------------------------------------------

    def get_help(self, command_name: str | None = None) -> dict[str, Any]:
        """Help for one command, or the general framework overview."""
        if command_name:
            descriptor = self.registry.get(command_name)
            if descriptor is None:
                return {
                    "error": f"Unknown command: {command_name}",
                    "availableCommands": ", ".join(self.registry.get_names()),
                    "suggestion": "Use 'help' without arguments to see all commands",
                }
            return {
                "command": descriptor.name,
                "description": descriptor.description,
                "parameters": [p.model_dump() for p in descriptor.parameters or []],
                "examples": list(descriptor.examples),
                "usage": descriptor.usage(),
                "tips": _TIPS.get(descriptor.name, ["Await every command", "Handle errors around each call"]),
            }

        return {
            "framework": "UIBridge",
            "version": self.settings.bridge.version,
            "description": "In-app automation for live web pages, designed for agent control",
            "quickStart": {
                "step1": "Execute commands with: await bridge.execute('commandName', *args)",
                "step2": "Find elements with selectors: CSS, text, test ids, labels, XPath",
                "step3": "Catch UIBridgeError subclasses to handle failures",
            },
            "commands": [
                {
                    "name": d.name,
                    "description": d.description,
                    "parameters": len(d.parameters or []),
                    "usage": d.usage(),
                    "useCase": _USE_CASES.get(d.name, "General automation command"),
                }
                for d in self.registry.get_all()
            ],
            "selectorStrategies": [
                {"priority": i, "key": name, "syntax": _STRATEGY_SYNTAX[name]}
                for i, name in enumerate(STRATEGY_ORDER, start=1)
            ],
            "errorHandling": {
                "Element not found": "Try a different selector strategy or wait for the element to appear",
                "Element is not visible": "Scroll the page or pass { force: true }",
                "Unknown command": "Call help to list the registered commands",
            },
        }

    # ------------------------------------------------------------------
    # Remote control
    # ------------------------------------------------------------------

    async def start_remote_control(self) -> None:
        """Register with the controller and start polling for commands."""
        if self.remote is None:
            from uibridge.remote.channel import RemoteControlChannel

            self.remote = RemoteControlChannel(self, self.settings.remote)
        if self.remote.is_running:
            logger.debug("Remote control already running")
            return
        await self.remote.start()
        await self.events.emit(
            EventType.REMOTE_CONNECTED,
            {"serverUrl": self.remote.server_url, "clientId": self.remote.client_id},
        )

    async def stop_remote_control(self) -> None:
        """Stop scheduling polls and heartbeats; in-flight work is not aborted."""
        if self.remote is None or not self.remote.is_running:
            return
        await self.remote.stop()
        await self.events.emit(EventType.REMOTE_STOPPED, {"serverUrl": self.remote.server_url})

    def get_remote_control_status(self) -> dict[str, Any]:
        remote = self.settings.remote
        if self.remote is not None:
            return self.remote.status()
        return {
            "enabled": remote.enabled,
            "polling": False,
            "serverUrl": remote.server_url,
            "pollInterval": remote.poll_interval_ms,
            "clientId": None,
        }
