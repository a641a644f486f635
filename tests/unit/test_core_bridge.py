"""Unit tests for the UIBridge execution core."""

from __future__ import annotations

import asyncio

import pytest

from fakes import FakeDocument
from uibridge.core.bridge import BridgeState, UIBridge
from uibridge.exceptions import (
    ElementNotFoundError,
    NotInitializedError,
    RegistrationValidationError,
    UnknownCommandError,
)
from uibridge.models.execution import ExecutionStatus
from uibridge.monitoring.event_bus import EventType

pytestmark = pytest.mark.anyio


class TestInit:
    async def test_registers_core_commands(self, bridge) -> None:
        assert bridge.state is BridgeState.READY
        assert bridge.registry.get_names() == ["click", "screenshot", "help"]
        assert bridge.sink.of_type(EventType.INITIALIZED)[0].data["commands"] == ["click", "screenshot", "help"]

    async def test_second_init_is_noop(self, bridge) -> None:
        await bridge.init()
        assert len(bridge.sink.of_type(EventType.INITIALIZED)) == 1

    async def test_unknown_configured_command_is_skipped(self, document, settings) -> None:
        settings.bridge.commands = ["click", "teleport"]
        b = UIBridge(document, settings=settings)
        await b.init()
        assert b.registry.get_names() == ["click"]

    async def test_failed_init_rolls_back(self, document, settings, monkeypatch) -> None:
        b = UIBridge(document, settings=settings)

        def boom(name, command):
            raise RegistrationValidationError("broken")

        monkeypatch.setattr(b.registry, "register", boom)
        with pytest.raises(RegistrationValidationError):
            await b.init()
        assert b.state is BridgeState.UNINITIALIZED
        assert b.registry.size() == 0


class TestExecute:
    async def test_not_initialized(self, document, settings) -> None:
        b = UIBridge(document, settings=settings)
        with pytest.raises(NotInitializedError):
            await b.execute("click", "#submit")

    async def test_help_works_before_init(self, document, settings) -> None:
        b = UIBridge(document, settings=settings)
        assert (await b.execute("help"))["framework"] == "UIBridge"
        assert (await b.execute("--help"))["framework"] == "UIBridge"

    async def test_unknown_command(self, bridge) -> None:
        with pytest.raises(UnknownCommandError) as exc_info:
            await bridge.execute("teleport")
        assert exc_info.value.available == ["click", "screenshot", "help"]
        assert "teleport" in str(exc_info.value)

    async def test_success_merges_metadata(self, bridge) -> None:
        result = await bridge.execute("click", "#submit")
        assert result["success"] is True
        assert result["command"] == "click"
        assert result["duration"] >= 0
        assert result["timestamp"]

    async def test_non_dict_result_is_wrapped(self, bridge) -> None:
        async def answer(b):
            return 42

        bridge.register_command(
            "answer", {"name": "answer", "description": "The answer", "parameters": [], "execute": answer}
        )
        result = await bridge.execute("answer")
        assert result["result"] == 42
        assert result["command"] == "answer"

    async def test_history_records_success_and_failure(self, bridge) -> None:
        await bridge.execute("click", "#submit")
        with pytest.raises(ElementNotFoundError):
            await bridge.execute("click", "#missing")
        history = bridge.get_history()
        assert [r.status for r in history] == [ExecutionStatus.FAILED, ExecutionStatus.COMPLETED]
        assert history[0].error.startswith("Element not found")
        assert history[0].duration_ms is not None
        assert all(r.id.startswith("exec_") for r in history)
        assert bridge.get_running() == []

    async def test_failure_emits_error_event_and_reraises(self, bridge) -> None:
        with pytest.raises(ElementNotFoundError):
            await bridge.execute("click", "#missing")
        errors = bridge.sink.of_type(EventType.ERROR)
        assert errors and errors[0].data["command"] == "click"

    async def test_success_emits_command_event(self, bridge) -> None:
        await bridge.execute("click", "#submit")
        assert bridge.sink.of_type(EventType.COMMAND)[0].data["command"] == "click"

    async def test_history_is_bounded(self, bridge) -> None:
        bridge.settings.bridge.history_limit = 3
        for _ in range(5):
            await bridge.execute("help")
            await bridge.execute("click", "#submit")
        assert len(bridge.get_history()) == 3
        assert len(bridge.get_history(limit=2)) == 2

    async def test_running_visible_while_in_flight(self, bridge) -> None:
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow(b):
            started.set()
            await release.wait()
            return {}

        bridge.register_command("slow", {"name": "slow", "description": "Slow", "parameters": [], "execute": slow})
        task = asyncio.create_task(bridge.execute("slow"))
        await started.wait()
        assert [r.command for r in bridge.get_running()] == ["slow"]
        release.set()
        await task
        assert bridge.get_running() == []

    async def test_cancelled_command_leaves_running_list(self, bridge) -> None:
        started = asyncio.Event()

        async def hang(b):
            started.set()
            await asyncio.Event().wait()

        bridge.register_command("hang", {"name": "hang", "description": "Hangs", "parameters": [], "execute": hang})
        task = asyncio.create_task(bridge.execute("hang"))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert bridge.get_running() == []

    async def test_clear_history(self, bridge) -> None:
        await bridge.execute("click", "#submit")
        bridge.clear_history()
        assert bridge.get_history() == []


class TestIntrospection:
    async def test_discover(self, bridge) -> None:
        names = [entry["name"] for entry in bridge.discover()]
        assert names == ["click", "screenshot", "help"]

    async def test_status(self, bridge) -> None:
        status = bridge.get_status()
        assert status["initialized"] is True
        assert status["commandCount"] == 3
        assert status["remoteControl"]["polling"] is False

    async def test_help_for_command(self, bridge) -> None:
        info = await bridge.execute("help", "click")
        assert info["command"] == "click"
        assert info["usage"] == "execute('click', selector, [options])"
        assert info["tips"]

    async def test_help_for_unknown_command(self, bridge) -> None:
        info = bridge.get_help("teleport")
        assert info["error"] == "Unknown command: teleport"
        assert "click" in info["availableCommands"]

    async def test_help_lists_strategies_in_priority_order(self, bridge) -> None:
        strategies = bridge.get_help()["selectorStrategies"]
        assert strategies[0]["key"] == "path"
        assert strategies[-1]["key"] == "query"

    async def test_unregister(self, bridge) -> None:
        assert bridge.unregister_command("click") is True
        assert bridge.unregister_command("click") is False
        with pytest.raises(UnknownCommandError):
            await bridge.execute("click", "#submit")


class TestScreenshotConfig:
    async def test_configure_merges(self, bridge) -> None:
        config = bridge.configure_screenshots({"folder": "shots"}, prefix="page")
        assert config["folder"] == "shots"
        assert config["prefix"] == "page"
        assert config["timestamp"] is True

    async def test_returned_config_is_a_copy(self, bridge) -> None:
        bridge.get_screenshot_config()["folder"] = "mutated"
        assert bridge.get_screenshot_config()["folder"] == "uibridge-screenshots"

    async def test_reset_capture_forgets_rasterizer(self, bridge) -> None:
        await bridge.execute("screenshot")
        assert bridge.capture_loader.accepted_source == "fake"
        bridge.reset_capture()
        assert bridge.capture_loader.accepted_source is None
        await bridge.execute("screenshot")
        assert bridge.capture_loader.accepted_source == "fake"

    async def test_capture_loader_requires_page(self, settings) -> None:
        from uibridge.exceptions import CapabilityLoadError

        b = UIBridge(FakeDocument(), settings=settings)
        with pytest.raises(CapabilityLoadError):
            b.capture_loader
