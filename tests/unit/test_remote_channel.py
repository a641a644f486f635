"""Unit tests for the page-agent side of the remote control protocol."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from uibridge.monitoring.event_bus import EventType
from uibridge.remote.channel import RemoteControlChannel
from uibridge.settings.config import RemoteSettings

pytestmark = pytest.mark.anyio


class FakeController:
    """Scripted controller answering the channel's HTTP calls."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, dict]] = []
        self.queue: list[dict] = []
        self.poll_status = 200
        self.heartbeat_status = 200
        self.result_statuses: list[int] = []
        self.registrations = 0
        self.log: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        path = request.url.path
        self.requests.append((request.method, path, body))
        if path == "/register-client":
            self.registrations += 1
            return httpx.Response(200, json={"success": True, "clientId": f"client_{self.registrations}"})
        if path.startswith("/poll-commands/"):
            if self.poll_status != 200:
                return httpx.Response(self.poll_status, json={"detail": "Client not found"})
            commands, self.queue = self.queue, []
            return httpx.Response(200, json={"success": True, "commands": commands})
        if path.startswith("/heartbeat/"):
            return httpx.Response(self.heartbeat_status, json={"success": True})
        if path.startswith("/command-result/"):
            self.log.append("post:" + path.rsplit("/", 1)[1])
            status = self.result_statuses.pop(0) if self.result_statuses else 200
            return httpx.Response(status, json={"success": True})
        return httpx.Response(404)

    def posted_results(self) -> list[tuple[str, dict]]:
        return [(p.rsplit("/", 1)[1], b) for m, p, b in self.requests if p.startswith("/command-result/")]


@pytest.fixture()
def controller() -> FakeController:
    return FakeController()


@pytest.fixture()
async def channel(bridge, controller):
    settings = RemoteSettings(server_url="http://controller.test/", poll_interval_ms=10, heartbeat_interval_sec=0.01)
    ch = RemoteControlChannel(bridge, settings, transport=httpx.MockTransport(controller))
    yield ch
    await ch.aclose()


class TestRegistration:
    async def test_register_sends_page_identity(self, channel, controller) -> None:
        assert await channel.register() == "client_1"
        method, path, body = controller.requests[0]
        assert (method, path) == ("POST", "/register-client")
        assert body == {"userAgent": "FakeAgent/1.0", "url": "https://app.test/"}
        assert channel.server_url == "http://controller.test"

    async def test_first_poll_registers(self, channel, controller) -> None:
        assert await channel.poll_once() == 0
        assert channel.client_id == "client_1"

    async def test_poll_404_triggers_reregistration(self, channel, controller) -> None:
        await channel.register()
        controller.poll_status = 404
        await channel.poll_once()
        assert channel.client_id is None
        controller.poll_status = 200
        await channel.poll_once()
        assert channel.client_id == "client_2"

    async def test_heartbeat_404_resets_client(self, channel, controller) -> None:
        await channel.register()
        controller.heartbeat_status = 404
        await channel.heartbeat_once()
        assert channel.client_id is None

    async def test_heartbeat_without_session_is_skipped(self, channel, controller) -> None:
        await channel.heartbeat_once()
        assert controller.requests == []


class TestDispatch:
    async def test_results_posted_in_order(self, channel, controller, bridge) -> None:
        async def note(b, tag):
            controller.log.append(f"exec:{tag}")
            return {"tag": tag}

        bridge.register_command(
            "note", {"name": "note", "description": "Log a tag", "parameters": [], "execute": note}
        )
        await channel.register()
        controller.queue = [
            {"id": "cmd_1", "command": "note", "selector": "a"},
            {"id": "cmd_2", "command": "note", "selector": "b"},
            {"id": "cmd_3", "command": "note", "selector": "c"},
        ]
        assert await channel.poll_once() == 3
        assert controller.log == ["exec:a", "post:cmd_1", "exec:b", "post:cmd_2", "exec:c", "post:cmd_3"]

    async def test_success_and_failure_bodies(self, channel, controller) -> None:
        await channel.register()
        controller.queue = [
            {"id": "cmd_ok", "command": "click", "selector": "#submit", "options": {"force": True}},
            {"id": "cmd_bad", "command": "click", "selector": "#missing", "options": {}},
            {"id": "cmd_unknown", "command": "teleport", "options": {}},
        ]
        await channel.poll_once()
        results = dict(controller.posted_results())
        assert results["cmd_ok"]["success"] is True
        assert results["cmd_ok"]["result"]["element"]["id"] == "submit"
        assert results["cmd_bad"] == {"success": False, "error": 'Element not found: "#missing"'}
        assert results["cmd_unknown"]["success"] is False
        assert "Unknown command: teleport" in results["cmd_unknown"]["error"]

    async def test_failed_post_does_not_stop_batch(self, channel, controller) -> None:
        await channel.register()
        controller.result_statuses = [500, 200]
        controller.queue = [
            {"id": "cmd_1", "command": "help", "options": {}},
            {"id": "cmd_2", "command": "help", "options": {}},
        ]
        assert await channel.poll_once() == 2
        assert [cid for cid, _ in controller.posted_results()] == ["cmd_1", "cmd_2"]

    async def test_screenshot_receives_options_only(self, channel, controller, rasterizer) -> None:
        await channel.register()
        controller.queue = [{"id": "cmd_s", "command": "screenshot", "selector": None, "options": {"format": "png"}}]
        await channel.poll_once()
        body = dict(controller.posted_results())["cmd_s"]
        assert body["success"] is True
        assert body["result"]["dataUrl"].startswith("data:image/png")


class TestLifecycle:
    async def test_start_survives_unreachable_controller(self, bridge) -> None:
        def offline(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        ch = RemoteControlChannel(
            bridge, RemoteSettings(poll_interval_ms=10), transport=httpx.MockTransport(offline)
        )
        await ch.start()
        try:
            assert ch.is_running
            assert ch.client_id is None
        finally:
            await ch.aclose()
        assert not ch.is_running

    async def test_bridge_start_and_stop(self, bridge, channel) -> None:
        bridge.remote = channel
        await bridge.start_remote_control()
        assert bridge.get_remote_control_status()["polling"] is True
        assert bridge.get_remote_control_status()["clientId"] == "client_1"
        assert bridge.sink.of_type(EventType.REMOTE_CONNECTED)
        await bridge.stop_remote_control()
        assert bridge.get_remote_control_status()["polling"] is False
        assert bridge.sink.of_type(EventType.REMOTE_STOPPED)

    async def test_restart_keeps_commands_sequential(self, bridge, channel, controller) -> None:
        active = 0
        peak = 0
        done: list[str] = []

        async def slow(b, tag):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            done.append(tag)
            return {}

        bridge.register_command("slow", {"name": "slow", "description": "Slow", "parameters": [], "execute": slow})
        bridge.remote = channel
        controller.queue = [
            {"id": "cmd_1", "command": "slow", "selector": "a"},
            {"id": "cmd_2", "command": "slow", "selector": "b"},
        ]
        await bridge.start_remote_control()
        await asyncio.sleep(0.005)
        await bridge.stop_remote_control()
        controller.queue += [
            {"id": "cmd_3", "command": "slow", "selector": "c"},
            {"id": "cmd_4", "command": "slow", "selector": "d"},
        ]
        await bridge.start_remote_control()
        for _ in range(200):
            if len(done) == 4:
                break
            await asyncio.sleep(0.005)
        assert done == ["a", "b", "c", "d"]
        assert peak == 1
