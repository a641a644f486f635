"""Page-agent side of the remote control protocol.

The channel registers the bridge with a controller, then runs two
independent loops:

* **poll** (``poll_interval_ms``): ``GET /poll-commands/{clientId}`` and run
  the returned commands one after another, posting each result to
  ``POST /command-result/{commandId}`` before starting the next;
* **heartbeat** (``heartbeat_interval_sec``): ``POST /heartbeat/{clientId}``.

Network failures are logged and retried on the next interval. A 404 means
the controller evicted this session, so the next poll registers again.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic_core import to_jsonable_python

from uibridge.remote.scheduler import RepeatingTask
from uibridge.settings.config import RemoteSettings

if TYPE_CHECKING:
    from uibridge.core.bridge import UIBridge

logger = logging.getLogger(__name__)


class RemoteControlChannel:
    """Poll a controller for commands and execute them on *bridge*.

    Args:
        bridge: The execution core commands are dispatched to.
        settings: Remote section of the settings.
        transport: Optional httpx transport (tests inject ``MockTransport``).
    """

    def __init__(
        self,
        bridge: UIBridge,
        settings: RemoteSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.bridge = bridge
        self.settings = settings or RemoteSettings()
        self.server_url = self.settings.server_url.rstrip("/")
        self.client_id: str | None = None
        self._client = httpx.AsyncClient(
            base_url=self.server_url,
            timeout=self.settings.request_timeout_sec,
            transport=transport,
        )
        self._poll = RepeatingTask("uibridge-poll", self.settings.poll_interval_ms / 1000, self.poll_once)
        self._heartbeat = RepeatingTask(
            "uibridge-heartbeat",
            self.settings.heartbeat_interval_sec,
            self.heartbeat_once,
            run_immediately=False,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._poll.is_running

    async def start(self) -> None:
        """Register and start the poll and heartbeat loops.

        A failed registration is logged; the poll loop retries it.
        """
        try:
            await self.register()
        except httpx.HTTPError as exc:
            logger.warning("Registration with %s failed, will retry: %s", self.server_url, exc)
        self._poll.start()
        self._heartbeat.start()
        logger.info("Remote control polling %s every %sms", self.server_url, self.settings.poll_interval_ms)

    async def stop(self) -> None:
        """Stop scheduling; a command batch already running is not aborted."""
        self._poll.stop()
        self._heartbeat.stop()
        logger.info("Remote control polling stopped")

    async def aclose(self) -> None:
        """Cancel both loops and close the HTTP client."""
        await self._poll.cancel()
        await self._heartbeat.cancel()
        await self._client.aclose()

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.settings.enabled,
            "polling": self.is_running,
            "serverUrl": self.server_url,
            "pollInterval": self.settings.poll_interval_ms,
            "clientId": self.client_id,
        }

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------

    async def register(self) -> str:
        """``POST /register-client`` and remember the assigned client id."""
        document = self.bridge.document
        body = {"userAgent": await document.user_agent() or "unknown", "url": await document.url() or "unknown"}
        resp = await self._client.post("/register-client", json=body)
        resp.raise_for_status()
        self.client_id = resp.json()["clientId"]
        logger.info("Registered with %s as %s", self.server_url, self.client_id)
        return self.client_id

    async def poll_once(self) -> int:
        """Fetch and run one batch of queued commands.

        Returns:
            Number of commands dispatched.
        """
        if self.client_id is None:
            await self.register()
            return 0

        resp = await self._client.get(f"/poll-commands/{self.client_id}")
        if resp.status_code == 404:
            logger.warning("Session %s unknown to controller; re-registering", self.client_id)
            self.client_id = None
            return 0
        resp.raise_for_status()

        commands = resp.json().get("commands") or []
        if commands:
            logger.info("Received %d command(s) from controller", len(commands))
        for command in commands:
            await self.dispatch(command)
        return len(commands)

    async def heartbeat_once(self) -> None:
        if self.client_id is None:
            return
        resp = await self._client.post(f"/heartbeat/{self.client_id}")
        if resp.status_code == 404:
            logger.warning("Heartbeat rejected for %s; re-registering on next poll", self.client_id)
            self.client_id = None
            return
        resp.raise_for_status()

    async def dispatch(self, command: dict[str, Any]) -> dict[str, Any]:
        """Execute one queued command and post its result.

        Returns:
            The result body that was posted.
        """
        command_id = command.get("id")
        name = command.get("command", "")
        try:
            result = await self._execute(name, command.get("selector"), command.get("options"))
            body = {"success": True, "result": to_jsonable_python(result, fallback=str)}
            logger.debug("Remote command %s (%s) succeeded", name, command_id)
        except Exception as exc:
            body = {"success": False, "error": str(exc)}
            logger.info("Remote command %s (%s) failed: %s", name, command_id, exc)

        try:
            resp = await self._client.post(f"/command-result/{command_id}", json=body)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to post result for %s: %s", command_id, exc)
        return body

    async def _execute(self, name: str, selector: Any, options: Any) -> Any:
        if name == "click":
            return await self.bridge.execute("click", selector, options)
        if name == "screenshot":
            return await self.bridge.execute("screenshot", options)
        args = [arg for arg in (selector, options) if arg is not None]
        return await self.bridge.execute(name, *args)
