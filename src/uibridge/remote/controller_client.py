"""HTTP client for talking to a running controller.

Used by the ``uibridge exec`` / ``uibridge clients`` CLI commands and by
scripts that drive a page agent through the controller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"completed", "failed"})


class ControllerClient:
    """Thin async wrapper over the controller's JSON endpoints.

    Args:
        base_url: Controller address, e.g. ``http://localhost:3002``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3002",
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ControllerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, **params: Any) -> dict[str, Any]:
        resp = await self._client.get(path, params=params or None)
        resp.raise_for_status()
        return resp.json()

    async def health(self) -> dict[str, Any]:
        return await self._get("/health")

    async def execute(
        self,
        command: str,
        *,
        selector: Any = None,
        options: dict[str, Any] | None = None,
        client_id: str | None = None,
    ) -> dict[str, Any]:
        """Queue *command*; returns ``{success, commandId, clientId, status}``."""
        body: dict[str, Any] = {"command": command, "options": options or {}}
        if selector is not None:
            body["selector"] = selector
        if client_id:
            body["clientId"] = client_id
        resp = await self._client.post("/execute", json=body)
        resp.raise_for_status()
        return resp.json()

    async def result(self, command_id: str) -> dict[str, Any]:
        return await self._get(f"/command-result/{command_id}")

    async def wait_for_result(
        self,
        command_id: str,
        *,
        timeout: float = 30.0,
        interval: float = 0.5,
    ) -> dict[str, Any]:
        """Poll ``GET /command-result/{id}`` until the command settles.

        Raises:
            TimeoutError: If the command has not completed within *timeout*.
        """
        deadline = time.monotonic() + timeout
        while True:
            data = await self.result(command_id)
            if data.get("status") in TERMINAL_STATUSES:
                return data
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Command {command_id} still {data.get('status')} after {timeout:g}s")
            await asyncio.sleep(interval)

    async def clients(self) -> dict[str, Any]:
        return await self._get("/clients")

    async def activity(self, limit: int = 50) -> dict[str, Any]:
        return await self._get("/activity", limit=limit)

    async def screenshots(self) -> dict[str, Any]:
        return await self._get("/screenshots")
