"""Controller-side session table, command queues and activity log.

One ``SessionStore`` lives on the FastAPI ``app.state``. It is plain
in-memory state mutated only from the event loop thread, so a controller
is a single process.

Delivery is at-most-once: ``poll`` hands the whole queue to the page
agent and empties it. A command fetched by an agent that dies before
posting its result stays ``dispatched`` forever and is never redelivered.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from uibridge.capture.data_url import MIME_EXTENSIONS, decode_data_url
from uibridge.exceptions import ClientNotFoundError, CommandNotFoundError, NoClientsConnectedError
from uibridge.models.execution import make_id, utc_now_iso
from uibridge.models.remote import ClientSession, CommandStatus, QueuedCommand

logger = logging.getLogger(__name__)

SCREENSHOT_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")
SETTLED = (CommandStatus.COMPLETED, CommandStatus.FAILED)


class SessionStore:
    """Registered page agents and the commands queued for them.

    Args:
        client_timeout_sec: Idle time after which ``sweep`` evicts a session.
        max_activity: Number of activity entries kept (newest first).
        max_settled: Number of finished commands whose results stay readable;
            older ones are forgotten first.
        screenshots_dir: Where screenshot results are written; ``None`` disables.
    """

    def __init__(
        self,
        *,
        client_timeout_sec: float = 300.0,
        max_activity: int = 100,
        max_settled: int = 100,
        screenshots_dir: str | Path | None = None,
    ) -> None:
        self.client_timeout_sec = client_timeout_sec
        self.max_activity = max_activity
        self.max_settled = max_settled
        self.screenshots_dir = Path(screenshots_dir) if screenshots_dir else None
        self._sessions: dict[str, ClientSession] = {}
        self._commands: dict[str, QueuedCommand] = {}
        self._settled: deque[str] = deque()
        self._activity: list[dict[str, Any]] = []
        self._counter = 0

    @property
    def connected_count(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def register(
        self, *, user_agent: str = "unknown", url: str = "unknown", now: float | None = None
    ) -> ClientSession:
        """Create a session with the next ``client_<n>`` id."""
        self._counter += 1
        session = ClientSession(
            id=f"client_{self._counter}",
            user_agent=user_agent or "unknown",
            url=url or "unknown",
            last_seen=time.time() if now is None else now,
        )
        self._sessions[session.id] = session
        logger.info("New page agent connected: %s at %s", session.id, session.url)
        self.track_activity("client-connect", True, clientId=session.id, url=session.url)
        return session

    def get_session(self, client_id: str) -> ClientSession:
        session = self._sessions.get(client_id)
        if session is None:
            raise ClientNotFoundError(client_id)
        return session

    def heartbeat(self, client_id: str, *, now: float | None = None) -> str:
        """Refresh ``last_seen``; return the server time."""
        session = self.get_session(client_id)
        session.last_seen = time.time() if now is None else now
        return utc_now_iso()

    def clients(self) -> list[dict[str, Any]]:
        return [session.summary() for session in self._sessions.values()]

    def sweep(self, *, now: float | None = None) -> list[str]:
        """Evict sessions idle for more than ``client_timeout_sec``.

        Unfinished commands of an evicted session are dropped with it;
        finished ones stay readable until pushed out by newer results.
        """
        now = time.time() if now is None else now
        evicted = [
            client_id
            for client_id, session in self._sessions.items()
            if now - session.last_seen > self.client_timeout_sec
        ]
        for client_id in evicted:
            self._sessions.pop(client_id)
            self._drop_unsettled(client_id)
            logger.info("Removing inactive client: %s", client_id)
        return evicted

    # ------------------------------------------------------------------
    # Command queue
    # ------------------------------------------------------------------

    def enqueue(
        self,
        command: str,
        *,
        selector: Any = None,
        options: dict[str, Any] | None = None,
        client_id: str | None = None,
    ) -> QueuedCommand:
        """Queue *command* for *client_id* (default: the first registered session).

        Raises:
            NoClientsConnectedError: If no session is registered.
            ClientNotFoundError: If *client_id* is unknown.
        """
        if not self._sessions:
            self.track_activity(command, False, error="No clients connected")
            raise NoClientsConnectedError()

        if client_id:
            target = self.get_session(client_id)
        else:
            target = next(iter(self._sessions.values()))

        queued = QueuedCommand(
            id=make_id("cmd"),
            command=command,
            selector=selector,
            options=options or {},
            client_id=target.id,
        )
        target.pending_commands.append(queued)
        self._commands[queued.id] = queued
        self.track_activity(
            command,
            True,
            commandId=queued.id,
            clientId=target.id,
            selector=selector,
        )
        logger.debug("Queued %s (%s) for %s", command, queued.id, target.id)
        return queued

    def poll(self, client_id: str) -> list[QueuedCommand]:
        """Hand over and clear the session's queue."""
        session = self.get_session(client_id)
        commands, session.pending_commands = session.pending_commands, []
        for command in commands:
            command.status = CommandStatus.DISPATCHED
        return commands

    def get_command(self, command_id: str) -> QueuedCommand:
        command = self._commands.get(command_id)
        if command is None:
            raise CommandNotFoundError(command_id)
        return command

    def record_result(self, command_id: str, body: dict[str, Any]) -> QueuedCommand:
        """Store a posted result and fold it into the activity entry.

        The page agent normally posts ``{success, result}``; a flattened body
        (result keys next to ``success``) is accepted too.
        """
        command = self.get_command(command_id)
        was_settled = command.status in SETTLED
        success = bool(body.get("success"))
        if "result" in body:
            result = body["result"]
        else:
            result = {k: v for k, v in body.items() if k not in ("success", "error", "commandId")} or None

        command.status = CommandStatus.COMPLETED if success else CommandStatus.FAILED
        command.result = result if success else None
        command.error = None if success else (body.get("error") or "Unknown error")
        command.completed_at = utc_now_iso()
        if not was_settled:
            self._remember_settled(command.id)

        update: dict[str, Any] = {"success": success, "completedAt": command.completed_at}
        if command.error:
            update["error"] = command.error
        if success and command.command == "screenshot" and isinstance(result, dict) and result.get("dataUrl"):
            saved = self._save_screenshot(result)
            if saved is not None:
                update["serverFilename"] = saved.name
                update["serverFilepath"] = str(saved)
        self._update_activity(command_id, update)
        return command

    def _remember_settled(self, command_id: str) -> None:
        self._settled.append(command_id)
        while len(self._settled) > self.max_settled:
            self._commands.pop(self._settled.popleft(), None)

    def _drop_unsettled(self, client_id: str) -> None:
        for command_id, command in list(self._commands.items()):
            if command.client_id == client_id and command.status not in SETTLED:
                del self._commands[command_id]

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def track_activity(self, command: str, success: bool, **details: Any) -> dict[str, Any]:
        entry = {
            "id": make_id("act"),
            "command": command,
            "success": success,
            "timestamp": utc_now_iso(),
            **details,
        }
        self._activity.insert(0, entry)
        del self._activity[self.max_activity :]
        return entry

    def activity(self, limit: int = 50) -> list[dict[str, Any]]:
        return self._activity[:limit]

    @property
    def activity_total(self) -> int:
        return len(self._activity)

    def _update_activity(self, command_id: str, update: dict[str, Any]) -> None:
        for entry in self._activity:
            if entry.get("commandId") == command_id:
                entry.update(update)
                return

    # ------------------------------------------------------------------
    # Screenshot files
    # ------------------------------------------------------------------

    def _save_screenshot(self, result: dict[str, Any]) -> Path | None:
        if self.screenshots_dir is None:
            return None
        try:
            mime, payload = decode_data_url(result["dataUrl"])
        except ValueError as exc:
            logger.warning("Screenshot result has an unreadable data URL: %s", exc)
            return None
        extension = MIME_EXTENSIONS.get(mime, result.get("format") or "png")
        stamp = datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-").replace("+", "_")
        path = self.screenshots_dir / f"screenshot-{stamp}.{extension}"
        try:
            self.screenshots_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as exc:
            logger.error("Failed to save screenshot %s: %s", path, exc)
            return None
        logger.info("Screenshot saved: %s (%d bytes)", path.name, len(payload))
        return path

    def list_screenshots(self) -> list[dict[str, Any]]:
        if self.screenshots_dir is None or not self.screenshots_dir.is_dir():
            return []
        entries = []
        for path in sorted(self.screenshots_dir.iterdir()):
            if path.suffix.lower() not in SCREENSHOT_SUFFIXES:
                continue
            stat = path.stat()
            entries.append(
                {
                    "filename": path.name,
                    "size": stat.st_size,
                    "created": datetime.fromtimestamp(stat.st_mtime, timezone.utc).isoformat(),
                    "url": f"/screenshots/{path.name}",
                }
            )
        return entries

    def screenshot_path(self, filename: str) -> Path | None:
        """Resolve *filename* inside the screenshots dir (``None`` if absent)."""
        if self.screenshots_dir is None:
            return None
        path = self.screenshots_dir / Path(filename).name
        return path if path.is_file() else None
