"""Remote control protocol models (controller session table and wire bodies).

Wire JSON uses camelCase (``clientId``, ``userAgent``); models accept
either spelling and serialise with aliases via ``wire()``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from uibridge.models.execution import utc_now_iso


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def wire(self, **kwargs: Any) -> dict[str, Any]:
        """Dump with camelCase keys, JSON-compatible values."""
        return self.model_dump(by_alias=True, mode="json", **kwargs)


class CommandStatus(str, Enum):
    """Controller-side lifecycle of a queued command."""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"


class QueuedCommand(_WireModel):
    """A command accepted by the controller for one client."""

    id: str
    command: str
    selector: Any = None
    options: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_now_iso)
    client_id: str
    status: CommandStatus = CommandStatus.PENDING
    result: Any = None
    error: str | None = None
    completed_at: str | None = None


class ClientSession(_WireModel):
    """Controller-side record of one live page agent."""

    id: str
    url: str = "unknown"
    user_agent: str = "unknown"
    timestamp: str = Field(default_factory=utc_now_iso)
    last_seen: float = 0.0
    pending_commands: list[QueuedCommand] = Field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """Entry for ``GET /clients``."""
        return {
            "id": self.id,
            "url": self.url,
            "userAgent": self.user_agent,
            "connected": self.timestamp,
            "lastSeen": datetime.fromtimestamp(self.last_seen, timezone.utc).isoformat(),
            "pendingCommands": len(self.pending_commands),
        }


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class RegisterClientRequest(_WireModel):
    """Body of ``POST /register-client``."""

    user_agent: str = "unknown"
    url: str = "unknown"


class ExecuteRequest(_WireModel):
    """Body of ``POST /execute``."""

    command: str = Field(..., min_length=1)
    selector: Any = None
    options: dict[str, Any] = Field(default_factory=dict)
    client_id: str | None = None


class CommandResultRequest(_WireModel):
    """Body of ``POST /command-result/{commandId}``.

    Page agents may post the result flattened into the body; extra keys
    are kept and treated as the result payload.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    success: bool
    result: Any = None
    error: str | None = None
