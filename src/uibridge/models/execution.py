"""Execution bookkeeping models for ``UIBridge.execute``."""

from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def make_id(prefix: str) -> str:
    """``<prefix>_<epoch ms>_<9 random base-36 chars>``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class ExecutionStatus(str, Enum):
    """Lifecycle of one command invocation."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionRecord(BaseModel):
    """One command invocation: created when it starts, settled exactly once."""

    id: str
    command: str
    args: list[Any] = Field(default_factory=list)
    start_time: str = Field(default_factory=utc_now_iso)
    status: ExecutionStatus = ExecutionStatus.RUNNING
    duration_ms: float | None = None
    result: Any = None
    error: str | None = None
    end_time: str | None = None

    def complete(self, result: Any, duration_ms: float) -> None:
        """Settle the record as completed."""
        self.status = ExecutionStatus.COMPLETED
        self.result = result
        self.duration_ms = duration_ms
        self.end_time = utc_now_iso()

    def fail(self, error: str, duration_ms: float) -> None:
        """Settle the record as failed."""
        self.status = ExecutionStatus.FAILED
        self.error = error
        self.duration_ms = duration_ms
        self.end_time = utc_now_iso()
