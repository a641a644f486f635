"""Command registry — named, validated storage of command descriptors."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any

from uibridge.exceptions import RegistrationValidationError
from uibridge.models.command import CommandDescriptor

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("name", "description", "parameters")


class CommandRegistry:
    """In-memory command table.

    ``register`` stores a shallow copy stamped with ``registered_at``;
    re-registering an existing name replaces the previous descriptor.
    """

    def __init__(self) -> None:
        self._commands: dict[str, CommandDescriptor] = {}

    def register(self, name: str, command: CommandDescriptor | dict[str, Any]) -> CommandDescriptor:
        """Validate and store *command* under *name*.

        Raises:
            RegistrationValidationError: If the name is empty, ``execute`` is
                not callable, or a required field is missing.
        """
        if not name or not isinstance(name, str):
            raise RegistrationValidationError("Command name must be a non-empty string", field="name")

        if isinstance(command, dict):
            descriptor = CommandDescriptor.from_mapping(command)
        elif isinstance(command, CommandDescriptor):
            descriptor = command
        else:
            raise RegistrationValidationError("Command must have an execute function", field="execute")

        if not callable(descriptor.execute):
            raise RegistrationValidationError("Command must have an execute function", field="execute")

        for field in _REQUIRED_FIELDS:
            value = getattr(descriptor, field)
            missing = value is None if field == "parameters" else not value
            if missing:
                raise RegistrationValidationError(f"Command must have a {field} property", field=field)

        stored = dataclasses.replace(
            descriptor,
            parameters=list(descriptor.parameters or []),
            examples=list(descriptor.examples),
            registered_at=datetime.now(timezone.utc).isoformat(),
        )
        if name in self._commands:
            logger.debug("Overwriting command %s", name)
        self._commands[name] = stored
        return stored

    def get(self, name: str) -> CommandDescriptor | None:
        """Return the descriptor for *name*, or ``None``."""
        return self._commands.get(name)

    def has(self, name: str) -> bool:
        return name in self._commands

    def unregister(self, name: str) -> bool:
        """Remove *name*; return whether it was registered."""
        return self._commands.pop(name, None) is not None

    def get_all(self) -> list[CommandDescriptor]:
        return list(self._commands.values())

    def get_names(self) -> list[str]:
        return list(self._commands.keys())

    def size(self) -> int:
        return len(self._commands)

    def clear(self) -> None:
        self._commands.clear()

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands
