"""Command descriptor models stored by the ``CommandRegistry``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

CommandHandler = Callable[..., Awaitable[Any]]


class CommandParameter(BaseModel):
    """One positional parameter of a command."""

    name: str
    type: str = "any"
    required: bool = False
    description: str = ""


@dataclass
class CommandDescriptor:
    """A named automation command with its async ``execute(bridge, *args)`` handler."""

    name: str = ""
    description: str = ""
    parameters: list[CommandParameter] | None = None
    execute: CommandHandler | None = None
    examples: list[str] = field(default_factory=list)
    registered_at: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "CommandDescriptor":
        """Build a descriptor from a plain mapping (JSON-style keys)."""
        parameters = data.get("parameters")
        if parameters is not None:
            parameters = [
                p if isinstance(p, CommandParameter) else CommandParameter(**p) for p in parameters
            ]
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            parameters=parameters,
            execute=data.get("execute"),
            examples=list(data.get("examples") or []),
            registered_at=data.get("registered_at"),
        )

    def discovery(self) -> dict[str, Any]:
        """JSON-safe discovery entry (``execute`` omitted)."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [p.model_dump() for p in self.parameters or []],
            "examples": list(self.examples),
        }

    def usage(self) -> str:
        """``execute('name', required, [optional])`` usage string."""
        names = [p.name if p.required else f"[{p.name}]" for p in self.parameters or []]
        joined = ", ".join(names)
        return f"execute('{self.name}'{', ' + joined if joined else ''})"
