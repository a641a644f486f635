"""``help`` command."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from uibridge.models.command import CommandDescriptor, CommandParameter

if TYPE_CHECKING:
    from uibridge.core.bridge import UIBridge


async def run_help(bridge: UIBridge, command_name: str | None = None) -> dict[str, Any]:
    return bridge.get_help(command_name)


HELP_COMMAND = CommandDescriptor(
    name="help",
    description="Get help information about UIBridge commands and usage patterns",
    parameters=[
        CommandParameter(
            name="commandName",
            type="string",
            required=False,
            description="Specific command to get help for (optional)",
        )
    ],
    execute=run_help,
    examples=["execute('help')", "execute('help', 'click')", "execute('help', 'screenshot')"],
)
