"""Built-in commands registered by ``UIBridge.init``."""

from uibridge.commands.click import CLICK_COMMAND
from uibridge.commands.help import HELP_COMMAND
from uibridge.commands.screenshot import SCREENSHOT_COMMAND
from uibridge.models.command import CommandDescriptor

CORE_COMMANDS: dict[str, CommandDescriptor] = {
    "click": CLICK_COMMAND,
    "screenshot": SCREENSHOT_COMMAND,
    "help": HELP_COMMAND,
}

__all__ = ["CORE_COMMANDS", "CLICK_COMMAND", "HELP_COMMAND", "SCREENSHOT_COMMAND"]
