"""Unified CLI entry point for UIBridge.

Config precedence: settings.default.toml -> settings.<env>.toml -> settings.local.toml
-> env vars (UIBRIDGE_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import logging
import os
import sys

import typer

from uibridge import __version__
from uibridge.cli.agent_cmd import attach
from uibridge.cli.controller_cmd import activity, clients, exec_command
from uibridge.cli.serve_cmd import serve
from uibridge.cli.settings_cmd import settings_app
from uibridge.cli.store_cmd import stored

APP_HELP = (
    "uibridge — drive live web pages with named automation commands. "
    "Run a controller with `serve`, attach a page agent with `attach`, and queue commands with `exec`. "
    "Config precedence: settings.default.toml -> settings.local.toml -> env vars (UIBRIDGE_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("serve")(serve)
app.command("attach")(attach)
app.command("exec")(exec_command)
app.command("clients")(clients)
app.command("activity")(activity)
app.command("stored")(stored)
app.add_typer(settings_app, name="settings")


def configure_logging(verbose: bool = False) -> None:
    """Configure the root logger for CLI runs."""
    level_name = "DEBUG" if verbose else os.environ.get("UIBRIDGE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"uibridge {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    configure_logging(verbose)


if __name__ == "__main__":
    app()
