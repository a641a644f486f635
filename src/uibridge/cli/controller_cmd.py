"""CLI commands that talk to a running controller."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

console = Console()


def _parse_selector(raw: str | None) -> Any:
    """JSON object selectors (``{"text": "Submit"}``) or plain CSS strings."""
    if raw is None:
        return None
    if raw.lstrip().startswith("{"):
        return json.loads(raw)
    return raw


def _server_url(server: str | None) -> str:
    from uibridge.settings import get_settings

    return server or get_settings().remote.server_url


def _fail(exc: httpx.HTTPError) -> typer.Exit:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            detail = exc.response.json().get("detail", exc.response.text)
        except ValueError:
            detail = exc.response.text
        console.print(f"[red]✗[/red] Controller returned {exc.response.status_code}: {detail}")
    else:
        console.print(f"[red]✗[/red] Controller not reachable: {exc}")
    return typer.Exit(code=1)


def _save_image(result: dict[str, Any], output: Path) -> None:
    from uibridge.capture.data_url import decode_data_url

    data_url = (result.get("result") or {}).get("dataUrl")
    if not data_url:
        console.print("[yellow]No image data in result; nothing written.[/yellow]")
        return
    _, payload = decode_data_url(data_url)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(payload)
    console.print(f"[green]✓[/green] Image written to {output}")


async def _exec(
    server: str,
    command: str,
    selector: Any,
    options: dict[str, Any],
    client_id: str | None,
    wait: bool,
    timeout: float,
) -> dict[str, Any]:
    from uibridge.remote.controller_client import ControllerClient

    async with ControllerClient(server) as client:
        queued = await client.execute(command, selector=selector, options=options, client_id=client_id)
        if not wait:
            return queued
        return await client.wait_for_result(queued["commandId"], timeout=timeout)


def exec_command(
    command: str = typer.Argument(..., help="Command name, e.g. click, screenshot, help."),
    selector: Optional[str] = typer.Option(None, "--selector", "-s", help="CSS selector or JSON selector object."),
    options: Optional[str] = typer.Option(None, "--options", "-o", help="JSON object of command options."),
    client_id: Optional[str] = typer.Option(None, "--client", "-c", help="Target client id (default: first)."),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for the page agent's result."),
    timeout: float = typer.Option(30.0, "--timeout", help="Seconds to wait for the result."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write a screenshot result image to this path."),
    server: Optional[str] = typer.Option(None, "--server", help="Controller URL."),
) -> None:
    """Queue a command on the controller and print the result."""
    try:
        parsed_options = json.loads(options) if options else {}
        parsed_selector = _parse_selector(selector)
    except json.JSONDecodeError as exc:
        console.print(f"[red]✗[/red] Invalid JSON: {exc}")
        raise typer.Exit(code=2)

    try:
        data = asyncio.run(
            _exec(_server_url(server), command, parsed_selector, parsed_options, client_id, wait, timeout)
        )
    except httpx.HTTPError as exc:
        raise _fail(exc) from exc
    except TimeoutError as exc:
        console.print(f"[red]✗[/red] {exc}")
        raise typer.Exit(code=1) from exc

    if output is not None:
        _save_image(data, output)
        data = {**data, "result": {k: v for k, v in (data.get("result") or {}).items() if k != "dataUrl"}}

    console.print_json(json.dumps(data, default=str))
    if data.get("status") == "failed":
        raise typer.Exit(code=1)


def clients(server: Optional[str] = typer.Option(None, "--server", help="Controller URL.")) -> None:
    """List page agents registered with the controller."""
    from uibridge.remote.controller_client import ControllerClient

    async def _run() -> dict[str, Any]:
        async with ControllerClient(_server_url(server)) as client:
            return await client.clients()

    try:
        data = asyncio.run(_run())
    except httpx.HTTPError as exc:
        raise _fail(exc) from exc

    columns = ("id", "url", "connected", "lastSeen", "pendingCommands")
    table = Table(title=f"Connected clients ({data.get('total', 0)})")
    for column in columns:
        table.add_column(column)
    for entry in data.get("clients", []):
        table.add_row(*(str(entry.get(column, "")) for column in columns))
    console.print(table)


def activity(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries."),
    server: Optional[str] = typer.Option(None, "--server", help="Controller URL."),
) -> None:
    """Show recent controller activity, newest first."""
    from uibridge.remote.controller_client import ControllerClient

    async def _run() -> dict[str, Any]:
        async with ControllerClient(_server_url(server)) as client:
            return await client.activity(limit)

    try:
        data = asyncio.run(_run())
    except httpx.HTTPError as exc:
        raise _fail(exc) from exc

    columns = ("timestamp", "command", "success", "clientId", "commandId")
    table = Table(title="Recent activity")
    for column in columns:
        table.add_column(column)
    for entry in data.get("commands", []):
        table.add_row(*(str(entry.get(column, "")) for column in columns))
    console.print(table)
