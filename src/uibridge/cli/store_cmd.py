"""``uibridge stored`` — browse screenshots kept in the local store."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

console = Console()


def stored(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of rows."),
    export: Optional[int] = typer.Option(None, "--export", help="Write the screenshot with this id to --output."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Target file for --export."),
    db: Optional[Path] = typer.Option(None, "--db", help="Store file (default: screenshot.store_path)."),
) -> None:
    """List screenshots saved with ``persistLocally``, or export one to a file."""
    from uibridge.capture.data_url import MIME_EXTENSIONS, decode_data_url
    from uibridge.settings import get_settings
    from uibridge.store.screenshot_store import ScreenshotStore

    db_path = db or Path(get_settings().screenshot.store_path)
    if not db_path.exists():
        console.print(f"[yellow]No screenshot store at {db_path}[/yellow]")
        raise typer.Exit(code=1)
    store = ScreenshotStore(db_path)

    if export is not None:
        row = store.get(export)
        if row is None:
            console.print(f"[red]No stored screenshot with id {export}[/red]")
            raise typer.Exit(code=1)
        mime, payload = decode_data_url(row["data_url"])
        target = output or Path(f"{Path(row['file_name']).stem}.{MIME_EXTENSIONS.get(mime, 'png')}")
        target.write_bytes(payload)
        console.print(f"[green]✓[/green] Wrote {target} ({len(payload)} bytes)")
        return

    columns = ("id", "file_name", "folder", "size", "created_at")
    table = Table(title=f"Stored screenshots ({db_path.name})")
    for column in columns:
        table.add_column(column)
    for row in store.list(limit=limit):
        table.add_row(*(str(row.get(column) or "") for column in columns))
    console.print(table)
