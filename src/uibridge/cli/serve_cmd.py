"""``uibridge serve`` — run the controller API."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

console = Console()


def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: settings api.host)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: settings api.port)."),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
) -> None:
    """Run the controller that page agents register with."""
    import uvicorn

    from uibridge.settings import get_settings

    settings = get_settings()
    bind_host = host or settings.api.host
    bind_port = port or settings.api.port

    console.print(f"[bold]UIBridge controller[/bold] on http://{bind_host}:{bind_port}")
    console.print(f"  Screenshots: {settings.api.screenshots_dir}")
    console.print("  Attach a page with: [cyan]uibridge attach URL[/cyan]")
    uvicorn.run(
        "uibridge.api.app:create_app",
        factory=True,
        host=bind_host,
        port=bind_port,
        reload=reload,
        log_level="info",
    )
