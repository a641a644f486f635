"""``uibridge attach`` — open a page in Playwright and connect it to a controller."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()


async def run_agent(url: str, *, server_url: str, headless: bool, duration: float | None = None) -> None:
    """Serve remote commands for *url* until cancelled (or *duration* elapses)."""
    from playwright.async_api import async_playwright

    from uibridge.core.bridge import UIBridge
    from uibridge.dom.playwright_dom import PlaywrightDocument
    from uibridge.remote.channel import RemoteControlChannel
    from uibridge.settings import get_settings

    settings = get_settings()
    remote_settings = settings.remote.model_copy(update={"enabled": True, "server_url": server_url})

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=headless)
        context = await browser.new_context(
            viewport={"width": settings.browser.viewport_width, "height": settings.browser.viewport_height}
        )
        page = await context.new_page()
        await page.goto(url, timeout=settings.browser.timeout_ms)
        logger.info("Page loaded: %s", page.url)

        bridge = UIBridge(PlaywrightDocument(page), settings=settings)
        await bridge.init()

        def _on_navigated(frame) -> None:
            if frame == page.main_frame:
                bridge.reset_capture()

        page.on("framenavigated", _on_navigated)
        bridge.remote = RemoteControlChannel(bridge, remote_settings)
        await bridge.start_remote_control()
        console.print(f"[green]✓[/green] Attached to {server_url} as [bold]{bridge.remote.client_id}[/bold]")

        try:
            if duration:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            await bridge.stop_remote_control()
            await bridge.remote.aclose()
            await browser.close()


def attach(
    url: str = typer.Argument(..., help="Page to open and control."),
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Controller URL (default: remote.server_url)."
    ),
    headless: Optional[bool] = typer.Option(None, "--headless/--headed", help="Browser mode (default: settings)."),
    duration: Optional[float] = typer.Option(None, "--duration", help="Detach after this many seconds."),
) -> None:
    """Open URL in a browser and execute commands queued on the controller."""
    from uibridge.settings import get_settings

    settings = get_settings()
    try:
        asyncio.run(
            run_agent(
                url,
                server_url=server or settings.remote.server_url,
                headless=settings.browser.headless if headless is None else headless,
                duration=duration,
            )
        )
    except KeyboardInterrupt:
        console.print("Detached.")
