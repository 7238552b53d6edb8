from __future__ import annotations

import asyncio
from typing import Any

import typer
from rich.console import Console

from rvscan.core import IR_CODES
from rvscan.errors import RvscanError
from rvscan.services import DeviceManager

from .common import build_manager, exit_with_error, load_settings_or_exit


async def _send(manager: DeviceManager, device_id: str, code: str) -> dict[str, Any]:
    async with manager:
        return await manager.send_ir_code(device_id, code)


def register(app: typer.Typer) -> None:
    @app.command()
    def send(
        device_id: str = typer.Argument(..., help="Device id"),
        code: str = typer.Argument(
            ...,
            help=f"Hex IR code or one of: {', '.join(sorted(IR_CODES))}",
        ),
    ) -> None:
        """Send an IR code to a device."""
        console = Console()
        settings = load_settings_or_exit()
        manager = build_manager(settings)

        try:
            result = asyncio.run(_send(manager, device_id, code))
        except (RvscanError, ValueError) as exc:
            raise exit_with_error(console, exc) from exc

        console.print(f"[green]✓[/green] Sent {code} to {device_id}")
        if result.get("response") not in (None, "", "command_sent"):
            console.print(f"[dim]{result['response']}[/dim]")
