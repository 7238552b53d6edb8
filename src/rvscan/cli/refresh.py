from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from rvscan.errors import RvscanError
from rvscan.models import Device
from rvscan.services import DeviceManager
from rvscan.utils.redaction import Redactor

from .common import build_manager, device_table, exit_with_error, load_settings_or_exit


async def _refresh(manager: DeviceManager) -> list[Device]:
    async with manager:
        return await manager.refresh_all()


def register(app: typer.Typer) -> None:
    @app.command()
    def refresh(
        redact: bool = typer.Option(
            False,
            "--redact",
            help="Redact IP addresses in output",
        ),
    ) -> None:
        """Re-check every registered device and update its status."""
        console = Console()
        settings = load_settings_or_exit()
        manager = build_manager(settings)

        try:
            devices = asyncio.run(_refresh(manager))
        except (RvscanError, ValueError) as exc:
            raise exit_with_error(console, exc) from exc

        if not devices:
            console.print("No devices registered.")
            return

        console.print(device_table(devices, Redactor(enabled=redact)))
        online = sum(1 for device in devices if device.is_online)
        console.print(f"\n{online}/{len(devices)} device(s) online")
