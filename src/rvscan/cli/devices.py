from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console

from rvscan.errors import RvscanError
from rvscan.services import DeviceManager
from rvscan.utils.redaction import Redactor

from .common import (
    build_database,
    build_manager,
    device_table,
    exit_with_error,
    load_settings_or_exit,
)

T = TypeVar("T")


def _run(console: Console, action: Callable[[DeviceManager], Awaitable[T]]) -> T:
    settings = load_settings_or_exit()
    manager = build_manager(settings)

    async def _main() -> T:
        async with manager:
            return await action(manager)

    try:
        return asyncio.run(_main())
    except (RvscanError, ValueError) as exc:
        raise exit_with_error(console, exc) from exc


def list_devices(
    redact: bool = typer.Option(False, "--redact", help="Redact IP addresses"),
) -> None:
    """List registered devices."""
    settings = load_settings_or_exit()
    db = build_database(settings)
    console = Console()

    try:
        devices = db.load_devices()
    except ValueError as exc:
        raise exit_with_error(console, exc) from exc

    if not devices:
        console.print("No devices registered.")
        console.print("Use 'rvscan scan' to discover players or 'rvscan add' for one.")
        return

    console.print(device_table(devices, Redactor(enabled=redact)))


def add_device(
    ip: str = typer.Argument(..., help="Device IP address"),
    name: str | None = typer.Option(None, "--name", "-n", help="Custom name"),
) -> None:
    """Register a device by IP address (always on port 80)."""
    console = Console()
    device = _run(console, lambda manager: manager.add_device_manually(ip, name))

    state = "online" if device.is_online else "not answering yet"
    console.print(f"[green]✓[/green] Added '{device.name}' at {device.ip} ({state})")
    console.print(f"  id: {device.id}")


def remove_device(device_id: str = typer.Argument(..., help="Device id")) -> None:
    """Remove a registered device."""
    console = Console()
    device = _run(console, lambda manager: manager.remove_device(device_id))
    console.print(f"[green]✓[/green] Removed '{device.name}' ({device.ip})")


def rename_device(
    device_id: str = typer.Argument(..., help="Device id"),
    name: str = typer.Argument(..., help="New display name"),
) -> None:
    """Rename a registered device."""
    console = Console()
    device = _run(console, lambda manager: manager.rename_device(device_id, name))
    console.print(f"[green]✓[/green] Renamed {device.id} → '{device.name}'")


def edit_device(
    device_id: str = typer.Argument(..., help="Device id"),
    name: str | None = typer.Option(None, "--name", "-n", help="New display name"),
    ip: str | None = typer.Option(None, "--ip", help="New IP address"),
) -> None:
    """Change the name and/or IP address of a device."""
    console = Console()
    if name is None and ip is None:
        console.print("[yellow]![/yellow] Nothing to change; pass --name or --ip")
        raise typer.Exit(1)

    device = _run(
        console, lambda manager: manager.update_device(device_id, name=name, ip=ip)
    )
    console.print(f"[green]✓[/green] Updated '{device.name}' at {device.ip}")
    if ip is not None and not device.is_online:
        console.print("Run 'rvscan refresh' to check the device at its new address.")


def register(app: typer.Typer) -> None:
    app.command("list")(list_devices)
    app.command("add")(add_device)
    app.command("remove")(remove_device)
    app.command("rename")(rename_device)
    app.command("edit")(edit_device)
