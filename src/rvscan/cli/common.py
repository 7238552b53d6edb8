from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from rvscan.config import (
    Settings,
    data_dir_from_settings,
    get_settings,
    resolve_config_path,
)
from rvscan.errors import RvscanError
from rvscan.models import Device
from rvscan.services import DeviceManager
from rvscan.storage import Database
from rvscan.utils.redaction import Redactor


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_database(settings: Settings, data_dir: Path | None = None) -> Database:
    path = data_dir or data_dir_from_settings(settings)
    return Database(path)


def build_manager(settings: Settings) -> DeviceManager:
    return DeviceManager(build_database(settings), settings)


def exit_with_error(console: Console, exc: RvscanError | ValueError) -> typer.Exit:
    console.print(f"[red]✗[/red] {exc}")
    return typer.Exit(1)


def format_last_seen(device: Device) -> str:
    if device.last_seen is None:
        return "never"
    return device.last_seen.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def device_table(devices: list[Device], redactor: Redactor) -> Table:
    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Name", style="green")
    table.add_column("IP", style="cyan")
    table.add_column("Status")
    table.add_column("Last Seen")
    table.add_column("Source")

    for device in devices:
        status = "[green]online[/green]" if device.is_online else "[red]offline[/red]"
        table.add_row(
            redactor.redact_id(device.id),
            redactor.redact_name(device.name, device.ip),
            f"{redactor.redact_ip(device.ip)}:{device.port}",
            status,
            format_last_seen(device),
            "manual" if device.is_manually_added else "discovered",
        )
    return table
