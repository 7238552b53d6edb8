from __future__ import annotations

import typer
from rich.console import Console

from .common import build_database, load_settings_or_exit, resolve_config_path_or_exit


def register(app: typer.Typer) -> None:
    @app.command()
    def info() -> None:
        """Show rvscan data directory info and stats."""
        settings = load_settings_or_exit()
        db = build_database(settings)
        console = Console()

        try:
            devices = db.load_devices()
        except ValueError as exc:
            console.print(f"[red]✗[/red] {exc}")
            raise typer.Exit(1) from exc

        config_path, config_exists = resolve_config_path_or_exit(allow_missing=True)

        console.print("[bold]rvscan Info[/bold]\n")
        console.print(f"Data directory: {db.path}")
        console.print(f"Device registry: {db.devices_path}")
        console.print(f"Config file: {config_path if config_exists else 'defaults'}")

        scanning = settings.scanning
        console.print("\n[bold]Configuration[/bold]")
        console.print(f"Prefixes: {', '.join(scanning.prefixes)}")
        console.print(f"Hosts: {scanning.host_start}-{scanning.host_end}")
        console.print(f"Concurrency: {scanning.concurrency}")
        console.print(f"Verify timeout: {scanning.verify_timeout}s")
        console.print(
            f"Probe timeout: {scanning.probe_timeout}s "
            f"({scanning.probe_retries} retries)"
        )

        manual = sum(1 for device in devices if device.is_manually_added)
        online = sum(1 for device in devices if device.is_online)
        console.print("\n[bold]Statistics[/bold]")
        console.print(f"Devices: {len(devices)} ({manual} manual)")
        console.print(f"Online at last refresh: {online}")
