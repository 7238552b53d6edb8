from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.progress import Progress

from rvscan.errors import RvscanError
from rvscan.models import Device
from rvscan.services import DeviceManager
from rvscan.utils.redaction import Redactor

from .common import build_manager, device_table, exit_with_error, load_settings_or_exit

logger = logging.getLogger(__name__)

PROGRESS_POLL_INTERVAL = 0.2


async def _scan_with_progress(
    manager: DeviceManager, progress: Progress
) -> list[Device]:
    task_id = progress.add_task("Scanning", total=100)

    async def _poll() -> None:
        while True:
            progress.update(task_id, completed=manager.scan_progress)
            await asyncio.sleep(PROGRESS_POLL_INTERVAL)

    async with manager:
        poller = asyncio.create_task(_poll())
        try:
            found = await manager.scan_network()
        finally:
            poller.cancel()
        progress.update(task_id, completed=100)
    return found


def register(app: typer.Typer) -> None:
    @app.command()
    def scan(
        redact: bool = typer.Option(
            False,
            "--redact",
            help="Redact IP addresses in output",
        ),
    ) -> None:
        """Sweep common private networks for R_VOLUTION players."""
        console = Console()

        settings = load_settings_or_exit()
        manager = build_manager(settings)

        prefixes = ", ".join(f"{prefix}.0/24" for prefix in settings.scanning.prefixes)
        console.print(f"Scanning {prefixes} for R_VOLUTION devices...")
        logger.info(
            "Scan settings: verify_timeout=%.2fs, concurrency=%d",
            settings.scanning.verify_timeout,
            settings.scanning.concurrency,
        )

        try:
            with Progress(console=console, transient=True) as progress:
                found = asyncio.run(_scan_with_progress(manager, progress))
        except (RvscanError, ValueError) as exc:
            raise exit_with_error(console, exc) from exc

        if not found:
            console.print("No new R_VOLUTION devices found.")
            return

        console.print(device_table(found, Redactor(enabled=redact)))
        console.print(f"\n[green]Found {len(found)} new device(s)[/green]")
