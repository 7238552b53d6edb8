from __future__ import annotations

from typing import Annotated

import typer

from rvscan.utils.logging import setup_logging

from . import config as config_cmd
from .devices import register as register_devices
from .info import register as register_info
from .init_cmd import register as register_init
from .refresh import register as register_refresh
from .scan import register as register_scan
from .send import register as register_send

app = typer.Typer(
    help="rvscan - discover and manage R_VOLUTION players", no_args_is_help=True
)

app.add_typer(config_cmd.app, name="config")

register_init(app)
register_scan(app)
register_devices(app)
register_refresh(app)
register_send(app)
register_info(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
) -> None:
    """rvscan CLI."""
    setup_logging()

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"rvscan version {get_version('rvscan')}")
        raise typer.Exit()
