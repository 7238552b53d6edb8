from __future__ import annotations

from typing import Annotated

import typer

from rvscan.config import Settings, load_settings, render_settings_toml, write_settings

from .common import build_database, load_settings_or_exit, resolve_config_path_or_exit

app = typer.Typer(no_args_is_help=True, help="Show or create the configuration file")


@app.command("show")
def show_config() -> None:
    """Show the effective configuration and where the registry lives."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)
    db = build_database(settings)

    typer.echo(f"Config source: {path if exists else 'defaults'}")
    typer.echo(f"Device registry: {db.devices_path}")
    typer.echo(f"Sweep: {len(settings.scanning.prefixes)} prefix(es), port 80 only")
    typer.echo(render_settings_toml(settings))


@app.command("init")
def init_config(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Write a config file populated with the defaults."""
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    if exists and not force:
        try:
            load_settings(path)
        except ValueError as exc:
            typer.echo(str(exc), err=True)
            typer.echo("Use --force to replace it with the defaults.", err=True)
            raise typer.Exit(1) from exc
        typer.echo(f"Config already exists at {path}")
        return

    write_settings(Settings(), path)
    typer.echo(f"Wrote default config to {path}")
