"""Config command group (show/init/path)."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from uiabridge.config.access import resolve_config_path
from uiabridge.config.loader import convert_to_camel, load_config, save_config
from uiabridge.config.schema import Config


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register the config command group."""
    config_app = typer.Typer(help="Show or initialize ~/.uiabridge/config.json")
    app.add_typer(config_app, name="config")

    @config_app.command("show")
    def config_show(
        path: Path = typer.Option(None, "--path", "-p", help="Config file (default: $UIABRIDGE_CONFIG or ~/.uiabridge/config.json)"),
    ) -> None:
        """Print the effective configuration as JSON."""
        config_path = resolve_config_path(path)
        try:
            cfg = load_config(config_path)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        source = str(config_path) if config_path.exists() else f"{config_path} (not found, defaults)"
        console.print(f"[dim]# {source}[/dim]")
        console.print_json(json.dumps(convert_to_camel(cfg.model_dump()), ensure_ascii=False))

    @config_app.command("init")
    def config_init(
        path: Path = typer.Option(None, "--path", "-p", help="Where to write the config file"),
        force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
    ) -> None:
        """Write a config file with default values."""
        config_path = resolve_config_path(path)
        if config_path.exists() and not force:
            console.print(f"[yellow]Config already exists:[/yellow] {config_path} (use --force to overwrite)")
            raise typer.Exit(1)
        save_config(Config(), config_path)
        console.print(f"[green]✓[/green] Wrote {config_path}")

    @config_app.command("path")
    def config_path_command() -> None:
        """Print the config file location."""
        console.print(str(resolve_config_path()))
