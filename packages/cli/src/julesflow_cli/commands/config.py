"""config command: inspect the effective configuration."""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from julesflow_core.config import config_exists, config_to_dict

console = Console(stderr=True)


@click.group("config")
def config_cmd():
    """Inspect julesflow configuration."""


@config_cmd.command("show")
@click.pass_context
def show_cmd(ctx):
    """Print the merged configuration (defaults + file) as YAML.

    Credentials are never printed.
    """
    config_path = ctx.obj["config_path"]
    if config_exists(config_path):
        console.print(f"[dim]Using {Path(config_path).resolve()}[/dim]")
    else:
        console.print(f"[yellow]No {config_path} found, showing built-in defaults.[/yellow]")

    click.echo(
        yaml.safe_dump(config_to_dict(ctx.obj["config"]), sort_keys=False, allow_unicode=True),
        nl=False,
    )
