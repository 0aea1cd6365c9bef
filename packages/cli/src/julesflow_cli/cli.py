"""CLI entry point for julesflow.

Commands:
  extract         build the prioritized report for a PR number or Linear issue ID
  init            write a commented .julesflow.yml starter file
  config          inspect the effective configuration
  list            PRs and Linear issues waiting on Jules or Copilot
  assign-copilot  request Copilot reviews on PRs Jules pushed to
  check-env       verify credentials and the git remote
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from julesflow_core.config import DEFAULT_CONFIG_PATH
from julesflow_core.errors import ConfigError
from julesflow_cli.commands.check_env import check_env_cmd
from julesflow_cli.commands.config import config_cmd
from julesflow_cli.commands.extract import extract_cmd
from julesflow_cli.commands.init import init_cmd
from julesflow_cli.commands.queues import assign_copilot_cmd, list_cmd


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbose,
        markup=False,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[handler],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("julesflow"),
    prog_name="julesflow",
)
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the configuration file.",
    envvar="JULESFLOW_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Turn GitHub PR and Linear discussions into a prioritized brief for Jules."""
    from julesflow_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    # init rewrites the file, so a broken one must not stop it.
    if ctx.invoked_subcommand == "init":
        return

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))

    ctx.obj["config"] = config


main.add_command(extract_cmd)
main.add_command(init_cmd)
main.add_command(config_cmd)
main.add_command(list_cmd)
main.add_command(assign_copilot_cmd)
main.add_command(check_env_cmd)
