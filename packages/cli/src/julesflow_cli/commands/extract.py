"""extract command: build the prioritized discussion report."""

from __future__ import annotations

import logging
import time

import click
from rich.console import Console
from rich.markup import escape

from julesflow_core.aggregator import Sources, detect_input_for_branch, extract
from julesflow_core.config import Config, config_exists, merge_config
from julesflow_core.errors import ResolutionFailure, SinkFailure
from julesflow_core.gh.local import current_branch
from julesflow_core.jules import first_copy_content, first_copy_label
from julesflow_core.models import ExtractedData
from julesflow_core.render import format_output
from julesflow_core.resolve import NeedsInput
from julesflow_core.sinks import auto_save, save_to_file, write_clipboard
from julesflow_core.summary import append_summary, generate_summary
from julesflow_cli.auth import build_linear_client, resolve_github_token, resolve_repo

console = Console(stderr=True)


def _ask(need: NeedsInput) -> str:
    console.print(f"[yellow]{escape(need.message)}[/yellow]")
    return click.prompt(need.question, default="", show_default=False)


def _build_sources(config: Config, repo: str | None) -> Sources:
    token = resolve_github_token(config)
    linear = build_linear_client(config)
    if not token and linear is None:
        raise click.UsageError(
            "No credentials found. Set GITHUB_TOKEN (or run `gh auth login`) and/or LINEAR_API_KEY."
        )
    return Sources(repo_slug=resolve_repo(repo), github_token=token, linear=linear)


def _separator(config: Config) -> str:
    return "=" * config.display.separator_width


def _elapsed(start: float, config: Config) -> str:
    if not config.display.show_processing_time:
        return ""
    return f" (Processed in {int((time.monotonic() - start) * 1000)}ms)"


def _print_report(content: str, config: Config) -> None:
    click.echo(_separator(config))
    click.echo(content)
    click.echo(_separator(config))


def _deliver(content: str, config: Config, start: float) -> None:
    """Copy the report to the clipboard, or print it when that is off or fails."""
    if not config.clipboard.enabled:
        _print_report(content, config)
        console.print(f"[green]✨ Content extracted successfully![/green]{_elapsed(start, config)}")
        return

    if config.clipboard.show_clipboard_content:
        _print_report(content, config)
    if write_clipboard(content, config):
        console.print(f"[green]✅ Output copied to clipboard![/green]{_elapsed(start, config)}")
        return
    if not config.clipboard.show_clipboard_content:
        _print_report(content, config)
    console.print("[yellow]Could not copy to clipboard, output is shown above.[/yellow]")


def _run_jules_mode(data: ExtractedData, content: str, config: Config) -> None:
    """Step one copies a short identifier, step two the full report."""
    first = first_copy_content(data, config)
    label = first_copy_label(data, config)

    copied = config.clipboard.enabled and write_clipboard(first, config)
    if copied:
        console.print(f"[green]📋 Step 1: {label} copied to clipboard:[/green] [bold]{escape(first)}[/bold]")
    else:
        click.echo(f"\n🔖 {label}: {first}\n")

    click.prompt(config.jules_mode.first_copy_complete, default="", show_default=False, prompt_suffix=" ")

    if copied and write_clipboard(content, config):
        console.print(f"[green]{escape(config.jules_mode.second_copy_complete)}[/green]")
    else:
        _print_report(content, config)


@click.command("extract")
@click.argument("token", required=False)
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
@click.option("--jules", "-j", "jules", is_flag=True, help="Two-step copy: identifier first, then the report.")
@click.option("--summary", "-s", "with_summary", is_flag=True, help="Append an AI summary of the discussion.")
@click.option(
    "--no-clipboard-output",
    "quiet",
    is_flag=True,
    help="Print only the report to stdout: no prompts, status output or clipboard.",
)
@click.option(
    "--save",
    "save_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write the report to this file.",
)
@click.option(
    "--provider",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="AI summary provider. Overrides config file.",
)
@click.pass_context
def extract_cmd(
    ctx,
    token: str | None,
    repo: str | None,
    jules: bool,
    with_summary: bool,
    quiet: bool,
    save_path: str | None,
    provider: str | None,
):
    """Extract PR reviews and Linear discussion into a prioritized brief.

    TOKEN is a PR number (``123`` or ``#123``) or a Linear issue ID
    (``ENG-123``). Without it, the current git branch is used to find one.

    \b
    Environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      LINEAR_API_KEY       Linear personal API key
      ANTHROPIC_API_KEY    Required for --summary with the anthropic provider
      OPENAI_API_KEY       Required for --summary with the openai provider
    """
    start = time.monotonic()
    config: Config = ctx.obj["config"]
    if provider:
        config = merge_config(config, {"summary": {"provider": provider}})

    if quiet:
        logging.getLogger().setLevel(logging.ERROR)
    elif not config_exists(ctx.obj["config_path"]):
        console.print("[dim]No .julesflow.yml found, using defaults. Run `julesflow init` to create one.[/dim]")

    sources = _build_sources(config, repo)

    if token is None:
        branch = current_branch()
        token = detect_input_for_branch(branch, sources)
        if token is None:
            raise click.UsageError(
                "No PR number or Linear issue ID given, and none could be found for the current branch."
            )
        if not quiet:
            console.print(f"[dim]Using {escape(token)} from branch {escape(branch or '?')}[/dim]")

    try:
        data = extract(token, sources, config, ask=None if quiet else _ask)
    except ResolutionFailure as e:
        raise click.ClickException(str(e))

    content = format_output(data, config)
    if with_summary:
        if not quiet:
            console.print("[dim]🤖 Generating AI summary...[/dim]")
        content = append_summary(content, generate_summary(data, config))

    if save_path:
        saved = save_to_file(save_path, content)
        if not quiet:
            console.print(f"[green]💾 Saved to {saved}[/green]")
    auto_save(data, content, config)

    if quiet:
        click.echo(content)
        return

    try:
        if jules:
            _run_jules_mode(data, content, config)
        else:
            _deliver(content, config, start)
    except SinkFailure as e:
        raise click.ClickException(str(e))
