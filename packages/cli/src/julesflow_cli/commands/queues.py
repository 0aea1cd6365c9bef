"""list / assign-copilot commands: the Jules and Copilot work queues."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console
from rich.markup import escape

from julesflow_core.aggregator import Sources
from julesflow_core.config import Config
from julesflow_core.manager import (
    assign_copilot,
    collect_open_pulls,
    enrich_with_linear,
    format_linear_issue_list,
    format_pr_list,
    linear_issues_without_prs,
    needing_review,
    needing_update,
    urgency_emoji,
)
from julesflow_cli.auth import build_linear_client, resolve_github_token, resolve_repo
from julesflow_cli.commands.extract import extract_cmd

console = Console(stderr=True)

REVIEW_TITLE = "PRs Needing Copilot Review (Jules Committed Latest Changes)"
UPDATE_TITLE = "PRs Needing Jules Update (Copilot Reviewed)"
LINEAR_TITLE = "Linear Issues Ready for Jules to Start"

_repo_option = click.option(
    "--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote."
)


def _sources(config: Config, repo: str | None, need_github: bool = True) -> Sources:
    slug = resolve_repo(repo)
    token = resolve_github_token(config)
    if need_github and not slug:
        raise click.UsageError("Could not detect the GitHub repository. Pass --repo owner/name.")
    if need_github and not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login`.")
    return Sources(repo_slug=slug, github_token=token, linear=build_linear_client(config))


def _open_pulls(sources: Sources, config: Config):
    console.print("[dim]⏳ Reading open pull requests, this may take a while...[/dim]")
    try:
        prs = collect_open_pulls(sources.repo(sources.repo_slug), config)
    except GithubException as e:
        raise click.ClickException(f"Failed to fetch PRs: {e}")
    return enrich_with_linear(prs, sources.linear)


def _walk(ctx, items, describe, token_of, repo: str | None, config: Config) -> None:
    """Step through ``items`` offering Jules mode for each one."""
    if not items:
        return
    if not config.workflow.enable_interactive_prompts:
        console.print("Interactive prompts disabled in configuration. Skipping interactive review.")
        return

    separator = "=" * config.display.separator_width
    for index, item in enumerate(items, 1):
        console.print(f"\n{separator}")
        console.print(f"📋 {index}/{len(items)}: {escape(describe(item))}")
        console.print(separator)

        action = click.prompt("Actions: (j)ules mode, (s)kip, (q)uit", default="j").strip().lower()
        if action in ("q", "quit"):
            console.print("Exiting interactive review.")
            return
        if action in ("s", "skip"):
            continue
        if action not in ("j", "jules"):
            console.print("[yellow]Invalid action. Skipping.[/yellow]")
            continue
        try:
            ctx.invoke(extract_cmd, token=token_of(item), repo=repo, jules=True)
        except click.ClickException as e:
            console.print(f"[red]Extraction failed for {escape(token_of(item))}: {escape(e.format_message())}[/red]")

    console.print("[green]🎉 Completed interactive review![/green]")


def _describe_pr(config: Config):
    def describe(pr) -> str:
        return f"{urgency_emoji(pr.linear_priority, config)} #{pr.number} {pr.title} ({pr.branch})"

    return describe


@click.group("list")
def list_cmd():
    """List PRs and Linear issues waiting on Jules or Copilot."""


@list_cmd.command("needing-review")
@_repo_option
@click.pass_context
def needing_review_cmd(ctx, repo: str | None):
    """PRs where Jules pushed last and Copilot has not reviewed the new commits."""
    config: Config = ctx.obj["config"]
    prs = needing_review(_open_pulls(_sources(config, repo), config), config)
    click.echo(format_pr_list(prs, REVIEW_TITLE, config), nl=False)


@list_cmd.command("needing-update")
@_repo_option
@click.option("--interactive", "-i", is_flag=True, help="Step through each PR and offer Jules mode.")
@click.pass_context
def needing_update_cmd(ctx, repo: str | None, interactive: bool):
    """PRs Copilot reviewed with no commits since."""
    config: Config = ctx.obj["config"]
    prs = needing_update(_open_pulls(_sources(config, repo), config))
    click.echo(format_pr_list(prs, UPDATE_TITLE, config), nl=False)
    if interactive:
        _walk(ctx, prs, _describe_pr(config), lambda pr: str(pr.number), repo, config)


@list_cmd.command("linear-issues")
@_repo_option
@click.option("--interactive", "-i", is_flag=True, help="Step through each issue and offer Jules mode.")
@click.pass_context
def linear_issues_cmd(ctx, repo: str | None, interactive: bool):
    """Open Linear issues that have no pull request yet."""
    config: Config = ctx.obj["config"]
    sources = _sources(config, repo, need_github=False)
    if sources.linear is None:
        raise click.UsageError("LINEAR_API_KEY is not set.")
    issues = linear_issues_without_prs(sources, config)
    click.echo(format_linear_issue_list(issues, LINEAR_TITLE, config), nl=False)
    if interactive:

        def describe(issue) -> str:
            return f"{urgency_emoji(issue.priority, config)} {issue.id} {issue.title} [{issue.team} / {issue.state}]"

        _walk(ctx, issues, describe, lambda issue: issue.id, repo, config)


@list_cmd.command("summary")
@_repo_option
@click.pass_context
def summary_cmd(ctx, repo: str | None):
    """All three queues with suggested next steps."""
    config: Config = ctx.obj["config"]
    sources = _sources(config, repo)
    prs = _open_pulls(sources, config)
    review = needing_review(prs, config)
    update = needing_update(prs)
    issues = linear_issues_without_prs(sources, config) if sources.linear else []

    click.echo("# 🤖 Jules & Copilot Workflow Summary\n")
    click.echo(format_pr_list(review, f"🔍 {REVIEW_TITLE}", config), nl=False)
    click.echo(format_pr_list(update, f"🔄 {UPDATE_TITLE}", config), nl=False)
    click.echo(format_linear_issue_list(issues, f"🆕 {LINEAR_TITLE}", config), nl=False)

    if review:
        click.echo(f"💡 **Next Step**: Run `julesflow assign-copilot` to assign copilot to {len(review)} PR(s)\n")
    if update:
        click.echo(f"💡 **Next Step**: Run `julesflow list needing-update -i` to work through {len(update)} PR(s)\n")
    if issues:
        click.echo(f"💡 **Next Step**: Run `julesflow list linear-issues -i` to work through {len(issues)} issue(s)\n")
    if not (review or update or issues):
        click.echo("🎉 **All items are up to date!** Jules and Copilot workflow is in sync.\n")


@click.command("assign-copilot")
@_repo_option
@click.pass_context
def assign_copilot_cmd(ctx, repo: str | None):
    """Request a Copilot review on every PR where Jules pushed last."""
    config: Config = ctx.obj["config"]
    sources = _sources(config, repo)
    prs = needing_review(_open_pulls(sources, config), config)
    if not prs:
        console.print("[green]✅ No PRs found that need copilot review assignment[/green]")
        return

    console.print(f"📋 Found {len(prs)} PRs that need copilot review assignment")
    assigned = assign_copilot(sources.repo(sources.repo_slug), prs, config)
    for number in assigned:
        console.print(f"[green]✅ Assigned copilot to PR #{number}[/green]")
    console.print(f"[green]🎉 Successfully assigned copilot to {len(assigned)}/{len(prs)} PRs[/green]")
