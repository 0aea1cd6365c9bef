"""check-env command: verify credentials and the git checkout."""

from __future__ import annotations

import subprocess

import click
import requests
from rich.console import Console

from julesflow_core.config import Config
from julesflow_core.errors import LinearError
from julesflow_core.gh.local import detect_repo_from_git
from julesflow_cli.auth import build_linear_client, resolve_github_token

console = Console(stderr=True)

_AI_KEYS = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}


def _gh_installed() -> bool:
    try:
        result = subprocess.run(["gh", "--version"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def _ok(message: str) -> None:
    console.print(f"[green]✅ {message}[/green]")


def _fail(message: str, *hints: str) -> None:
    console.print(f"[red]❌ {message}[/red]")
    for hint in hints:
        console.print(f"   {hint}")


def _warn(message: str, *hints: str) -> None:
    console.print(f"[yellow]⚠️  {message}[/yellow]")
    for hint in hints:
        console.print(f"   {hint}")


@click.command("check-env")
@click.pass_context
def check_env_cmd(ctx):
    """Check the GitHub token, Linear key, AI key and git remote.

    Exits with status 1 when a GitHub token, a valid Linear key or a GitHub
    remote is missing. The gh CLI and AI keys are optional.
    """
    config: Config = ctx.obj["config"]
    failed = False
    console.print("🔍 [bold]Environment Setup Check[/bold]\n")

    if _gh_installed():
        _ok("GitHub CLI (gh) is installed")
    else:
        _warn("GitHub CLI (gh) is not installed", "Optional when GITHUB_TOKEN is set. Install from https://cli.github.com/")

    if resolve_github_token(config):
        _ok("GitHub token found")
    else:
        failed = True
        _fail("No GitHub token found", "Set GITHUB_TOKEN or run: gh auth login")

    linear = build_linear_client(config)
    if linear is None:
        failed = True
        _fail(
            "LINEAR_API_KEY is not set",
            "Get a key from https://linear.app/settings/api",
            "Then export LINEAR_API_KEY=... or add it to .env",
        )
    else:
        try:
            linear.viewer()
        except (LinearError, requests.RequestException, ValueError):
            failed = True
            _fail("LINEAR_API_KEY is set but Linear rejected it", "Check the key at https://linear.app/settings/api")
        else:
            _ok("Linear API key is valid")

    provider = config.summary.provider
    key_name = _AI_KEYS[provider]
    if getattr(config.credentials, f"{provider}_api_key"):
        _ok(f"{key_name} is set (AI summaries via {provider})")
    else:
        _warn(f"{key_name} not set (AI summaries won't work)", "Only needed for --summary")

    repo = detect_repo_from_git()
    if repo:
        _ok(f"Git repository with GitHub remote: {repo}")
    else:
        failed = True
        _fail("Current directory has no GitHub origin remote", "Run from a clone of the repository or pass --repo")

    if failed:
        ctx.exit(1)
    console.print("\n💡 All required checks passed. Try: julesflow list summary")
