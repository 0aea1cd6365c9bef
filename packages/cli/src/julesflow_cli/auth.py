"""Credential and repository resolution for the CLI.

GitHub token resolution order (stops at first success):
  1. GITHUB_TOKEN (already read into ``config.credentials``)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)

The Linear API key only comes from LINEAR_API_KEY (or a local .env).
"""

from __future__ import annotations

import logging
import subprocess

from julesflow_core.config import Config
from julesflow_core.gh.local import detect_repo_from_git
from julesflow_core.linear.client import LinearClient

logger = logging.getLogger(__name__)


def resolve_github_token(config: Config) -> str | None:
    """Return a GitHub token or None if no source is available. Never raises."""
    if config.credentials.github_token:
        return config.credentials.github_token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        logger.debug("gh CLI not available for token lookup.")
        return None
    if result.returncode == 0:
        gh_token = result.stdout.strip()
        if gh_token:
            logger.debug("Resolved GitHub token via gh CLI session.")
            return gh_token
    return None


def resolve_repo(repo: str | None) -> str | None:
    """Use ``--repo`` when given, otherwise the origin remote of the current checkout."""
    if repo:
        return repo
    detected = detect_repo_from_git()
    if detected:
        logger.debug("Detected repository: %s", detected)
    return detected


def build_linear_client(config: Config) -> LinearClient | None:
    key = config.credentials.linear_api_key
    return LinearClient(api_key=key) if key else None
