"""Helpers that read the local git checkout."""

from __future__ import annotations

import logging
import subprocess

from julesflow_core.resolve import repo_from_remote_url

logger = logging.getLogger(__name__)


def _git(*args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def detect_repo_from_git() -> str | None:
    """Return ``owner/repo`` for the origin remote, or None outside a GitHub checkout."""
    url = _git("remote", "get-url", "origin")
    if url is None:
        return None
    parsed = repo_from_remote_url(url)
    if parsed is None:
        logger.debug("Origin remote %s is not a GitHub URL.", url)
        return None
    return "/".join(parsed)


def current_branch() -> str | None:
    return _git("branch", "--show-current")
