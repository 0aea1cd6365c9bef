"""Input classification and pure resolution decisions.

Nothing here touches the network or the terminal. The aggregator asks these
functions what to do next and the CLI supplies any missing input.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from julesflow_core.models import ExtractedData, LinearAttachment, PRReference

_UPPERCASE_RE = re.compile(r"[A-Z]")
_LINEAR_ID_RE = re.compile(r"([A-Z]{2,10}-\d+)")
_PR_URL_RE = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)")
_REMOTE_RE = re.compile(r"github\.com[:/]([^/]+)/(.+?)(?:\.git)?/?$")

NEEDS_PR_NUMBER = "pr_number"
NEEDS_LINEAR_ID = "linear_id"


@dataclass(frozen=True)
class NeedsInput:
    """One side of the PR/issue pair is missing and may be supplied by the user."""

    kind: str  # NEEDS_PR_NUMBER | NEEDS_LINEAR_ID
    message: str
    question: str


def is_linear_id(token: str) -> bool:
    """Tokens with any uppercase letter (e.g. ``AB-123``) are Linear IDs; the rest are PR numbers."""
    return bool(_UPPERCASE_RE.search(token))


def parse_pr_number(token: str) -> int | None:
    token = token.strip().lstrip("#")
    return int(token) if token.isdigit() else None


def linear_id_from_branch(branch: str | None) -> str | None:
    """Return the first Linear-ID-shaped substring of a branch name, e.g. ``feature/AB-12-fix`` → ``AB-12``."""
    if not branch:
        return None
    match = _LINEAR_ID_RE.search(branch)
    return match.group(1) if match else None


def pr_from_url(url: str | None) -> PRReference | None:
    if not url:
        return None
    match = _PR_URL_RE.search(url)
    if not match:
        return None
    return PRReference(owner=match.group(1), repo=match.group(2), number=int(match.group(3)))


def pr_from_attachments(attachments: Iterable[LinearAttachment]) -> PRReference | None:
    """Return the first attachment that links to a GitHub pull request."""
    for attachment in attachments:
        ref = pr_from_url(attachment.url)
        if ref is not None:
            return ref
    return None


def repo_from_remote_url(url: str) -> tuple[str, str] | None:
    """Parse ``owner, repo`` from an HTTPS or SSH GitHub remote URL."""
    match = _REMOTE_RE.search(url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def missing_counterpart(data: ExtractedData, interactive: bool) -> NeedsInput | None:
    """Decide whether to ask the user for the side of the pair that was not found.

    Returns None when both sides are present, when nothing was found at all
    (that is a resolution failure, not a question), or when prompting is off.
    """
    if not interactive or not data.found:
        return None
    if data.pr is None:
        return NeedsInput(
            kind=NEEDS_PR_NUMBER,
            message="📎 No GitHub PR found attached to this Linear issue.",
            question="🤔 Enter GitHub PR number (or press Enter to skip)",
        )
    if data.linear is None:
        return NeedsInput(
            kind=NEEDS_LINEAR_ID,
            message="📎 No Linear issue found for this PR branch.",
            question="🤔 Enter Linear issue ID (or press Enter to skip)",
        )
    return None
