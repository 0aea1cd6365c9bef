"""Work queues across the repository's open PRs and Linear backlog.

Three queues drive the Jules / Copilot loop:

  needing review   Jules pushed last and Copilot has not reviewed the new commits
  needing update   Copilot reviewed and nothing was pushed since
  linear backlog   open Linear issues that have no pull request yet

PRs are ordered by Linear urgency (urgent first, unprioritized last) and then
by most recent commit; Linear issues by urgency and then title.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import requests
from github import GithubException

from julesflow_core.aggregator import Sources
from julesflow_core.config import Config
from julesflow_core.errors import LinearError
from julesflow_core.gh.pull_request import list_open_pulls, request_review
from julesflow_core.linear.client import LinearClient
from julesflow_core.models import LinearIssueRecord, Priority
from julesflow_core.resolve import linear_id_from_branch, pr_from_attachments

logger = logging.getLogger(__name__)

_NO_PRIORITY_RANK = 999
_LINEAR_ERRORS = (LinearError, requests.RequestException, ValueError)


@dataclass(frozen=True)
class OpenPR:
    number: int
    title: str
    branch: str
    url: str
    last_commit_author: str = "unknown"
    last_commit_date: datetime | None = None
    copilot_reviewed: bool = False
    commits_after_review: int = 0
    is_draft: bool = False
    linear_id: str | None = None
    linear_priority: int = 0


def _urgency_rank(priority: int) -> int:
    return priority or _NO_PRIORITY_RANK


def urgency_emoji(priority: int, config: Config) -> str:
    """Map a Linear urgency (1 urgent .. 4 low, 0 none) onto the configured emojis."""
    emojis = config.priority.emojis
    if priority in (1, 2):
        return emojis[Priority.HIGH]
    if priority == 3:
        return emojis[Priority.MEDIUM]
    return emojis[Priority.LOW]


# --------------------------------------------------------------------------- #
# Pull requests                                                                #
# --------------------------------------------------------------------------- #


def describe_pull(pr, config: Config) -> OpenPR:
    commits = list(pr.get_commits())
    author = commits[-1].commit.author if commits else None
    reviewer = config.pr_manager.copilot_reviewer

    review_times = [
        review.submitted_at
        for review in pr.get_reviews()
        if getattr(review.user, "login", None) == reviewer and review.submitted_at
    ]
    commits_after = 0
    if review_times:
        latest = max(review_times)
        commits_after = sum(1 for c in commits if c.commit.author and c.commit.author.date > latest)

    branch = pr.head.ref or "unknown"
    return OpenPR(
        number=pr.number,
        title=pr.title or "",
        branch=branch,
        url=pr.html_url,
        last_commit_author=(author.name if author else None) or "unknown",
        last_commit_date=author.date if author else None,
        copilot_reviewed=bool(review_times),
        commits_after_review=commits_after,
        is_draft=bool(pr.draft),
        linear_id=linear_id_from_branch(branch),
    )


def _too_old(item: OpenPR, max_days_old: int | None, now: datetime) -> bool:
    if not max_days_old or item.last_commit_date is None:
        return False
    return now - item.last_commit_date > timedelta(days=max_days_old)


def collect_open_pulls(repo, config: Config, now: datetime | None = None) -> list[OpenPR]:
    """Describe every open PR that passes the draft and age filters.

    A PR whose commits or reviews cannot be read is skipped with a warning.
    """
    now = now or datetime.now(timezone.utc)
    settings = config.pr_manager
    collected = []
    for pr in list_open_pulls(repo):
        if settings.exclude_drafts and pr.draft:
            continue
        try:
            item = describe_pull(pr, config)
        except GithubException as e:
            logger.warning("Failed to process PR #%d: %s", pr.number, e)
            continue
        if _too_old(item, settings.max_days_old, now):
            continue
        collected.append(item)
    return collected


def enrich_with_linear(prs: list[OpenPR], linear: LinearClient | None) -> list[OpenPR]:
    """Fill in ``linear_priority`` for PRs whose branch names a Linear issue."""
    if linear is None:
        logger.warning("LINEAR_API_KEY not found - skipping Linear urgency data")
        return prs
    linked = [pr for pr in prs if pr.linear_id]
    if linked:
        logger.info("🔗 Enriching %d PRs with Linear urgency data...", len(linked))

    enriched = []
    for pr in prs:
        if pr.linear_id:
            try:
                pr = dataclasses.replace(pr, linear_priority=linear.get_priority(pr.linear_id))
            except _LINEAR_ERRORS as e:
                logger.warning("Could not fetch Linear issue %s: %s", pr.linear_id, e)
        enriched.append(pr)
    return enriched


def sort_pulls(prs: list[OpenPR]) -> list[OpenPR]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    by_date = sorted(prs, key=lambda p: p.last_commit_date or epoch, reverse=True)
    return sorted(by_date, key=lambda p: _urgency_rank(p.linear_priority))


def needing_review(prs: list[OpenPR], config: Config) -> list[OpenPR]:
    jules = config.pr_manager.jules_author
    return sort_pulls(
        [
            pr
            for pr in prs
            if jules in pr.last_commit_author and (not pr.copilot_reviewed or pr.commits_after_review > 0)
        ]
    )


def needing_update(prs: list[OpenPR]) -> list[OpenPR]:
    return sort_pulls([pr for pr in prs if pr.copilot_reviewed and pr.commits_after_review == 0])


def assign_copilot(repo, prs: list[OpenPR], config: Config) -> list[int]:
    """Request a Copilot review on each PR; returns the numbers that succeeded."""
    reviewer = config.pr_manager.copilot_reviewer
    assigned = []
    for pr in prs:
        logger.info("🤖 Assigning copilot to PR #%d: %s", pr.number, pr.title)
        try:
            request_review(repo, pr.number, reviewer)
        except GithubException as e:
            logger.warning("Failed to assign copilot to PR #%d: %s", pr.number, e)
            continue
        assigned.append(pr.number)
    return assigned


# --------------------------------------------------------------------------- #
# Linear backlog                                                               #
# --------------------------------------------------------------------------- #


def _has_human_label(issue: LinearIssueRecord) -> bool:
    return any("human" in label.lower() for label in issue.labels)


def _assigned_to_bot(issue: LinearIssueRecord, config: Config) -> bool:
    if issue.assignee is None:
        return False
    name = issue.assignee.name.lower()
    email = (issue.assignee.email or "").lower()
    return any(bot.lower() in name or bot.lower() in email for bot in config.filtering.bot_users)


def linear_issues_without_prs(sources: Sources, config: Config) -> list[LinearIssueRecord]:
    """Open Linear issues with no PR attachment and no open PR for their branch."""
    if sources.linear is None:
        logger.error("LINEAR_API_KEY not found - cannot fetch Linear issues")
        return []
    try:
        issues = sources.linear.list_open_issues()
    except _LINEAR_ERRORS as e:
        logger.error("Failed to fetch Linear issues: %s", e)
        return []

    waiting = []
    for issue in issues:
        if config.pr_manager.exclude_human_labeled and _has_human_label(issue):
            continue
        if _assigned_to_bot(issue, config):
            continue
        if pr_from_attachments(issue.attachments) is not None:
            continue
        if issue.branch_name and sources.find_pr_for_branch(issue.branch_name) is not None:
            continue
        waiting.append(issue)

    by_title = sorted(waiting, key=lambda i: i.title)
    return sorted(by_title, key=lambda i: _urgency_rank(i.priority))


# --------------------------------------------------------------------------- #
# Markdown lists                                                               #
# --------------------------------------------------------------------------- #


def _limit(items: list, config: Config) -> list:
    cap = config.pr_manager.max_items_per_list
    return items[:cap] if cap > 0 else items


def format_pr_list(prs: list[OpenPR], title: str, config: Config) -> str:
    settings = config.pr_manager
    shown = _limit(prs, config)
    if not shown:
        if config.filtering.include_empty_sections:
            return f"## {title}\n\n✅ No PRs found matching criteria.\n\n"
        return ""

    out = f"## {title}\n\n"
    for index, pr in enumerate(shown, 1):
        out += f"{index}. {urgency_emoji(pr.linear_priority, config)} **PR #{pr.number}**: {pr.title}"
        if pr.linear_id:
            out += f" ({pr.linear_id} - Priority: {pr.linear_priority})"
        else:
            out += " (No Linear Issue)"
        out += " 📝 DRAFT\n" if pr.is_draft else "\n"

        if settings.show_detailed_info:
            out += f"   - **Branch**: `{pr.branch}`\n"
            when = f" on {pr.last_commit_date.date().isoformat()}" if pr.last_commit_date else ""
            out += f"   - **Last Commit**: {pr.last_commit_author}{when}\n"
            if settings.show_copilot_status:
                out += f"   - **Copilot Reviewed**: {'✅ Yes' if pr.copilot_reviewed else '❌ No'}\n"
                out += f"   - **Commits After Review**: {pr.commits_after_review}\n"
            out += f"   - **URL**: {pr.url}\n"
        out += "\n"

    if len(prs) > len(shown):
        out += f"_Showing {len(shown)} of {len(prs)} PRs (limited by configuration)_\n\n"
    return out


def format_linear_issue_list(issues: list[LinearIssueRecord], title: str, config: Config) -> str:
    shown = _limit(issues, config)
    if not shown:
        if config.filtering.include_empty_sections:
            return f"## {title}\n\n✅ No Linear issues found matching criteria.\n\n"
        return ""

    out = f"## {title}\n\n"
    for index, issue in enumerate(shown, 1):
        out += f"{index}. {urgency_emoji(issue.priority, config)} **{issue.id}**: {issue.title}\n"
        if config.pr_manager.show_detailed_info:
            out += f"   - **Team**: {issue.team}\n"
            out += f"   - **State**: {issue.state}\n"
            out += f"   - **Priority**: {issue.priority_label}\n"
            out += f"   - **URL**: {issue.url}\n"
        out += "\n"

    if len(issues) > len(shown):
        out += f"_Showing {len(shown)} of {len(issues)} Linear issues (limited by configuration)_\n\n"
    return out
