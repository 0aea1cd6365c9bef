from __future__ import annotations

import logging

from github import Github

from julesflow_core.models import FeedbackItem, Origin, PRRecord

logger = logging.getLogger(__name__)


def get_repo(repo_name: str, token: str | None):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def find_open_pull_for_branch(repo, branch_name: str) -> int | None:
    """Return the number of the first open PR whose head branch is ``branch_name``."""
    owner = repo.owner.login
    for pr in repo.get_pulls(state="open", head=f"{owner}:{branch_name}"):
        return pr.number
    return None


def _login(user) -> str:
    return getattr(user, "login", None) or "ghost"


def to_pr_record(pr, owner: str, repo_name: str) -> PRRecord:
    return PRRecord(
        owner=owner,
        repo=repo_name,
        number=pr.number,
        title=pr.title or "",
        description=pr.body or "",
        base_branch=pr.base.ref,
        head_branch=pr.head.ref,
        state=pr.state,
        is_draft=bool(pr.draft),
    )


def get_reviews(pr) -> list[FeedbackItem]:
    """Reviews with a non-empty body, in API order."""
    return [
        FeedbackItem(
            author=_login(review.user),
            body=review.body,
            origin=Origin.REVIEW,
            review_state=review.state,
        )
        for review in pr.get_reviews()
        if review.body
    ]


def get_review_comments(pr) -> list[FeedbackItem]:
    """File/line-anchored review comments."""
    items = []
    for c in pr.get_review_comments():
        # c.line is None once the commented line is no longer in the diff.
        line = c.line if c.line is not None else getattr(c, "original_line", None)
        items.append(
            FeedbackItem(
                author=_login(c.user),
                body=c.body or "",
                origin=Origin.INLINE_CODE_COMMENT,
                file_path=c.path,
                line_number=line,
                code_context=c.diff_hunk,
            )
        )
    return items


def get_issue_comments(pr) -> list[FeedbackItem]:
    """General discussion comments on the PR conversation tab."""
    return [
        FeedbackItem(
            author=_login(c.user),
            body=c.body or "",
            origin=Origin.DISCUSSION_COMMENT,
            created_at=c.created_at.isoformat() if c.created_at else None,
        )
        for c in pr.get_issue_comments()
    ]


def list_open_pulls(repo):
    return repo.get_pulls(state="open", sort="updated", direction="desc")


def request_review(repo, pr_number: int, reviewer: str) -> None:
    repo.get_pull(pr_number).create_review_request(reviewers=[reviewer])
