"""Resolve a user token to PR and/or Linear data and assemble ExtractedData.

Only the primary existence checks decide whether a source is present. Every
secondary fetch that fails is logged and treated as empty, so a partial
report is produced rather than none.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable

import requests
from github import GithubException

from julesflow_core.config import Config
from julesflow_core.errors import ResolutionFailure
from julesflow_core.gh.pull_request import (
    find_open_pull_for_branch,
    get_issue_comments,
    get_pull,
    get_repo,
    get_review_comments,
    get_reviews,
    to_pr_record,
)
from julesflow_core.linear.client import LinearClient
from julesflow_core.models import ExtractedData, FeedbackItem, LinearIssueRecord, PRRecord, PRReference
from julesflow_core.resolve import (
    NEEDS_LINEAR_ID,
    NEEDS_PR_NUMBER,
    NeedsInput,
    is_linear_id,
    linear_id_from_branch,
    missing_counterpart,
    parse_pr_number,
    pr_from_attachments,
)

logger = logging.getLogger(__name__)

_FETCH_ERRORS = (GithubException, requests.RequestException)

Ask = Callable[[NeedsInput], str]


@dataclass
class PRData:
    record: PRRecord
    reviews: list[FeedbackItem] = field(default_factory=list)
    review_comments: list[FeedbackItem] = field(default_factory=list)
    issue_comments: list[FeedbackItem] = field(default_factory=list)


class Sources:
    """The external collaborators one extraction talks to.

    ``repo_slug`` is the ``owner/repo`` that bare PR numbers and branch lookups
    refer to (normally detected from the git remote).
    """

    def __init__(
        self,
        repo_slug: str | None,
        github_token: str | None,
        linear: LinearClient | None = None,
        repo_factory: Callable[[str, str | None], Any] = get_repo,
    ):
        self.repo_slug = repo_slug
        self.github_token = github_token
        self.linear = linear
        self._repo_factory = repo_factory
        self._repos: dict[str, Any] = {}

    def repo(self, slug: str):
        if slug not in self._repos:
            self._repos[slug] = self._repo_factory(slug, self.github_token)
        return self._repos[slug]

    def pr_reference(self, number: int) -> PRReference | None:
        if not self.repo_slug or "/" not in self.repo_slug:
            logger.warning("No GitHub repository configured; cannot look up PR #%d.", number)
            return None
        owner, repo = self.repo_slug.split("/", 1)
        return PRReference(owner=owner, repo=repo, number=number)

    def fetch_linear(self, issue_id: str, config: Config) -> LinearIssueRecord | None:
        if self.linear is None:
            logger.warning("LINEAR_API_KEY not found in environment variables")
            return None
        issue = self.linear.fetch_issue(
            issue_id,
            include_comments=config.integrations.linear_include_comments,
            include_attachments=config.integrations.linear_include_attachments,
        )
        if issue is not None:
            logger.info("✅ Found Linear issue: %s", issue.title)
        return issue

    def find_pr_for_branch(self, branch_name: str | None) -> PRReference | None:
        if not branch_name or not self.repo_slug:
            return None
        try:
            number = find_open_pull_for_branch(self.repo(self.repo_slug), branch_name)
        except _FETCH_ERRORS as e:
            logger.warning("Could not list pull requests for branch %s: %s", branch_name, e)
            return None
        if number is None:
            return None
        logger.info("✅ Found GitHub PR for branch %s: #%d", branch_name, number)
        return self.pr_reference(number)


def fetch_pr_data(sources: Sources, ref: PRReference) -> PRData | None:
    """Fetch one PR and its reviews, inline comments and discussion comments.

    Returns None when the PR itself cannot be loaded. The three comment lists
    are fetched concurrently; any that fail come back empty.
    """
    try:
        pr = get_pull(sources.repo(ref.slug), ref.number)
        record = to_pr_record(pr, ref.owner, ref.repo)
    except _FETCH_ERRORS as e:
        logger.warning("Could not fetch GitHub PR %s#%d: %s", ref.slug, ref.number, e)
        return None
    logger.info("✅ Found GitHub PR: %s", record.title)

    fetchers = {
        "reviews": get_reviews,
        "review_comments": get_review_comments,
        "issue_comments": get_issue_comments,
    }
    results: dict[str, list[FeedbackItem]] = {}
    with ThreadPoolExecutor(max_workers=len(fetchers)) as pool:
        futures = {name: pool.submit(fn, pr) for name, fn in fetchers.items()}
        for name, future in futures.items():
            try:
                results[name] = future.result()
            except _FETCH_ERRORS as e:
                logger.warning("Could not fetch %s for PR #%d: %s", name.replace("_", " "), ref.number, e)
                results[name] = []

    return PRData(record=record, **results)


def _attach_pr(data: ExtractedData, pr_data: PRData) -> None:
    data.pr = pr_data.record
    data.reviews = pr_data.reviews
    data.review_comments = pr_data.review_comments
    data.issue_comments = pr_data.issue_comments


def _load_pr(data: ExtractedData, sources: Sources, ref: PRReference | None) -> None:
    if ref is None:
        return
    pr_data = fetch_pr_data(sources, ref)
    if pr_data is not None:
        _attach_pr(data, pr_data)


def _answer(data: ExtractedData, need: NeedsInput, answer: str, sources: Sources, config: Config) -> None:
    if need.kind == NEEDS_PR_NUMBER:
        number = parse_pr_number(answer)
        if number is None:
            logger.warning("Could not fetch PR %s", answer)
            return
        _load_pr(data, sources, sources.pr_reference(number))
    elif need.kind == NEEDS_LINEAR_ID:
        data.linear = sources.fetch_linear(answer.upper(), config)


def extract(
    token: str,
    sources: Sources,
    config: Config,
    ask: Ask | None = None,
) -> ExtractedData:
    """Build ExtractedData for a Linear issue ID or a PR number.

    ``ask`` supplies the missing side of the pair interactively; pass None
    for non-interactive runs. Raises ResolutionFailure when neither a PR nor
    a Linear issue is found for ``token``.
    """
    token = token.strip()
    data = ExtractedData()

    if is_linear_id(token):
        logger.info("🔍 Processing as Linear issue: %s", token)
        data.linear = sources.fetch_linear(token, config)
        if data.linear is not None:
            ref = pr_from_attachments(data.linear.attachments)
            if ref is not None:
                logger.info("✅ Found GitHub PR from Linear attachment: %s#%d", ref.slug, ref.number)
            else:
                ref = sources.find_pr_for_branch(data.linear.branch_name)
            _load_pr(data, sources, ref)
    else:
        logger.info("🔍 Processing as GitHub PR: %s", token)
        number = parse_pr_number(token)
        if number is not None:
            _load_pr(data, sources, sources.pr_reference(number))
        if data.pr is not None:
            linear_id = linear_id_from_branch(data.pr.head_branch)
            if linear_id:
                data.linear = sources.fetch_linear(linear_id, config)

    if not data.found:
        raise ResolutionFailure(token)

    interactive = ask is not None and config.workflow.enable_interactive_prompts
    need = missing_counterpart(data, interactive)
    if need is not None:
        answer = ask(need).strip()
        if answer:
            _answer(data, need, answer, sources, config)

    return data


def detect_input_for_branch(branch: str | None, sources: Sources) -> str | None:
    """Pick a token for the current branch: a Linear ID in its name, else its open PR."""
    linear_id = linear_id_from_branch(branch)
    if linear_id:
        logger.info("✅ Found Linear issue in branch: %s", linear_id)
        return linear_id
    ref = sources.find_pr_for_branch(branch)
    if ref is not None:
        return str(ref.number)
    return None
