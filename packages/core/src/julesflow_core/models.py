"""In-memory records for a single extraction run.

Everything here is created fresh per invocation and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Origin(str, Enum):
    REVIEW = "review"
    INLINE_CODE_COMMENT = "inline_code_comment"
    DISCUSSION_COMMENT = "discussion_comment"


class SectionName(str, Enum):
    """Report sections of the combined PR + Linear template, in default order."""

    HEADER = "header"
    SUMMARY_HEADER = "summary_header"
    PR_OVERVIEW = "pr_overview"
    LINEAR_OVERVIEW = "linear_overview"
    HUMAN_REVIEWS = "human_reviews"
    HUMAN_CODE_COMMENTS = "human_code_comments"
    HUMAN_GENERAL_COMMENTS = "human_general_comments"
    BOT_FEEDBACK = "bot_feedback"
    ACTION_ITEMS = "action_items"
    JULES_RULES = "jules_rules"


@dataclass(frozen=True)
class FeedbackItem:
    """One review, inline comment or discussion comment.

    ``is_bot`` and ``priority`` are only populated on the copy returned by
    ``julesflow_core.comments.classify``; raw items fetched from GitHub keep
    the defaults.
    """

    author: str
    body: str
    origin: Origin
    file_path: str | None = None
    line_number: int | None = None
    code_context: str | None = None
    review_state: str | None = None
    created_at: str | None = None
    is_bot: bool = False
    priority: Priority | None = None


@dataclass(frozen=True)
class PRReference:
    owner: str
    repo: str
    number: int

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class PRRecord:
    owner: str
    repo: str
    number: int
    title: str
    description: str = ""
    base_branch: str = ""
    head_branch: str = ""
    state: str = "open"
    is_draft: bool = False

    @property
    def branch(self) -> str:
        return self.head_branch

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/pull/{self.number}"


@dataclass(frozen=True)
class LinearAssignee:
    name: str
    email: str | None = None


@dataclass(frozen=True)
class LinearComment:
    author: str
    body: str
    created_at: str | None = None


@dataclass(frozen=True)
class LinearAttachment:
    url: str
    title: str | None = None


@dataclass(frozen=True)
class LinearIssueRecord:
    id: str
    title: str
    url: str = ""
    description: str | None = None
    branch_name: str | None = None
    state: str = "Unknown"
    priority: int = 0  # 0 = none, 1 = urgent ... 4 = low
    priority_label: str = "None"
    assignee: LinearAssignee | None = None
    team: str = "Unknown"
    labels: list[str] = field(default_factory=list)
    comments: list[LinearComment] = field(default_factory=list)
    attachments: list[LinearAttachment] = field(default_factory=list)


@dataclass
class ExtractedData:
    """Aggregate root for one run: PR and/or Linear data plus raw feedback."""

    pr: PRRecord | None = None
    linear: LinearIssueRecord | None = None
    reviews: list[FeedbackItem] = field(default_factory=list)
    review_comments: list[FeedbackItem] = field(default_factory=list)
    issue_comments: list[FeedbackItem] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.pr is not None or self.linear is not None

    @property
    def is_linear_only(self) -> bool:
        return self.linear is not None and self.pr is None

    @property
    def source_type(self) -> str:
        return "pr" if self.pr is not None else "linear"

    @property
    def source_id(self) -> str:
        if self.pr is not None:
            return str(self.pr.number)
        if self.linear is not None:
            return self.linear.id
        return "unknown"

    @property
    def branch_name(self) -> str | None:
        if self.pr is not None and self.pr.head_branch:
            return self.pr.head_branch
        if self.linear is not None:
            return self.linear.branch_name
        return None
