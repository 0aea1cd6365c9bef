"""Markdown rendering of the combined PR + Linear report.

Each section has its own render function that depends only on the extracted
data and the configuration. ``render_sections`` collects them into a
``{SectionName: fragment}`` mapping and ``assemble`` concatenates that mapping
in the configured section order. Linear issues without a PR use the simpler
single-entity template from ``render_linear_only``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Callable

from julesflow_core.comments import classify_all, deduplicate, sort_by_priority
from julesflow_core.config import DEFAULT_HEADERS, Config
from julesflow_core.models import ExtractedData, FeedbackItem, Priority, SectionName

SUMMARY_HEADER = "**UNIFIED PR/ISSUE DISCUSSION SUMMARY**"
EMPTY_PLACEHOLDER = "_No items._"
TRUNCATION_MARKER = "... (truncated)"
GENERAL_FILE_BUCKET = "General"
BOT_SUMMARY_CHARS = 100

_ENV_RULE = (
    "You don't have access to project environmental variables. If you must make an edit / migration of the "
    "database please instead edit prisma schema file and leave it as is, assuming a human will migrate it later."
)
_BRANCH_RULE = (
    "When publishing the github branch the name MUST BE THE FULL EXACT the FROM branch mentioned at the top "
    "of the output (but not the shortened version at the top of the output)."
)


@dataclass
class Feedback:
    """Classified and deduplicated feedback, split by origin and by human/bot."""

    human_reviews: list[FeedbackItem] = field(default_factory=list)
    human_code_comments: list[FeedbackItem] = field(default_factory=list)
    human_general_comments: list[FeedbackItem] = field(default_factory=list)
    bot_reviews: list[FeedbackItem] = field(default_factory=list)
    bot_code_comments: list[FeedbackItem] = field(default_factory=list)
    bot_general_comments: list[FeedbackItem] = field(default_factory=list)

    @property
    def human(self) -> list[FeedbackItem]:
        return self.human_reviews + self.human_code_comments + self.human_general_comments

    @property
    def bots(self) -> list[FeedbackItem]:
        return self.bot_reviews + self.bot_code_comments + self.bot_general_comments


def _split(items: Iterable[FeedbackItem], config: Config) -> tuple[list[FeedbackItem], list[FeedbackItem]]:
    unique = deduplicate(classify_all(items, config), config.filtering.enable_deduplication)
    return [i for i in unique if not i.is_bot], [i for i in unique if i.is_bot]


def prepare_feedback(data: ExtractedData, config: Config) -> Feedback:
    """Classify every item, then dedupe within each origin group."""
    human_reviews, bot_reviews = _split(data.reviews, config)
    human_code, bot_code = _split(data.review_comments, config)
    human_general, bot_general = _split(data.issue_comments, config)
    return Feedback(
        human_reviews=human_reviews,
        human_code_comments=human_code,
        human_general_comments=human_general,
        bot_reviews=bot_reviews,
        bot_code_comments=bot_code,
        bot_general_comments=bot_general,
    )


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #


def _header(section: SectionName, config: Config) -> str:
    return config.display.custom_headers.get(section, DEFAULT_HEADERS.get(section, ""))


def _badge(item: FeedbackItem, config: Config) -> str:
    priority = item.priority or config.priority.default_priority
    return f"{config.priority.emojis.get(priority, '')} {priority.value}"


def _empty(section: SectionName, config: Config) -> str:
    if not config.filtering.include_empty_sections:
        return ""
    return f"{_header(section, config)}\n\n{EMPTY_PLACEHOLDER}\n\n"


def truncate_code_context(code: str, config: Config) -> str:
    """Cut ``code`` to ``code_context.max_code_lines`` lines and mark the cut."""
    if not config.code_context.enable_truncation:
        return code
    lines = code.split("\n")
    max_lines = config.code_context.max_code_lines
    if len(lines) <= max_lines:
        return code
    return "\n".join(lines[:max_lines]) + "\n" + TRUNCATION_MARKER


def bot_summary_line(item: FeedbackItem) -> str:
    """One-line ``author: first 100 chars...`` summary of a bot comment."""
    body = item.body or ""
    prefix = " ".join(body[:BOT_SUMMARY_CHARS].split())
    suffix = "..." if len(body) > BOT_SUMMARY_CHARS else ""
    return f"{item.author}: {prefix}{suffix}"


def jules_rules(branch: str | None, config: Config, linear_only: bool = False) -> list[str]:
    """Custom rules if configured (else the built-ins), followed by additional rules."""
    rules = list(config.output.custom_jules_rules)
    if not rules:
        if linear_only:
            branch_rule = (
                f"{_BRANCH_RULE} For Linear-only issues without an existing branch, create an appropriate "
                "branch name from the Linear issue ID and title."
            )
        else:
            branch_rule = f'{_BRANCH_RULE} For example it will be the full: "{branch or "unknown"}"'
        rules = [_ENV_RULE, branch_rule]
    return rules + list(config.output.additional_jules_rules)


def _render_rules(branch: str | None, config: Config, linear_only: bool = False) -> str:
    if not config.output.include_jules_rules:
        return ""
    lines = [_header(SectionName.JULES_RULES, config)]
    lines.extend(f"- {rule}" for rule in jules_rules(branch, config, linear_only))
    return "\n".join(lines) + "\n"


# --------------------------------------------------------------------------- #
# Sections                                                                     #
# --------------------------------------------------------------------------- #


def render_header(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    if not config.output.include_branch_name_header:
        return ""
    return f"{data.branch_name or 'unknown'}\n\n"


def render_summary_header(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    if not config.output.include_unified_summary_header:
        return ""
    return f"{SUMMARY_HEADER}\n\n"


def render_pr_overview(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    pr = data.pr
    if pr is None or not config.integrations.github_include_pr_description:
        return ""
    lines = [
        "**GitHub PR Overview**",
        f"Title: {pr.title}",
        f"Branch: {pr.head_branch} → {pr.base_branch}",
        f"State: {pr.state}{' (Draft)' if pr.is_draft else ''}",
        f"URL: {pr.url}",
    ]
    if pr.description:
        lines.append(f"Description: {pr.description}")
    return "\n".join(lines) + "\n\n"


def render_linear_overview(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    issue = data.linear
    if issue is None or not config.integrations.linear_include_comments:
        return ""
    lines = [
        "**Linear Issue Context**",
        f"ID: {issue.id}",
        f"Title: {issue.title}",
    ]
    if issue.description:
        lines.append(f"Description: {issue.description}")
    if issue.branch_name:
        lines.append(f"Branch: {issue.branch_name}")
    if issue.comments and config.output.include_linear_discussion:
        lines.append("")
        lines.append("Linear Discussion:")
        lines.extend(f"**{c.author}:** {c.body}" for c in issue.comments)
    return "\n".join(lines) + "\n\n"


def render_human_reviews(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    if not config.integrations.github_include_reviews:
        return ""
    if not feedback.human_reviews:
        return _empty(SectionName.HUMAN_REVIEWS, config)
    out = f"{_header(SectionName.HUMAN_REVIEWS, config)}\n\n"
    for index, review in enumerate(sort_by_priority(feedback.human_reviews), 1):
        out += f"**Review {index}** {_badge(review, config)}\n"
        out += f"**Reviewer:** {review.author}\n"
        out += f"**State:** {review.review_state or 'COMMENTED'}\n"
        out += f"**Comment:** {review.body}\n\n"
    return out


def _render_code_comment(index: int, comment: FeedbackItem, config: Config, show_path: bool) -> str:
    out = f"**Comment {index}** {_badge(comment, config)}\n"
    if show_path and comment.file_path:
        out += f"**File:** {comment.file_path}\n"
    if comment.line_number and config.code_context.show_line_numbers:
        out += f"**Line:** {comment.line_number}\n"
    out += f"**Reviewer:** {comment.author}\n"
    out += f"**Comment:** {comment.body}\n"
    if comment.code_context:
        out += f"**Code Context:**\n```\n{truncate_code_context(comment.code_context, config)}\n```\n"
    return out + "\n"


def group_by_file(comments: Iterable[FeedbackItem]) -> dict[str, list[FeedbackItem]]:
    """Group comments by file path in first-seen order; path-less comments go to "General"."""
    groups: dict[str, list[FeedbackItem]] = {}
    for comment in comments:
        groups.setdefault(comment.file_path or GENERAL_FILE_BUCKET, []).append(comment)
    return groups


def render_human_code_comments(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    if not config.integrations.github_include_review_comments:
        return ""
    if not feedback.human_code_comments:
        return _empty(SectionName.HUMAN_CODE_COMMENTS, config)
    out = f"{_header(SectionName.HUMAN_CODE_COMMENTS, config)}\n\n"
    if config.code_context.group_comments_by_file:
        for file_path, comments in group_by_file(feedback.human_code_comments).items():
            if config.code_context.show_file_paths:
                out += f"**File: {file_path}**\n"
            for index, comment in enumerate(sort_by_priority(comments), 1):
                out += _render_code_comment(index, comment, config, show_path=False)
    else:
        for index, comment in enumerate(sort_by_priority(feedback.human_code_comments), 1):
            out += _render_code_comment(index, comment, config, show_path=config.code_context.show_file_paths)
    return out


def render_human_general_comments(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    if not config.integrations.github_include_issue_comments:
        return ""
    if not feedback.human_general_comments:
        return _empty(SectionName.HUMAN_GENERAL_COMMENTS, config)
    out = f"{_header(SectionName.HUMAN_GENERAL_COMMENTS, config)}\n\n"
    for index, comment in enumerate(sort_by_priority(feedback.human_general_comments), 1):
        out += f"**Comment {index}** {_badge(comment, config)}\n"
        out += f"**Author:** {comment.author}\n"
        out += f"**Comment:** {comment.body}\n"
        if comment.created_at:
            out += f"**Posted:** {comment.created_at}\n"
        out += "\n"
    return out


def render_bot_feedback(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    if not config.filtering.include_bot_feedback:
        return ""
    bots = feedback.bots
    if not bots:
        return _empty(SectionName.BOT_FEEDBACK, config)

    buckets: dict[Priority, list[str]] = {tier: [] for tier in Priority}
    for item in bots:
        buckets[item.priority or config.priority.default_priority].append(bot_summary_line(item))

    cap = config.filtering.max_bot_items_per_priority
    out = f"{_header(SectionName.BOT_FEEDBACK, config)} ({len(bots)} items)\n\n"
    for tier, lines in buckets.items():
        if not lines:
            continue
        out += f"**{tier.value} Priority {config.priority.emojis.get(tier, '')}** ({len(lines)} items)\n"
        out += "".join(f"• {line}\n" for line in lines[:cap])
        if len(lines) > cap:
            out += f"• ... and {len(lines) - cap} more\n"
        out += "\n"
    return out


def render_action_items(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    human = feedback.human
    if not human:
        return ""
    high = sum(1 for item in human if item.priority == Priority.HIGH)
    medium = sum(1 for item in human if item.priority == Priority.MEDIUM)
    emojis = config.priority.emojis
    out = f"{_header(SectionName.ACTION_ITEMS, config)}\n"
    if high:
        out += f"{emojis[Priority.HIGH]} **URGENT**: {high} high priority items requiring immediate attention\n"
    if medium:
        out += f"{emojis[Priority.MEDIUM]} **IMPORTANT**: {medium} medium priority improvements\n"
    out += f"📊 **TOTAL**: {len(human)} human feedback items + {len(feedback.bots)} bot suggestions\n\n"
    return out


def render_jules_rules(data: ExtractedData, feedback: Feedback, config: Config) -> str:
    return _render_rules(data.branch_name, config)


SectionRenderer = Callable[[ExtractedData, Feedback, Config], str]

SECTION_RENDERERS: dict[SectionName, SectionRenderer] = {
    SectionName.HEADER: render_header,
    SectionName.SUMMARY_HEADER: render_summary_header,
    SectionName.PR_OVERVIEW: render_pr_overview,
    SectionName.LINEAR_OVERVIEW: render_linear_overview,
    SectionName.HUMAN_REVIEWS: render_human_reviews,
    SectionName.HUMAN_CODE_COMMENTS: render_human_code_comments,
    SectionName.HUMAN_GENERAL_COMMENTS: render_human_general_comments,
    SectionName.BOT_FEEDBACK: render_bot_feedback,
    SectionName.ACTION_ITEMS: render_action_items,
    SectionName.JULES_RULES: render_jules_rules,
}


def render_sections(data: ExtractedData, config: Config) -> dict[SectionName, str]:
    """Render every section; empty ones are left out unless include_empty_sections is set."""
    feedback = prepare_feedback(data, config)
    fragments = {}
    for name, renderer in SECTION_RENDERERS.items():
        fragment = renderer(data, feedback, config)
        if fragment.strip() or (fragment and config.filtering.include_empty_sections):
            fragments[name] = fragment
    return fragments


def assemble(fragments: Mapping[SectionName, str], order: Iterable[SectionName]) -> str:
    """Concatenate fragments in ``order``, skipping names with no fragment."""
    return "".join(fragments[name] for name in order if name in fragments)


# --------------------------------------------------------------------------- #
# Templates                                                                    #
# --------------------------------------------------------------------------- #


def render_linear_only(data: ExtractedData, config: Config) -> str:
    """Single-entity template for a Linear issue with no pull request."""
    issue = data.linear
    if issue is None:
        return ""

    parts = []
    if config.output.include_linear_id_header:
        parts.append(f"{issue.id}\n\n")
    parts.append(f"# {issue.title}\n\n")
    if issue.description and config.integrations.linear_include_comments:
        parts.append(f"{issue.description}\n\n")

    if config.output.include_metadata:
        meta = ["## Metadata", f"- URL: [{issue.url}]({issue.url})", f"- Identifier: {issue.id}", f"- Status: {issue.state}"]
        if issue.assignee:
            meta.append(f"- Assignee: {issue.assignee.name}")
        if issue.labels:
            meta.append(f"- Labels: {', '.join(issue.labels)}")
        meta.append(f"- Priority: {issue.priority_label}")
        meta.append(f"- Team: {issue.team}")
        parts.append("\n".join(meta) + "\n\n")

    if issue.comments and config.output.include_linear_discussion:
        comments = "## Comments\n\n"
        for comment in issue.comments:
            comments += f"- {comment.author}:\n\n  {comment.body}\n\n"
        parts.append(comments)

    parts.append(_render_rules(issue.branch_name, config, linear_only=True))
    return "".join(parts)


def format_output(data: ExtractedData, config: Config) -> str:
    """Render the full report for ``data``."""
    if data.is_linear_only:
        return render_linear_only(data, config)
    return assemble(render_sections(data, config), config.output.section_order)
