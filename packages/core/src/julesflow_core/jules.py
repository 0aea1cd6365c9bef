"""Two-step copy for handing a report to Jules.

Step one copies a short identifier (branch name, Linear ID or title) so it
can be pasted into the agent's branch field; step two copies the full report.
"""

from __future__ import annotations

from julesflow_core.config import Config
from julesflow_core.models import ExtractedData


def first_copy_kind(data: ExtractedData, config: Config) -> str:
    if data.is_linear_only:
        return config.jules_mode.linear_only_first_copy
    return config.jules_mode.first_copy


def first_copy_content(data: ExtractedData, config: Config) -> str:
    """Return the text copied in step one."""
    kind = first_copy_kind(data, config)
    pr, issue = data.pr, data.linear

    if data.is_linear_only:
        if kind == "title":
            return issue.title
        if kind == "branch_name":
            return issue.branch_name or issue.id
        return issue.id

    if kind == "linear_id":
        return (issue.id if issue else None) or (pr.head_branch if pr else None) or "unknown"
    if kind == "title":
        return (pr.title if pr else None) or (issue.title if issue else None) or "unknown-title"
    return data.branch_name or "unknown-branch"


def first_copy_label(data: ExtractedData, config: Config) -> str:
    return first_copy_kind(data, config).replace("_", " ")
