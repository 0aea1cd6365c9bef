"""Linear GraphQL client.

An issue is fetched in two steps: a primary query that proves the issue
exists, then the comments, labels, attachments and relations
(state/assignee/team) fetched concurrently. Sub-fetch failures are logged
and leave the corresponding field empty.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests

from julesflow_core.errors import LinearError
from julesflow_core.models import LinearAssignee, LinearAttachment, LinearComment, LinearIssueRecord

logger = logging.getLogger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"
_TIMEOUT = 30
_MAX_COMMENTS = 100
_MAX_ATTACHMENTS = 50
_MAX_OPEN_ISSUES = 100

_ISSUE_QUERY = """
query($id: String!) {
    issue(id: $id) {
        identifier
        title
        description
        branchName
        url
        priority
        priorityLabel
    }
}
"""

_RELATIONS_QUERY = """
query($id: String!) {
    issue(id: $id) {
        state { name }
        assignee { name displayName email }
        team { name }
    }
}
"""

_COMMENTS_QUERY = """
query($id: String!, $first: Int!) {
    issue(id: $id) {
        comments(first: $first) {
            nodes { body createdAt user { name displayName } }
        }
    }
}
"""

_LABELS_QUERY = """
query($id: String!) {
    issue(id: $id) {
        labels { nodes { name } }
    }
}
"""

_ATTACHMENTS_QUERY = """
query($id: String!, $first: Int!) {
    issue(id: $id) {
        attachments(first: $first) {
            nodes { url title }
        }
    }
}
"""

_OPEN_ISSUES_QUERY = """
query($first: Int!) {
    issues(
        first: $first
        includeArchived: false
        filter: { state: { type: { nin: ["completed", "canceled"] } } }
    ) {
        nodes {
            identifier
            title
            url
            branchName
            priority
            priorityLabel
            state { name }
            team { name }
            assignee { name displayName email }
            labels { nodes { name } }
            attachments { nodes { url title } }
        }
    }
}
"""

_VIEWER_QUERY = """
query {
    viewer { id name }
}
"""


def _display_name(user: dict | None) -> str:
    if not user:
        return "Unknown User"
    return user.get("displayName") or user.get("name") or "Unknown User"


class LinearClient:
    def __init__(self, api_key: str, api_url: str = LINEAR_API_URL):
        self.api_key = api_key
        self.api_url = api_url

    def _query(self, query: str, variables: dict[str, Any]) -> dict:
        resp = requests.post(
            self.api_url,
            json={"query": query, "variables": variables},
            headers={"Authorization": self.api_key, "Content-Type": "application/json"},
            timeout=_TIMEOUT,
        )
        if resp.status_code != 200:
            raise LinearError(f"Linear API returned {resp.status_code}: {resp.text[:500]}")
        payload = resp.json()
        if payload.get("errors"):
            messages = "; ".join(e.get("message", str(e)) for e in payload["errors"])
            raise LinearError(f"Linear API returned errors: {messages}")
        return payload.get("data") or {}

    def _issue(self, query: str, issue_id: str, **extra: Any) -> dict:
        return self._query(query, {"id": issue_id, **extra}).get("issue") or {}

    # ------------------------------------------------------------------ #
    # Sub-resources                                                        #
    # ------------------------------------------------------------------ #

    def get_comments(self, issue_id: str) -> list[LinearComment]:
        issue = self._issue(_COMMENTS_QUERY, issue_id, first=_MAX_COMMENTS)
        return [
            LinearComment(
                author=_display_name(node.get("user")),
                body=node.get("body") or "",
                created_at=node.get("createdAt"),
            )
            for node in (issue.get("comments") or {}).get("nodes", [])
        ]

    def get_labels(self, issue_id: str) -> list[str]:
        issue = self._issue(_LABELS_QUERY, issue_id)
        return [node["name"] for node in (issue.get("labels") or {}).get("nodes", [])]

    def get_attachments(self, issue_id: str) -> list[LinearAttachment]:
        issue = self._issue(_ATTACHMENTS_QUERY, issue_id, first=_MAX_ATTACHMENTS)
        return [
            LinearAttachment(url=node.get("url") or "", title=node.get("title"))
            for node in (issue.get("attachments") or {}).get("nodes", [])
        ]

    def get_relations(self, issue_id: str) -> dict[str, Any]:
        issue = self._issue(_RELATIONS_QUERY, issue_id)
        assignee = issue.get("assignee")
        return {
            "state": (issue.get("state") or {}).get("name") or "Unknown",
            "team": (issue.get("team") or {}).get("name") or "Unknown",
            "assignee": (
                LinearAssignee(name=_display_name(assignee), email=assignee.get("email")) if assignee else None
            ),
        }

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def fetch_issue(
        self,
        issue_id: str,
        include_comments: bool = True,
        include_attachments: bool = True,
    ) -> LinearIssueRecord | None:
        """Return the issue, or None if it does not exist or the primary query fails."""
        try:
            core = self._issue(_ISSUE_QUERY, issue_id)
        except (LinearError, requests.RequestException, ValueError) as e:
            logger.warning("Could not fetch Linear issue %s: %s", issue_id, e)
            return None
        if not core:
            return None

        fetchers = {
            "relations": (self.get_relations, {"state": "Unknown", "team": "Unknown", "assignee": None}),
            "labels": (self.get_labels, []),
        }
        if include_comments:
            fetchers["comments"] = (self.get_comments, [])
        if include_attachments:
            fetchers["attachments"] = (self.get_attachments, [])

        results: dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=len(fetchers)) as pool:
            futures = {name: pool.submit(fn, issue_id) for name, (fn, _) in fetchers.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except (LinearError, requests.RequestException, ValueError, KeyError) as e:
                    logger.warning("Could not fetch %s for Linear issue %s: %s", name, issue_id, e)
                    results[name] = fetchers[name][1]

        relations = results["relations"]
        return LinearIssueRecord(
            id=core.get("identifier") or issue_id,
            title=core.get("title") or "",
            url=core.get("url") or "",
            description=core.get("description"),
            branch_name=core.get("branchName"),
            state=relations["state"],
            priority=int(core.get("priority") or 0),
            priority_label=core.get("priorityLabel") or "None",
            assignee=relations["assignee"],
            team=relations["team"],
            labels=results["labels"],
            comments=results.get("comments", []),
            attachments=results.get("attachments", []),
        )

    def get_priority(self, issue_id: str) -> int:
        """Linear urgency of an issue: 0 = none, 1 = urgent ... 4 = low."""
        return int(self._issue(_ISSUE_QUERY, issue_id).get("priority") or 0)

    def list_open_issues(self, first: int = _MAX_OPEN_ISSUES) -> list[LinearIssueRecord]:
        """Issues that are neither completed nor canceled, without comments."""
        nodes = (self._query(_OPEN_ISSUES_QUERY, {"first": first}).get("issues") or {}).get("nodes", [])
        issues = []
        for node in nodes:
            assignee = node.get("assignee")
            issues.append(
                LinearIssueRecord(
                    id=node.get("identifier") or "",
                    title=node.get("title") or "",
                    url=node.get("url") or "",
                    branch_name=node.get("branchName"),
                    state=(node.get("state") or {}).get("name") or "Unknown",
                    priority=int(node.get("priority") or 0),
                    priority_label=node.get("priorityLabel") or "None",
                    assignee=(
                        LinearAssignee(name=_display_name(assignee), email=assignee.get("email")) if assignee else None
                    ),
                    team=(node.get("team") or {}).get("name") or "Unknown",
                    labels=[label["name"] for label in (node.get("labels") or {}).get("nodes", [])],
                    attachments=[
                        LinearAttachment(url=a.get("url") or "", title=a.get("title"))
                        for a in (node.get("attachments") or {}).get("nodes", [])
                    ],
                )
            )
        return issues

    def viewer(self) -> dict:
        """The authenticated user. Raises LinearError when the key is rejected."""
        viewer = self._query(_VIEWER_QUERY, {}).get("viewer")
        if not viewer:
            raise LinearError("Linear API returned no viewer for this key")
        return viewer
