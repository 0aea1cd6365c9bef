"""Tests for the Jules / Copilot work queues."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from github import GithubException

from julesflow_core.aggregator import Sources
from julesflow_core.config import Config, merge_config
from julesflow_core.errors import LinearError
from julesflow_core.manager import (
    OpenPR,
    assign_copilot,
    collect_open_pulls,
    describe_pull,
    enrich_with_linear,
    format_linear_issue_list,
    format_pr_list,
    linear_issues_without_prs,
    needing_review,
    needing_update,
    sort_pulls,
    urgency_emoji,
)
from julesflow_core.models import LinearAssignee, LinearAttachment, LinearIssueRecord

CONFIG = Config()
COPILOT = "copilot-pull-request-reviewer[bot]"
NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _at(days_ago, hours=0):
    return NOW - timedelta(days=days_ago, hours=hours)


def _commit(author, when):
    c = MagicMock()
    c.commit.author.name = author
    c.commit.author.date = when
    return c


def _review(login, when):
    r = MagicMock()
    r.user.login = login
    r.submitted_at = when
    return r


def _pull(number=7, head="feature/ENG-7-login", commits=None, reviews=None, draft=False):
    pr = MagicMock()
    pr.number = number
    pr.title = f"PR {number}"
    pr.head.ref = head
    pr.html_url = f"https://github.com/acme/web/pull/{number}"
    pr.draft = draft
    pr.get_commits.return_value = commits if commits is not None else [_commit("google-labs-jules[bot]", _at(1))]
    pr.get_reviews.return_value = reviews or []
    return pr


def _open(number, **kwargs):
    defaults = dict(title=f"PR {number}", branch=f"b{number}", url=f"https://github.com/acme/web/pull/{number}")
    defaults.update(kwargs)
    return OpenPR(number=number, **defaults)


class TestDescribePull:
    def test_never_reviewed(self):
        item = describe_pull(_pull(), CONFIG)
        assert item.last_commit_author == "google-labs-jules[bot]"
        assert item.last_commit_date == _at(1)
        assert item.copilot_reviewed is False
        assert item.commits_after_review == 0
        assert item.linear_id == "ENG-7"

    def test_counts_commits_after_latest_copilot_review(self):
        commits = [_commit("dev", _at(5)), _commit("google-labs-jules", _at(3)), _commit("google-labs-jules", _at(1))]
        reviews = [_review(COPILOT, _at(4)), _review(COPILOT, _at(2)), _review("alice", _at(0, 1))]

        item = describe_pull(_pull(commits=commits, reviews=reviews), CONFIG)

        assert item.copilot_reviewed is True
        assert item.commits_after_review == 1

    def test_other_reviewers_ignored(self):
        item = describe_pull(_pull(reviews=[_review("alice", _at(0))]), CONFIG)
        assert item.copilot_reviewed is False

    def test_branch_without_linear_id(self):
        assert describe_pull(_pull(head="fix-typo"), CONFIG).linear_id is None

    def test_no_commits(self):
        item = describe_pull(_pull(commits=[]), CONFIG)
        assert item.last_commit_author == "unknown"
        assert item.last_commit_date is None


class TestCollectOpenPulls:
    def _repo(self, pulls):
        repo = MagicMock()
        repo.get_pulls.return_value = pulls
        return repo

    def test_describes_each_open_pull(self):
        repo = self._repo([_pull(1), _pull(2)])
        items = collect_open_pulls(repo, CONFIG, now=NOW)
        assert [i.number for i in items] == [1, 2]
        assert repo.get_pulls.call_args.kwargs["state"] == "open"

    def test_drafts_excluded_when_configured(self):
        config = merge_config(Config(), {"pr_manager": {"exclude_drafts": True}})
        items = collect_open_pulls(self._repo([_pull(1, draft=True), _pull(2)]), config, now=NOW)
        assert [i.number for i in items] == [2]

    def test_old_pulls_excluded_by_age(self):
        config = merge_config(Config(), {"pr_manager": {"max_days_old": 7}})
        stale = _pull(1, commits=[_commit("dev", _at(30))])
        items = collect_open_pulls(self._repo([stale, _pull(2)]), config, now=NOW)
        assert [i.number for i in items] == [2]

    def test_unreadable_pull_skipped(self):
        broken = _pull(1)
        broken.get_commits.side_effect = GithubException(500, {"message": "boom"}, None)
        items = collect_open_pulls(self._repo([broken, _pull(2)]), CONFIG, now=NOW)
        assert [i.number for i in items] == [2]


class TestQueues:
    def test_needing_review(self):
        prs = [
            _open(1, last_commit_author="google-labs-jules[bot]"),
            _open(2, last_commit_author="google-labs-jules[bot]", copilot_reviewed=True, commits_after_review=2),
            _open(3, last_commit_author="google-labs-jules[bot]", copilot_reviewed=True),
            _open(4, last_commit_author="alice"),
        ]
        assert [p.number for p in needing_review(prs, CONFIG)] == [1, 2]

    def test_needing_update(self):
        prs = [
            _open(1, copilot_reviewed=True),
            _open(2, copilot_reviewed=True, commits_after_review=1),
            _open(3),
        ]
        assert [p.number for p in needing_update(prs)] == [1]

    def test_sorted_by_urgency_then_newest_commit(self):
        prs = [
            _open(1, linear_priority=0, last_commit_date=_at(0)),
            _open(2, linear_priority=3, last_commit_date=_at(5)),
            _open(3, linear_priority=1, last_commit_date=_at(9)),
            _open(4, linear_priority=3, last_commit_date=_at(1)),
            _open(5, linear_priority=0, last_commit_date=None),
        ]
        assert [p.number for p in sort_pulls(prs)] == [3, 4, 2, 1, 5]


class TestEnrichWithLinear:
    def test_fills_priority(self):
        linear = MagicMock()
        linear.get_priority.return_value = 2
        prs = enrich_with_linear([_open(1, linear_id="ENG-7"), _open(2)], linear)
        assert [p.linear_priority for p in prs] == [2, 0]
        linear.get_priority.assert_called_once_with("ENG-7")

    def test_lookup_failure_keeps_pr(self):
        linear = MagicMock()
        linear.get_priority.side_effect = LinearError("nope")
        prs = enrich_with_linear([_open(1, linear_id="ENG-7")], linear)
        assert prs[0].linear_priority == 0

    def test_without_client_returns_input(self):
        prs = [_open(1, linear_id="ENG-7")]
        assert enrich_with_linear(prs, None) is prs


class TestAssignCopilot:
    def test_requests_review_and_reports_successes(self):
        repo = MagicMock()
        ok, failing = MagicMock(), MagicMock()
        failing.create_review_request.side_effect = GithubException(422, {"message": "nope"}, None)
        repo.get_pull.side_effect = lambda n: {1: ok, 2: failing}[n]

        assigned = assign_copilot(repo, [_open(1), _open(2)], CONFIG)

        assert assigned == [1]
        ok.create_review_request.assert_called_once_with(reviewers=[COPILOT])


class TestLinearIssuesWithoutPrs:
    def _sources(self, issues, open_branches=()):
        repo = MagicMock()
        repo.owner.login = "acme"

        def get_pulls(state, head=None, **kwargs):
            branch = head.split(":", 1)[1] if head else None
            return [MagicMock(number=99)] if branch in open_branches else []

        repo.get_pulls.side_effect = get_pulls
        linear = MagicMock()
        linear.list_open_issues.return_value = issues
        return Sources(repo_slug="acme/web", github_token="tok", linear=linear, repo_factory=lambda s, t: repo)

    def test_filters_and_sorts(self):
        issues = [
            LinearIssueRecord(id="ENG-1", title="Zebra", priority=2),
            LinearIssueRecord(id="ENG-2", title="Alpha", priority=2),
            LinearIssueRecord(id="ENG-3", title="Manual", priority=1, labels=["Human review"]),
            LinearIssueRecord(
                id="ENG-4",
                title="Linked",
                attachments=[LinearAttachment(url="https://github.com/acme/web/pull/5")],
            ),
            LinearIssueRecord(id="ENG-5", title="Branch", branch_name="eng-5-branch"),
            LinearIssueRecord(id="ENG-6", title="Bot", assignee=LinearAssignee(name="dependabot[bot]")),
            LinearIssueRecord(id="ENG-7", title="Backlog", priority=0),
            LinearIssueRecord(id="ENG-8", title="Urgent", priority=1),
        ]
        sources = self._sources(issues, open_branches=("eng-5-branch",))

        waiting = linear_issues_without_prs(sources, CONFIG)

        assert [i.id for i in waiting] == ["ENG-8", "ENG-2", "ENG-1", "ENG-7"]

    def test_human_label_kept_when_filter_disabled(self):
        config = merge_config(Config(), {"pr_manager": {"exclude_human_labeled": False}})
        issues = [LinearIssueRecord(id="ENG-3", title="Manual", labels=["human"])]
        assert [i.id for i in linear_issues_without_prs(self._sources(issues), config)] == ["ENG-3"]

    def test_without_linear_client(self):
        sources = Sources(repo_slug="acme/web", github_token="tok", linear=None)
        assert linear_issues_without_prs(sources, CONFIG) == []

    def test_listing_failure_returns_empty(self):
        sources = self._sources([])
        sources.linear.list_open_issues.side_effect = LinearError("down")
        assert linear_issues_without_prs(sources, CONFIG) == []


class TestFormatting:
    def test_pr_list(self):
        prs = [
            _open(
                12,
                title="Login",
                branch="feature/ENG-7-login",
                last_commit_author="google-labs-jules",
                last_commit_date=_at(1),
                copilot_reviewed=True,
                linear_id="ENG-7",
                linear_priority=1,
                is_draft=True,
            ),
            _open(13, title="Typo"),
        ]

        out = format_pr_list(prs, "Queue", CONFIG)

        assert out.startswith("## Queue\n\n1. 🚨 **PR #12**: Login (ENG-7 - Priority: 1) 📝 DRAFT\n")
        assert "   - **Branch**: `feature/ENG-7-login`\n" in out
        assert "   - **Last Commit**: google-labs-jules on 2026-09-30\n" in out
        assert "   - **Copilot Reviewed**: ✅ Yes\n" in out
        assert "   - **Commits After Review**: 0\n" in out
        assert "2. ℹ️ **PR #13**: Typo (No Linear Issue)\n" in out

    def test_pr_list_without_details(self):
        config = merge_config(Config(), {"pr_manager": {"show_detailed_info": False}})
        out = format_pr_list([_open(1)], "Queue", config)
        assert "**Branch**" not in out
        assert "**URL**" not in out

    def test_limit_adds_notice(self):
        config = merge_config(Config(), {"pr_manager": {"max_items_per_list": 1}})
        out = format_pr_list([_open(1), _open(2)], "Queue", config)
        assert "PR #2" not in out
        assert "_Showing 1 of 2 PRs (limited by configuration)_" in out

    def test_empty_list_omitted_unless_configured(self):
        assert format_pr_list([], "Queue", CONFIG) == ""
        config = merge_config(Config(), {"filtering": {"include_empty_sections": True}})
        assert "✅ No PRs found matching criteria." in format_pr_list([], "Queue", config)
        assert "✅ No Linear issues found matching criteria." in format_linear_issue_list([], "Issues", config)

    def test_linear_issue_list(self):
        issue = LinearIssueRecord(
            id="ENG-9", title="Reset", url="u", priority=3, priority_label="Medium", team="Web", state="Todo"
        )
        out = format_linear_issue_list([issue], "Issues", CONFIG)
        assert out.startswith("## Issues\n\n1. ⚠️ **ENG-9**: Reset\n")
        assert "   - **Team**: Web\n   - **State**: Todo\n   - **Priority**: Medium\n   - **URL**: u\n" in out

    def test_urgency_emoji(self):
        assert [urgency_emoji(p, CONFIG) for p in (1, 2, 3, 4, 0)] == ["🚨", "🚨", "⚠️", "ℹ️", "ℹ️"]
