"""Tests for section rendering and report assembly."""

from julesflow_core.config import Config, merge_config
from julesflow_core.models import (
    ExtractedData,
    FeedbackItem,
    LinearAssignee,
    LinearComment,
    LinearIssueRecord,
    Origin,
    PRRecord,
    SectionName,
)
from julesflow_core.render import (
    EMPTY_PLACEHOLDER,
    SUMMARY_HEADER,
    TRUNCATION_MARKER,
    assemble,
    bot_summary_line,
    format_output,
    group_by_file,
    jules_rules,
    prepare_feedback,
    render_action_items,
    render_bot_feedback,
    render_human_code_comments,
    render_sections,
    truncate_code_context,
)

CONFIG = Config()
BOT = "github-actions[bot]"

PR = PRRecord(
    owner="acme",
    repo="web",
    number=42,
    title="Add login",
    description="Adds the login form",
    base_branch="main",
    head_branch="feature/ENG-7-login",
)

ISSUE = LinearIssueRecord(
    id="ENG-7",
    title="Login page",
    url="https://linear.app/acme/issue/ENG-7",
    description="Users need to log in",
    state="In Progress",
    priority=2,
    priority_label="High",
    assignee=LinearAssignee(name="Dana"),
    team="Web",
    labels=["frontend", "auth"],
    comments=[LinearComment(author="Sam", body="Use the design system button")],
)


def _inline(body, author="alice", path="src/auth.py", line=10, code=None):
    return FeedbackItem(
        author=author,
        body=body,
        origin=Origin.INLINE_CODE_COMMENT,
        file_path=path,
        line_number=line,
        code_context=code,
    )


def _review(body, author="alice", state="CHANGES_REQUESTED"):
    return FeedbackItem(author=author, body=body, origin=Origin.REVIEW, review_state=state)


def _discussion(body, author="alice"):
    return FeedbackItem(author=author, body=body, origin=Origin.DISCUSSION_COMMENT, created_at="2024-05-01T10:00:00")


def _render_code(data, config=CONFIG):
    return render_human_code_comments(data, prepare_feedback(data, config), config)


class TestHumanCodeComments:
    def test_high_priority_first_and_grouped_under_one_file(self):
        data = ExtractedData(
            pr=PR,
            review_comments=[_inline("fix this typo"), _inline("this is a security hole", line=20)],
        )
        out = _render_code(data)
        assert out.count("**File: src/auth.py**") == 1
        assert out.index("security hole") < out.index("fix this typo")
        assert "🚨 HIGH" in out
        assert "ℹ️ LOW" in out

    def test_pathless_comments_go_to_general_bucket(self):
        groups = group_by_file([_inline("a", path=None), _inline("b", path="x.py"), _inline("c", path=None)])
        assert list(groups) == ["General", "x.py"]
        assert [c.body for c in groups["General"]] == ["a", "c"]

    def test_ungrouped_shows_file_per_comment(self):
        config = merge_config(Config(), {"code_context": {"group_comments_by_file": False}})
        data = ExtractedData(pr=PR, review_comments=[_inline("one"), _inline("two", path="b.py")])
        out = _render_code(data, config)
        assert "**File:** src/auth.py" in out
        assert "**File:** b.py" in out
        assert "**File: src/auth.py**" not in out

    def test_line_numbers_can_be_hidden(self):
        config = merge_config(Config(), {"code_context": {"show_line_numbers": False}})
        out = _render_code(ExtractedData(pr=PR, review_comments=[_inline("one", line=12)]), config)
        assert "**Line:**" not in out

    def test_code_context_rendered_in_fence(self):
        out = _render_code(ExtractedData(pr=PR, review_comments=[_inline("one", code="@@ -1 +1 @@\n+x = 1")]))
        assert "**Code Context:**\n```\n@@ -1 +1 @@\n+x = 1\n```" in out

    def test_bot_comments_not_listed(self):
        data = ExtractedData(pr=PR, review_comments=[_inline("one"), _inline("bot says hi", author=BOT)])
        assert "bot says hi" not in _render_code(data)


class TestTruncateCodeContext:
    def test_long_context_is_cut_and_marked(self):
        code = "\n".join(f"line {n}" for n in range(15))
        result = truncate_code_context(code, CONFIG)
        lines = result.split("\n")
        assert len(lines) == 11
        assert lines[9] == "line 9"
        assert lines[-1] == TRUNCATION_MARKER

    def test_short_context_unchanged(self):
        code = "a\nb\nc"
        assert truncate_code_context(code, CONFIG) == code

    def test_exactly_max_lines_unchanged(self):
        code = "\n".join("x" for _ in range(10))
        assert truncate_code_context(code, CONFIG) == code

    def test_truncation_disabled(self):
        config = merge_config(Config(), {"code_context": {"enable_truncation": False}})
        code = "\n".join("x" for _ in range(50))
        assert truncate_code_context(code, config) == code


class TestBotFeedback:
    def _bots(self, count, body="Consider extracting helper"):
        return [_discussion(f"{body} {n}", author=BOT) for n in range(count)]

    def test_caps_each_tier_with_more_line(self):
        data = ExtractedData(pr=PR, issue_comments=self._bots(5))
        out = render_bot_feedback(data, prepare_feedback(data, CONFIG), CONFIG)
        bullets = [line for line in out.splitlines() if line.startswith("• ")]
        assert len(bullets) == 4
        assert bullets[-1] == "• ... and 2 more"
        assert "(5 items)" in out

    def test_no_more_line_at_cap(self):
        data = ExtractedData(pr=PR, issue_comments=self._bots(3))
        out = render_bot_feedback(data, prepare_feedback(data, CONFIG), CONFIG)
        assert "more" not in out

    def test_buckets_by_tier_in_priority_order(self):
        data = ExtractedData(
            pr=PR,
            issue_comments=[_discussion("style nit", author=BOT), _discussion("critical bug", author=BOT)],
        )
        out = render_bot_feedback(data, prepare_feedback(data, CONFIG), CONFIG)
        assert out.index("**HIGH Priority") < out.index("**LOW Priority")
        assert "**MEDIUM Priority" not in out

    def test_disabled(self):
        config = merge_config(Config(), {"filtering": {"include_bot_feedback": False}})
        data = ExtractedData(pr=PR, issue_comments=self._bots(2))
        assert render_bot_feedback(data, prepare_feedback(data, config), config) == ""


class TestBotSummaryLine:
    def test_long_body_truncated_with_ellipsis(self):
        line = bot_summary_line(_discussion("y" * 150, author=BOT))
        assert line == f"{BOT}: {'y' * 100}..."

    def test_short_body_has_no_ellipsis(self):
        assert bot_summary_line(_discussion("short", author=BOT)) == f"{BOT}: short"

    def test_newlines_collapsed(self):
        assert bot_summary_line(_discussion("first\n\nsecond", author=BOT)) == f"{BOT}: first second"


class TestActionItems:
    def test_tallies_human_and_bot_items(self):
        data = ExtractedData(
            pr=PR,
            reviews=[_review("security problem"), _review("consider renaming")],
            issue_comments=[_discussion("broken build"), _discussion("Consider it", author=BOT)],
        )
        out = render_action_items(data, prepare_feedback(data, CONFIG), CONFIG)
        assert "**URGENT**: 2 high priority items" in out
        assert "**IMPORTANT**: 1 medium priority improvements" in out
        assert "**TOTAL**: 3 human feedback items + 1 bot suggestions" in out

    def test_omitted_without_human_items(self):
        data = ExtractedData(pr=PR, issue_comments=[_discussion("bug", author=BOT)])
        assert render_action_items(data, prepare_feedback(data, CONFIG), CONFIG) == ""

    def test_omitted_even_with_include_empty_sections(self):
        config = merge_config(Config(), {"filtering": {"include_empty_sections": True}})
        data = ExtractedData(pr=PR)
        assert SectionName.ACTION_ITEMS not in render_sections(data, config)


class TestJulesRules:
    def test_builtin_rules_mention_branch(self):
        rules = jules_rules("feature/ENG-7-login", CONFIG)
        assert len(rules) == 2
        assert '"feature/ENG-7-login"' in rules[1]

    def test_custom_rules_replace_builtins(self):
        config = merge_config(Config(), {"output": {"custom_jules_rules": ["Only touch src/"]}})
        assert jules_rules("b", config) == ["Only touch src/"]

    def test_additional_rules_appended(self):
        config = merge_config(Config(), {"output": {"additional_jules_rules": ["Run the tests"]}})
        rules = jules_rules("b", config)
        assert len(rules) == 3
        assert rules[-1] == "Run the tests"

    def test_linear_only_rule_asks_for_new_branch(self):
        rules = jules_rules(None, CONFIG, linear_only=True)
        assert "create an appropriate branch name" in rules[1]


class TestAssembly:
    def _data(self):
        return ExtractedData(pr=PR, linear=ISSUE, reviews=[_review("security issue")])

    def test_default_order(self):
        out = format_output(self._data(), CONFIG)
        assert out.startswith("feature/ENG-7-login\n\n" + SUMMARY_HEADER)
        positions = [
            out.index("**GitHub PR Overview**"),
            out.index("**Linear Issue Context**"),
            out.index("**HUMAN REVIEWS**"),
            out.index("**PRIORITIZED ACTION ITEMS**"),
            out.index("**Jules Rules**"),
        ]
        assert positions == sorted(positions)

    def test_configured_order_respected(self):
        config = merge_config(Config(), {"output": {"section_order": ["action_items", "header"]}})
        out = format_output(self._data(), config)
        assert out.index("**PRIORITIZED ACTION ITEMS**") < out.index("feature/ENG-7-login")
        assert "**Jules Rules**" not in out

    def test_assemble_skips_missing_names(self):
        fragments = {SectionName.HEADER: "H\n", SectionName.JULES_RULES: "R\n"}
        order = [SectionName.JULES_RULES, SectionName.BOT_FEEDBACK, SectionName.HEADER]
        assert assemble(fragments, order) == "R\nH\n"

    def test_empty_sections_omitted(self):
        out = format_output(ExtractedData(pr=PR), CONFIG)
        assert "HUMAN REVIEWS" not in out
        assert "BOT FEEDBACK" not in out
        assert "ACTION ITEMS" not in out
        assert EMPTY_PLACEHOLDER not in out

    def test_empty_sections_shown_when_configured(self):
        config = merge_config(Config(), {"filtering": {"include_empty_sections": True}})
        out = format_output(ExtractedData(pr=PR), config)
        assert f"**HUMAN REVIEWS** 🔥\n\n{EMPTY_PLACEHOLDER}" in out
        assert f"**BOT FEEDBACK SUMMARY** 🤖\n\n{EMPTY_PLACEHOLDER}" in out

    def test_custom_header_used(self):
        config = merge_config(Config(), {"display": {"custom_headers": {"human_reviews": "## Reviews"}}})
        out = format_output(self._data(), config)
        assert "## Reviews" in out
        assert "**HUMAN REVIEWS**" not in out

    def test_disabled_github_integration_hides_section(self):
        config = merge_config(Config(), {"integrations": {"github_include_reviews": False}})
        out = format_output(self._data(), config)
        assert "security issue" not in out

    def test_duplicates_rendered_once(self):
        data = ExtractedData(pr=PR, issue_comments=[_discussion("same words"), _discussion("same words")])
        assert format_output(data, CONFIG).count("same words") == 1

    def test_linear_context_hidden_when_linear_comments_disabled(self):
        config = merge_config(Config(), {"integrations": {"linear_include_comments": False}})
        out = format_output(self._data(), config)
        assert "**Linear Issue Context**" not in out
        assert "**GitHub PR Overview**" in out

    def test_pr_overview_marks_draft(self):
        draft = PRRecord(owner="acme", repo="web", number=1, title="WIP", head_branch="wip", is_draft=True)
        out = format_output(ExtractedData(pr=draft), CONFIG)
        assert "State: open (Draft)" in out
        assert "URL: https://github.com/acme/web/pull/1" in out


class TestLinearOnly:
    def test_uses_single_entity_template(self):
        out = format_output(ExtractedData(linear=ISSUE), CONFIG)
        assert out.startswith("ENG-7\n\n# Login page\n\nUsers need to log in\n\n")
        assert "## Metadata" in out
        assert "- Status: In Progress" in out
        assert "- Assignee: Dana" in out
        assert "- Labels: frontend, auth" in out
        assert "- Priority: High" in out
        assert "## Comments" in out
        assert "- Sam:\n\n  Use the design system button" in out
        assert "**Jules Rules**" in out
        assert SUMMARY_HEADER not in out
        assert "**GitHub PR Overview**" not in out
        assert "**Linear Issue Context**" not in out

    def test_metadata_can_be_disabled(self):
        config = merge_config(Config(), {"output": {"include_metadata": False}})
        assert "## Metadata" not in format_output(ExtractedData(linear=ISSUE), config)

    def test_minimal_issue(self):
        issue = LinearIssueRecord(id="OPS-1", title="Rotate keys")
        out = format_output(ExtractedData(linear=issue), CONFIG)
        assert out.startswith("OPS-1\n\n# Rotate keys\n\n## Metadata")
        assert "## Comments" not in out
        assert "- Assignee" not in out

    def test_description_hidden_when_linear_comments_disabled(self):
        config = merge_config(Config(), {"integrations": {"linear_include_comments": False}})
        out = format_output(ExtractedData(linear=ISSUE), config)
        assert out.startswith("ENG-7\n\n# Login page\n\n## Metadata")
        assert "Users need to log in" not in out
