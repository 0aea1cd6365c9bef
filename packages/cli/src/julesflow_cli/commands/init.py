"""init command: write a commented .julesflow.yml starter file."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from julesflow_core.config import FIRST_COPY_CHOICES, SUMMARY_PROVIDERS

console = Console(stderr=True)

_CONFIG_TEMPLATE = """\
# julesflow configuration
#
# Every key is optional; anything left out keeps its built-in default.
# Lists marked (merged) are added to the defaults rather than replacing them.
# Credentials are read from the environment (or a local .env file):
#   GITHUB_TOKEN, LINEAR_API_KEY, ANTHROPIC_API_KEY, OPENAI_API_KEY

output:
  include_branch_name_header: true
  include_linear_id_header: true
  include_jules_rules: true
  # Replaces the built-in branch/environment rules when non-empty.
  custom_jules_rules: []
  # (merged) Extra rules appended after the active rules.
  additional_jules_rules: []
  include_unified_summary_header: true
  include_metadata: true
  include_linear_discussion: true
  # section_order:
  #   - header
  #   - summary_header
  #   - pr_overview
  #   - linear_overview
  #   - human_reviews
  #   - human_code_comments
  #   - human_general_comments
  #   - bot_feedback
  #   - action_items
  #   - jules_rules

filtering:
  # (merged) Authors whose comments are summarized as bot feedback.
  bot_users: []
  enable_deduplication: true
  include_bot_feedback: true
  max_bot_items_per_priority: 3
  include_empty_sections: false

priority:
  # (merged) Case-insensitive substrings that raise a comment to a tier.
  keywords:
    HIGH: []
    MEDIUM: []
    LOW: []
  default_priority: MEDIUM

code_context:
  max_code_lines: 10
  enable_truncation: true
  show_line_numbers: true
  show_file_paths: true
  group_comments_by_file: true

summary:
  provider: {provider}
  # model: null            # provider default
  # custom_prompt: null    # {{context}} is replaced with the discussion JSON
  max_reviews: 3
  max_comments: 5

jules_mode:
  # What step one copies: branch_name, linear_id or title.
  first_copy: {first_copy}
  linear_only_first_copy: linear_id

display:
  show_processing_time: true
  separator_width: 80

workflow:
  enable_interactive_prompts: true
  default_save_format: md
  auto_save:
    enabled: false
    directory: ./jules-extractions
    file_name_pattern: "{{type}}-{{id}}-{{timestamp}}"

clipboard:
  enabled: true
  fallback_to_console: true
  show_clipboard_content: false

integrations:
  linear_include_attachments: true
  linear_include_comments: true
  github_include_pr_description: true
  github_include_issue_comments: true
  github_include_review_comments: true
  github_include_reviews: true

pr_manager:
  # Commit author substring that marks a push by Jules.
  jules_author: google-labs-jules
  copilot_reviewer: "copilot-pull-request-reviewer[bot]"
  exclude_drafts: false
  # max_days_old: 14        # skip PRs whose last commit is older
  exclude_human_labeled: true
  show_detailed_info: true
  show_copilot_status: true
  max_items_per_list: 0     # 0 = no limit
"""


def render_template(provider: str = "anthropic", first_copy: str = "branch_name") -> str:
    return _CONFIG_TEMPLATE.format(provider=provider, first_copy=first_copy)


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file.")
@click.pass_context
def init_cmd(ctx, force: bool):
    """Create a .julesflow.yml with every option documented."""
    path = Path(ctx.obj["config_path"])
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists. Use --force to overwrite it.")

    provider = click.prompt(
        "AI summary provider",
        type=click.Choice(list(SUMMARY_PROVIDERS)),
        default="anthropic",
    )
    first_copy = click.prompt(
        "Jules mode copies first",
        type=click.Choice(list(FIRST_COPY_CHOICES)),
        default="branch_name",
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_template(provider, first_copy), encoding="utf-8")
    console.print(f"[green]Created {path}[/green]")
    console.print("Run an extraction with: [bold]julesflow extract <PR number or Linear ID>[/bold]")
