"""Typed configuration for julesflow.

Configuration is merged (in order of precedence):
  1. Built-in defaults
  2. .julesflow.yml in the current directory (or --config / JULESFLOW_CONFIG)
  3. CLI argument overrides

The result is a frozen ``Config`` passed explicitly into every stage; there
is no process-wide singleton. The merge is field by field: scalars are
replaced, while ``filtering.bot_users``, ``priority.keywords.*`` and
``output.additional_jules_rules`` are unioned with the defaults.
``output.section_order`` and ``output.custom_jules_rules`` are replaced so a
user can reorder sections or swap out the built-in rules.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from dotenv import load_dotenv

from julesflow_core.errors import ConfigError
from julesflow_core.models import Priority, SectionName

DEFAULT_CONFIG_PATH = ".julesflow.yml"

DEFAULT_BOT_USERS: tuple[str, ...] = (
    "copilot-pull-request-reviewer[bot]",
    "github-actions[bot]",
    "dependabot[bot]",
    "vercel[bot]",
    "linear[bot]",
)

DEFAULT_PRIORITY_KEYWORDS: dict[Priority, tuple[str, ...]] = {
    Priority.HIGH: ("security", "breaking", "critical", "urgent", "error", "fail", "bug", "broken"),
    Priority.MEDIUM: ("performance", "optimization", "refactor", "improvement", "consider", "should"),
    Priority.LOW: ("nitpick", "style", "formatting", "typo", "minor", "suggestion"),
}

DEFAULT_PRIORITY_EMOJIS: dict[Priority, str] = {
    Priority.HIGH: "🚨",
    Priority.MEDIUM: "⚠️",
    Priority.LOW: "ℹ️",
}

DEFAULT_HEADERS: dict[SectionName, str] = {
    SectionName.HUMAN_REVIEWS: "**HUMAN REVIEWS** 🔥",
    SectionName.HUMAN_CODE_COMMENTS: "**HUMAN INLINE CODE COMMENTS** 💻",
    SectionName.HUMAN_GENERAL_COMMENTS: "**HUMAN DISCUSSION COMMENTS** 💬",
    SectionName.BOT_FEEDBACK: "**BOT FEEDBACK SUMMARY** 🤖",
    SectionName.ACTION_ITEMS: "**PRIORITIZED ACTION ITEMS** 📋",
    SectionName.JULES_RULES: "**Jules Rules**",
}

FIRST_COPY_CHOICES = ("branch_name", "linear_id", "title")
SUMMARY_PROVIDERS = ("anthropic", "openai")
SAVE_FORMATS = ("md", "txt")


@dataclass(frozen=True)
class OutputConfig:
    include_branch_name_header: bool = True
    include_linear_id_header: bool = True
    include_jules_rules: bool = True
    custom_jules_rules: tuple[str, ...] = ()  # empty = built-in rules
    additional_jules_rules: tuple[str, ...] = ()
    include_unified_summary_header: bool = True
    include_metadata: bool = True
    include_linear_discussion: bool = True
    section_order: tuple[SectionName, ...] = tuple(SectionName)


@dataclass(frozen=True)
class FilteringConfig:
    bot_users: tuple[str, ...] = DEFAULT_BOT_USERS
    enable_deduplication: bool = True
    include_bot_feedback: bool = True
    max_bot_items_per_priority: int = 3
    include_empty_sections: bool = False


@dataclass(frozen=True)
class PriorityConfig:
    keywords: dict[Priority, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_PRIORITY_KEYWORDS))
    emojis: dict[Priority, str] = field(default_factory=lambda: dict(DEFAULT_PRIORITY_EMOJIS))
    default_priority: Priority = Priority.MEDIUM


@dataclass(frozen=True)
class CodeContextConfig:
    max_code_lines: int = 10
    enable_truncation: bool = True
    show_line_numbers: bool = True
    show_file_paths: bool = True
    group_comments_by_file: bool = True


@dataclass(frozen=True)
class SummarySections:
    main_concerns: bool = True
    critical_items: bool = True
    next_steps: bool = True
    complexity: bool = True


@dataclass(frozen=True)
class SummaryConfig:
    provider: str = "anthropic"
    model: Optional[str] = None  # None = provider default
    custom_prompt: Optional[str] = None  # may contain a {context} placeholder
    max_reviews: int = 3
    max_comments: int = 5
    include_sections: SummarySections = field(default_factory=SummarySections)


@dataclass(frozen=True)
class JulesModeConfig:
    first_copy: str = "branch_name"
    linear_only_first_copy: str = "linear_id"
    first_copy_complete: str = "✨ Press Enter to continue and copy the full discussion..."
    second_copy_complete: str = "📋 Step 2: Full discussion copied to clipboard!"


@dataclass(frozen=True)
class DisplayConfig:
    show_processing_time: bool = True
    separator_width: int = 80
    custom_headers: dict[SectionName, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))


@dataclass(frozen=True)
class AutoSaveConfig:
    enabled: bool = False
    directory: str = "./jules-extractions"
    file_name_pattern: str = "{type}-{id}-{timestamp}"


@dataclass(frozen=True)
class WorkflowConfig:
    enable_interactive_prompts: bool = True
    default_save_format: str = "md"
    auto_save: AutoSaveConfig = field(default_factory=AutoSaveConfig)


@dataclass(frozen=True)
class ClipboardConfig:
    enabled: bool = True
    fallback_to_console: bool = True
    show_clipboard_content: bool = False


@dataclass(frozen=True)
class IntegrationsConfig:
    linear_include_attachments: bool = True
    linear_include_comments: bool = True
    github_include_pr_description: bool = True
    github_include_issue_comments: bool = True
    github_include_review_comments: bool = True
    github_include_reviews: bool = True


@dataclass(frozen=True)
class PRManagerConfig:
    jules_author: str = "google-labs-jules"
    copilot_reviewer: str = "copilot-pull-request-reviewer[bot]"
    exclude_drafts: bool = False
    max_days_old: Optional[int] = None  # None = no age limit
    exclude_human_labeled: bool = True
    show_detailed_info: bool = True
    show_copilot_status: bool = True
    max_items_per_list: int = 0  # 0 = unlimited


@dataclass(frozen=True)
class Credentials:
    github_token: Optional[str] = None
    linear_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None


@dataclass(frozen=True)
class Config:
    output: OutputConfig = field(default_factory=OutputConfig)
    filtering: FilteringConfig = field(default_factory=FilteringConfig)
    priority: PriorityConfig = field(default_factory=PriorityConfig)
    code_context: CodeContextConfig = field(default_factory=CodeContextConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    jules_mode: JulesModeConfig = field(default_factory=JulesModeConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    clipboard: ClipboardConfig = field(default_factory=ClipboardConfig)
    integrations: IntegrationsConfig = field(default_factory=IntegrationsConfig)
    pr_manager: PRManagerConfig = field(default_factory=PRManagerConfig)
    credentials: Credentials = field(default_factory=Credentials)


# --------------------------------------------------------------------------- #
# Field converters                                                             #
# --------------------------------------------------------------------------- #


def _union(default: tuple[str, ...], value: Any, where: str) -> tuple[str, ...]:
    """Ordered set union: defaults first, then new user entries."""
    merged = list(default)
    for item in _string_list(value, where):
        if item not in merged:
            merged.append(item)
    return tuple(merged)


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a list of strings.")
    return tuple(value)


def _parse_priority(value: Any, where: str) -> Priority:
    try:
        return Priority(str(value).upper())
    except ValueError:
        raise ConfigError(f"{where}: unknown priority {value!r}. Choose HIGH, MEDIUM or LOW.")


def _parse_section(value: Any, where: str) -> SectionName:
    try:
        return SectionName(value)
    except ValueError:
        valid = ", ".join(s.value for s in SectionName)
        raise ConfigError(f"{where}: unknown section {value!r}. Valid sections: {valid}.")


def _section_order(default: tuple[SectionName, ...], value: Any, where: str) -> tuple[SectionName, ...]:
    names = _string_list(value, where)
    order = tuple(_parse_section(name, where) for name in names)
    if len(set(order)) != len(order):
        raise ConfigError(f"{where} lists a section more than once.")
    return order


def _keywords(default: dict[Priority, tuple[str, ...]], value: Any, where: str) -> dict[Priority, tuple[str, ...]]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} must be a mapping of priority to keyword list.")
    merged = dict(default)
    for tier, words in value.items():
        priority = _parse_priority(tier, where)
        lowered = [w.strip().lower() for w in _string_list(words, f"{where}.{tier}")]
        if not all(lowered):
            raise ConfigError(f"{where}.{tier} must not contain blank keywords.")
        merged[priority] = _union(merged.get(priority, ()), lowered, f"{where}.{tier}")
    return merged


def _emojis(default: dict[Priority, str], value: Any, where: str) -> dict[Priority, str]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} must be a mapping of priority to emoji.")
    merged = dict(default)
    for tier, emoji in value.items():
        merged[_parse_priority(tier, where)] = str(emoji)
    return merged


def _headers(default: dict[SectionName, str], value: Any, where: str) -> dict[SectionName, str]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} must be a mapping of section name to header text.")
    merged = dict(default)
    for name, text in value.items():
        merged[_parse_section(name, where)] = str(text)
    return merged


def _choice(choices: tuple[str, ...]) -> Callable[[Any, Any, str], str]:
    def convert(default: Any, value: Any, where: str) -> str:
        if value not in choices:
            raise ConfigError(f"{where} must be one of: {', '.join(choices)} (got {value!r}).")
        return value

    return convert


def _optional_int(default: Any, value: Any, where: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{where} must be a positive integer or null (got {value!r}).")
    return value


def _nested(default: Any, value: Any, where: str) -> Any:
    return _merge_dataclass(default, value, where)


_CONVERTERS: dict[str, Callable[[Any, Any, str], Any]] = {
    "output.section_order": _section_order,
    "output.custom_jules_rules": lambda d, v, w: _string_list(v, w),
    "output.additional_jules_rules": _union,
    "filtering.bot_users": _union,
    "priority.keywords": _keywords,
    "priority.emojis": _emojis,
    "priority.default_priority": lambda d, v, w: _parse_priority(v, w),
    "summary.provider": _choice(SUMMARY_PROVIDERS),
    "summary.include_sections": _nested,
    "jules_mode.first_copy": _choice(FIRST_COPY_CHOICES),
    "jules_mode.linear_only_first_copy": _choice(FIRST_COPY_CHOICES),
    "display.custom_headers": _headers,
    "workflow.default_save_format": _choice(SAVE_FORMATS),
    "workflow.auto_save": _nested,
    "pr_manager.max_days_old": _optional_int,
}


def _scalar(default: Any, value: Any, where: str) -> Any:
    """Override-wins for plain scalars, with a type check against the default."""
    if value is None:
        if default is None:
            return None
        raise ConfigError(f"{where} must not be empty.")
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{where} must be true or false (got {value!r}).")
    elif isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"{where} must be a non-negative integer (got {value!r}).")
    elif not isinstance(value, str):
        raise ConfigError(f"{where} must be a string (got {value!r}).")
    return value


def _merge_dataclass(section: Any, overrides: Any, where: str) -> Any:
    if not isinstance(overrides, Mapping):
        raise ConfigError(f"{where} must be a mapping.")
    known = {f.name for f in dataclasses.fields(section)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown configuration key: {where}.{key}")
        path = f"{where}.{key}"
        convert = _CONVERTERS.get(path, _scalar)
        changes[key] = convert(getattr(section, key), value, path)
    return dataclasses.replace(section, **changes)


def merge_config(base: Config, overrides: Mapping) -> Config:
    """Return ``base`` with ``overrides`` (a nested mapping) applied field by field."""
    if not isinstance(overrides, Mapping):
        raise ConfigError("Configuration file must contain a mapping at the top level.")
    changes = {}
    for name, value in overrides.items():
        if name == "credentials" or name not in {f.name for f in dataclasses.fields(base)}:
            raise ConfigError(f"Unknown configuration section: {name}")
        changes[name] = _merge_dataclass(getattr(base, name), value, name)
    return dataclasses.replace(base, **changes)


def _drop_none(overrides: Mapping) -> dict:
    cleaned: dict = {}
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            nested = _drop_none(value)
            if nested:
                cleaned[key] = nested
        elif value is not None:
            cleaned[key] = value
    return cleaned


def load_credentials() -> Credentials:
    return Credentials(
        github_token=os.environ.get("GITHUB_TOKEN"),
        linear_api_key=os.environ.get("LINEAR_API_KEY"),
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY"),
        openai_api_key=os.environ.get("OPENAI_API_KEY"),
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH, cli_overrides: Optional[Mapping] = None) -> Config:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. The YAML config file, if it exists
      3. CLI argument overrides (None values are ignored)

    Credentials are always resolved from the environment (and a local .env).
    """
    config = Config()

    path = Path(config_path)
    if path.exists():
        with open(path, encoding="utf-8") as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Could not parse {config_path}: {e}")
        config = merge_config(config, file_config)

    if cli_overrides:
        config = merge_config(config, _drop_none(cli_overrides))

    load_dotenv(Path.cwd() / ".env")
    return dataclasses.replace(config, credentials=load_credentials())


def config_exists(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    return Path(config_path).exists()


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def config_to_dict(config: Config) -> dict:
    """Plain-data view of the configuration (credentials excluded) for YAML output."""
    data = {f.name: dataclasses.asdict(getattr(config, f.name)) for f in dataclasses.fields(config)}
    data.pop("credentials")
    return _plain(data)
