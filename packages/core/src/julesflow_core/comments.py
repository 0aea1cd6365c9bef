"""Priority classification, bot tagging and deduplication of feedback items."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from julesflow_core.config import Config
from julesflow_core.models import FeedbackItem, Priority

_TIER_ORDER = (Priority.HIGH, Priority.MEDIUM, Priority.LOW)
_DEDUPE_PREFIX_CHARS = 100


def detect_priority(body: str, config: Config) -> Priority:
    """Return the first tier (HIGH, MEDIUM, LOW) with a keyword found in ``body``.

    Matching is a case-insensitive substring test. Bodies that match nothing
    get ``priority.default_priority``.
    """
    lowered = (body or "").lower()
    keywords = config.priority.keywords
    for tier in _TIER_ORDER:
        if any(word in lowered for word in keywords.get(tier, ())):
            return tier
    return config.priority.default_priority


def is_bot(author: str, config: Config) -> bool:
    """Exact, case-sensitive match against ``filtering.bot_users``."""
    return author in config.filtering.bot_users


def classify(item: FeedbackItem, config: Config) -> FeedbackItem:
    """Return a copy of ``item`` tagged with ``is_bot`` and ``priority``."""
    return dataclasses.replace(
        item,
        is_bot=is_bot(item.author, config),
        priority=detect_priority(item.body, config),
    )


def classify_all(items: Iterable[FeedbackItem], config: Config) -> list[FeedbackItem]:
    return [classify(item, config) for item in items]


def dedupe_key(item: FeedbackItem) -> tuple[str, str]:
    return item.author, (item.body or "")[:_DEDUPE_PREFIX_CHARS]


def deduplicate(items: Iterable[FeedbackItem], enabled: bool = True) -> list[FeedbackItem]:
    """Drop items whose (author, first 100 chars of body) was already seen.

    Keeps the first occurrence in fetch order. Call once per origin group;
    items from different groups are never compared.
    """
    items = list(items)
    if not enabled:
        return items
    seen: set[tuple[str, str]] = set()
    unique = []
    for item in items:
        key = dedupe_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def sort_by_priority(items: Iterable[FeedbackItem]) -> list[FeedbackItem]:
    """Stable sort by priority rank; unclassified items sort with MEDIUM."""
    return sorted(items, key=lambda item: (item.priority or Priority.MEDIUM).rank)
