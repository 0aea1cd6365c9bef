"""Optional AI summary appended to the report.

``generate_summary`` never raises: a missing API key, a failed call or an
empty response each produce a fixed warning string instead.
"""

from __future__ import annotations

import json
import logging

from julesflow_core.config import Config
from julesflow_core.models import ExtractedData, FeedbackItem
from julesflow_core.providers.base import BaseSummarizer

logger = logging.getLogger(__name__)

SUMMARY_DIVIDER = "=" * 30 + " AI SUMMARY " + "=" * 30
EMPTY_SUMMARY = "⚠️ AI Summary generated but text was empty"

_KEY_ENV = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}


def unavailable_message(provider: str) -> str:
    return f"⚠️ AI Summary unavailable ({_KEY_ENV.get(provider, 'API key')} not configured)"


def failed_message(provider: str) -> str:
    return f"⚠️ AI Summary failed - check {_KEY_ENV.get(provider, 'your API key')} and rate limits"


def _item_dict(item: FeedbackItem) -> dict:
    data = {
        "author": item.author,
        "body": item.body,
        "state": item.review_state,
        "path": item.file_path,
        "line": item.line_number,
        "created_at": item.created_at,
    }
    return {k: v for k, v in data.items() if v is not None}


def build_summary_context(data: ExtractedData, config: Config) -> dict:
    comments = data.review_comments + data.issue_comments
    return {
        "prTitle": data.pr.title if data.pr else "Unknown",
        "linearTitle": data.linear.title if data.linear else "None",
        "totalReviews": len(data.reviews),
        "totalComments": len(comments),
        "reviews": [_item_dict(r) for r in data.reviews[: config.summary.max_reviews]],
        "comments": [_item_dict(c) for c in comments[: config.summary.max_comments]],
    }


def build_summary_prompt(data: ExtractedData, config: Config) -> str:
    """Build the LLM prompt; a custom prompt gets the JSON context in place of ``{context}``."""
    context = build_summary_context(data, config)
    if config.summary.custom_prompt:
        return config.summary.custom_prompt.replace("{context}", json.dumps(context, indent=2))

    sections = config.summary.include_sections
    asks = []
    if sections.main_concerns:
        asks.append("1. 🎯 Main concerns or issues raised")
    if sections.critical_items:
        asks.append("2. 🚨 Critical items that need immediate attention")
    if sections.next_steps:
        asks.append("3. 📋 Recommended next steps")
    if sections.complexity:
        asks.append("4. ⏱️ Estimated complexity (Low/Medium/High)")

    return f"""Analyze this PR/issue discussion and provide a concise summary:

PR: {context["prTitle"]}
Linear Issue: {context["linearTitle"]}
Total Reviews: {context["totalReviews"]}
Total Comments: {context["totalComments"]}

Key Feedback:
{json.dumps(context["reviews"], indent=2)}
{json.dumps(context["comments"], indent=2)}

Please provide:
{chr(10).join(asks)}

Keep it concise and actionable for a developer."""


def get_summarizer(config: Config) -> BaseSummarizer | None:
    """Instantiate the configured provider, or None when its API key is missing."""
    provider = config.summary.provider
    creds = config.credentials
    if provider == "anthropic":
        if not creds.anthropic_api_key:
            return None
        from julesflow_core.providers.anthropic import AnthropicSummarizer

        return AnthropicSummarizer(api_key=creds.anthropic_api_key, model=config.summary.model)
    if provider == "openai":
        if not creds.openai_api_key:
            return None
        from julesflow_core.providers.openai import OpenAISummarizer

        return OpenAISummarizer(api_key=creds.openai_api_key, model=config.summary.model)
    raise ValueError(f"Unknown summary provider: {provider!r}. Choose 'anthropic' or 'openai'.")


def generate_summary(data: ExtractedData, config: Config, summarizer: BaseSummarizer | None = None) -> str:
    provider = config.summary.provider
    if summarizer is None:
        try:
            summarizer = get_summarizer(config)
        except ImportError as e:
            logger.warning("%s", e)
            return failed_message(provider)
    if summarizer is None:
        logger.warning("%s not found - skipping AI summary", _KEY_ENV.get(provider, "API key"))
        return unavailable_message(provider)

    text = summarizer.summarize(build_summary_prompt(data, config))
    if text is None:
        return failed_message(provider)
    return text.strip() or EMPTY_SUMMARY


def append_summary(output: str, summary: str) -> str:
    if not summary:
        return output
    return f"{output}\n\n{SUMMARY_DIVIDER}\n{summary}"
