from __future__ import annotations

import logging

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from julesflow_core.providers.base import BaseSummarizer

logger = logging.getLogger(__name__)


class OpenAISummarizer(BaseSummarizer):
    """Chat Completions summarizer; ``summary.model`` overrides MODEL."""

    MODEL = "gpt-4o"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(model)
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for the openai summary provider. "
                "Install it with: pip install 'julesflow[openai]'"
            )
        self.client = _OpenAI(api_key=api_key)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        if not response.choices:
            return ""
        choice = response.choices[0]
        if choice.finish_reason == "length":
            logger.info("OpenAI summary hit the %d token limit and may be cut short.", self.MAX_TOKENS)
        return (choice.message.content or "").strip()
