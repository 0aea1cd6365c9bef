from __future__ import annotations

import logging

from julesflow_core.providers.base import BaseSummarizer

logger = logging.getLogger(__name__)


class AnthropicSummarizer(BaseSummarizer):
    """Messages API summarizer; the default provider for ``--summary``."""

    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model: str | None = None):
        super().__init__(model)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for the anthropic summary provider. "
                "Install it with: pip install 'julesflow[anthropic]'"
            )
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # __init__ already proved the SDK is importable.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        if response.stop_reason == "max_tokens":
            logger.info("Anthropic summary hit the %d token limit and may be cut short.", self.MAX_TOKENS)
        return "".join(block.text for block in response.content if isinstance(block, TextBlock)).strip()
