"""Base summarizer implementing the Template Method pattern.

All providers share the same flow:
    summarize() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

A failed call is logged and reported as None; callers substitute a warning
string so a summary failure never aborts the run.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

_MAX_TOKENS = 1024

SYSTEM_PROMPT = (
    "You summarize pull request and issue discussions for a developer who is about to act on them. "
    "Be concise, concrete and actionable. Use GitHub-flavored Markdown."
)


class BaseSummarizer(ABC):
    MODEL: str = ""
    MAX_TOKENS: int = _MAX_TOKENS

    def __init__(self, model: str | None = None):
        self.model = model or self.MODEL

    def summarize(self, prompt: str) -> str | None:
        """Return the model's summary text, or None if the call failed."""
        try:
            return self._call_api(SYSTEM_PROMPT, prompt)
        except Exception as e:
            logger.warning("%s summary call failed: %s", self.__class__.__name__, e)
            return None

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; ``summarize`` handles logging.
        """
