"""Exception hierarchy for julesflow.

Leaf fetch failures never surface as exceptions past the aggregator; only
the types below reach the CLI boundary.
"""

from __future__ import annotations


class JulesflowError(Exception):
    """Base class for all julesflow errors."""


class ConfigError(JulesflowError):
    """The configuration file contains an unknown key or an invalid value."""


class ResolutionFailure(JulesflowError):
    """Neither a pull request nor a Linear issue could be found for a token."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(
            f"Could not find data for {token}. Make sure the ID/number is correct and you have access."
        )


class SinkFailure(JulesflowError):
    """Writing the report to the clipboard failed and console fallback is disabled."""


class LinearError(JulesflowError):
    """The Linear API returned an HTTP error or a GraphQL error payload."""
