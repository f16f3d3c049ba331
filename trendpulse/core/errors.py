"""Error taxonomy for the trend pipeline.

Collaborator and parse errors never leave a component: extractors, the merge
engine and the summarizers catch them and switch to their deterministic
fallbacks. Only ``NoDataError`` and ``PersistenceError`` reach the caller.
"""
from typing import Optional


class TrendPulseError(Exception):
    """Base class for all pipeline errors."""


class LLMUnavailableError(TrendPulseError):
    """No text-generation credential is configured."""


class LLMCallError(TrendPulseError):
    """The text-generation call failed or timed out."""


class ResponseParseError(TrendPulseError):
    """A collaborator response held no usable structured data."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class NoDataError(TrendPulseError):
    """Every source adapter of a category returned zero candidates."""

    def __init__(self, category: str):
        super().__init__(f"No data for category '{category}'")
        self.category = category


class PersistenceError(TrendPulseError):
    """The trend store rejected a write or read."""

    def __init__(self, category: str, message: str):
        super().__init__(f"Persistence failed for '{category}': {message}")
        self.category = category
