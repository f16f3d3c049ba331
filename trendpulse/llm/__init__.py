"""Text-generation collaborators and lenient parsing of their responses."""

from .provider import (
    TextGenerator,
    GeminiTextGenerator,
    NoLLMProvider,
    LLMProviderFactory,
    create_text_generator
)
from .parsing import extract_json_array, resolve_index

__all__ = [
    "TextGenerator",
    "GeminiTextGenerator",
    "NoLLMProvider",
    "LLMProviderFactory",
    "create_text_generator",
    "extract_json_array",
    "resolve_index",
]
