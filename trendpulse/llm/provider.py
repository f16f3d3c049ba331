"""
Text-generation provider interface and implementations.

Provides an abstraction over the LLM used for topic extraction, merging and
summaries. A missing credential is an ordinary condition: the factory returns
``NoLLMProvider`` and every caller checks ``available`` before prompting.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google import genai

from trendpulse.core.errors import LLMCallError, LLMUnavailableError
from trendpulse.core.logging import get_logger
from trendpulse.core.settings import Settings, get_settings

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0


class TextGenerator(ABC):
    """Abstract base class for text-generation collaborators."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identification name."""

    @property
    def available(self) -> bool:
        """Whether prompts can be sent at all."""
        return True

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """
        Send ``prompt`` and return the raw response text.

        The returned text is untrusted; callers parse it leniently.

        Raises:
            LLMUnavailableError: no credential configured
            LLMCallError: the call failed or timed out
        """

    async def health_check(self) -> Dict[str, Any]:
        """Check provider health and availability."""
        return {
            "status": "healthy" if self.available else "unavailable",
            "provider": self.provider_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


class GeminiTextGenerator(TextGenerator):
    """Google Gemini provider using the ``google-genai`` async client."""

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash",
                 timeout: float = DEFAULT_TIMEOUT_SECONDS, client: Optional[Any] = None):
        self.model = model
        self.timeout = timeout
        self.client = client or genai.Client(api_key=api_key)
        self.call_count = 0
        self.total_processing_time = 0.0

    @property
    def provider_name(self) -> str:
        return "Gemini"

    async def complete(self, prompt: str) -> str:
        start_time = time.time()
        self.call_count += 1

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(model=self.model, contents=prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Gemini call timed out after {self.timeout}s")
            raise LLMCallError(f"Gemini call timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Gemini call failed: {e}")
            raise LLMCallError(f"Gemini call failed: {e}") from e
        finally:
            self.total_processing_time += time.time() - start_time

        text = getattr(response, "text", None) or ""
        return text.strip()

    async def health_check(self) -> Dict[str, Any]:
        status = await super().health_check()
        status.update({
            "model": self.model,
            "calls_made": self.call_count,
            "avg_response_time": self.total_processing_time / max(self.call_count, 1),
        })
        return status


class NoLLMProvider(TextGenerator):
    """
    Provider used when no credential is configured.

    Always unavailable; callers go straight to their deterministic fallbacks.
    """

    @property
    def provider_name(self) -> str:
        return "NoLLM"

    @property
    def available(self) -> bool:
        return False

    async def complete(self, prompt: str) -> str:
        raise LLMUnavailableError("No text-generation provider configured")


class LLMProviderFactory:
    """Factory for creating text-generation provider instances."""

    _providers = {
        "gemini": GeminiTextGenerator,
        "nollm": NoLLMProvider,
    }

    @classmethod
    def create_provider(cls, provider_type: str = "nollm", **config) -> TextGenerator:
        """
        Create a provider instance.

        Args:
            provider_type: Registered provider name ("gemini", "nollm", ...)
            **config: Provider-specific constructor arguments

        Returns:
            TextGenerator instance
        """
        if provider_type not in cls._providers:
            logger.warning(f"Unknown provider type: {provider_type}, falling back to nollm")
            provider_type = "nollm"

        provider_class = cls._providers[provider_type]
        return provider_class(**config)

    @classmethod
    def register_provider(cls, name: str, provider_class) -> None:
        """Register a new provider type."""
        cls._providers[name] = provider_class

    @classmethod
    def list_providers(cls) -> List[str]:
        """List available provider types."""
        return list(cls._providers.keys())


def create_text_generator(settings: Optional[Settings] = None) -> TextGenerator:
    """Build the provider selected by configuration."""
    settings = settings or get_settings()

    if not settings.llm_enabled:
        logger.warning("GEMINI_API_KEY is not set; LLM steps will use deterministic fallbacks")
        return LLMProviderFactory.create_provider("nollm")

    return LLMProviderFactory.create_provider(
        "gemini",
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.llm_timeout_seconds,
    )
