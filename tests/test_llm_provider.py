"""Tests for text-generation providers."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from trendpulse.core.errors import LLMCallError, LLMUnavailableError
from trendpulse.core.settings import Settings
from trendpulse.llm.provider import (
    GeminiTextGenerator,
    LLMProviderFactory,
    NoLLMProvider,
    create_text_generator,
)


def fake_client(generate):
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))


class TestGeminiTextGenerator:
    """Tests for the Gemini provider with a stubbed client."""

    @pytest.mark.asyncio
    async def test_complete(self):
        generate = AsyncMock(return_value=SimpleNamespace(text="  [\"응답\"]  "))
        generator = GeminiTextGenerator("key", model="gemini-test", client=fake_client(generate))

        assert await generator.complete("프롬프트") == '["응답"]'
        generate.assert_awaited_once_with(model="gemini-test", contents="프롬프트")

        health = await generator.health_check()
        assert health["status"] == "healthy"
        assert health["calls_made"] == 1

    @pytest.mark.asyncio
    async def test_empty_response_text(self):
        generator = GeminiTextGenerator("key", client=fake_client(AsyncMock(return_value=SimpleNamespace(text=None))))

        assert await generator.complete("프롬프트") == ""

    @pytest.mark.asyncio
    async def test_client_error_becomes_call_error(self):
        generator = GeminiTextGenerator("key", client=fake_client(AsyncMock(side_effect=RuntimeError("quota"))))

        with pytest.raises(LLMCallError, match="quota"):
            await generator.complete("프롬프트")

    @pytest.mark.asyncio
    async def test_timeout_becomes_call_error(self):
        async def slow(**kwargs):
            await asyncio.sleep(5)

        generator = GeminiTextGenerator("key", timeout=0.05, client=fake_client(slow))

        with pytest.raises(LLMCallError, match="timed out"):
            await generator.complete("프롬프트")


class TestProviderSelection:
    """Tests for the factory and settings-driven selection."""

    @pytest.mark.asyncio
    async def test_nollm_is_unavailable(self):
        provider = NoLLMProvider()

        assert provider.available is False
        with pytest.raises(LLMUnavailableError):
            await provider.complete("프롬프트")

    def test_unknown_type_falls_back(self):
        assert isinstance(LLMProviderFactory.create_provider("unknown"), NoLLMProvider)
        assert set(LLMProviderFactory.list_providers()) >= {"gemini", "nollm"}

    def test_missing_key_gives_nollm(self):
        settings = Settings(_env_file=None, gemini_api_key="   ")

        assert isinstance(create_text_generator(settings), NoLLMProvider)
