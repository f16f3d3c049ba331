"""Shared fixtures and fakes for TrendPulse tests."""

from typing import List, Optional, Sequence, Union

import pytest

from trendpulse.core.errors import LLMCallError
from trendpulse.core.repositories import InMemoryTrendStore
from trendpulse.core.schemas import Category, RawCandidate, TrendItem
from trendpulse.llm.provider import TextGenerator
from trendpulse.sources.base import SourceAdapter


class FakeTextGenerator(TextGenerator):
    """Text generator returning canned responses and recording prompts."""

    def __init__(self, responses: Union[str, Sequence[str], None] = None,
                 error: Optional[Exception] = None, available: bool = True):
        if responses is None:
            responses = []
        if isinstance(responses, str):
            responses = [responses]
        self.responses = list(responses)
        self.error = error
        self._available = available
        self.prompts: List[str] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def available(self) -> bool:
        return self._available

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.responses:
            raise LLMCallError("no canned response left")
        if len(self.responses) == 1:
            return self.responses[0]
        return self.responses.pop(0)


class StaticAdapter(SourceAdapter):
    """Adapter returning a fixed candidate list."""

    def __init__(self, candidates: Sequence[RawCandidate], name: str = "static"):
        self.candidates = list(candidates)
        self.name = name
        self.calls = 0

    async def fetch(self, limit: int) -> List[RawCandidate]:
        self.calls += 1
        return self.candidates[:limit]


class FailingAdapter(SourceAdapter):
    """Adapter that always raises."""

    name = "failing"

    async def fetch(self, limit: int) -> List[RawCandidate]:
        raise RuntimeError("upstream exploded")


def make_candidates(titles: Sequence[str], source_label: str = "Google News",
                    platform: Optional[str] = None) -> List[RawCandidate]:
    metadata = {"platform": platform} if platform else {}
    return [
        RawCandidate(
            title=title,
            link=f"https://example.com/{source_label}/{i}",
            source_label=source_label,
            snippet=f"<p>{title} 관련 내용</p>",
            metadata=dict(metadata),
        )
        for i, title in enumerate(titles)
    ]


def make_items(category: Category, titles: Sequence[str]) -> List[TrendItem]:
    return [
        TrendItem(
            rank=rank,
            title=title,
            category=category,
            source_name=f"{category.value}-source",
            source_url=f"https://example.com/{category.value}/{rank}",
        )
        for rank, title in enumerate(titles, start=1)
    ]


@pytest.fixture
def store():
    return InMemoryTrendStore()


@pytest.fixture
def news_candidates():
    return make_candidates([
        "정부, 새 부동산 대책 발표",
        "'오징어 게임3' 공개 첫날 글로벌 1위",
        "프로야구 개막전 매진 행렬",
        "정부, 새 부동산 대책 발표",
        "반도체 수출 역대 최대 기록",
    ])
