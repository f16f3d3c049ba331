"""Narrative summaries over ranked trends.

Both writers here are advisory: they never raise, and a failure only means a
fixed sentence (meta analysis) or a missing summary (per-item) in the output.
"""

import asyncio
from typing import List, Optional, Sequence

from trendpulse.core.errors import LLMCallError, LLMUnavailableError
from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import TrendItem
from trendpulse.core.text import strip_enclosing_quotes
from trendpulse.llm.provider import NoLLMProvider, TextGenerator

logger = get_logger(__name__)

FALLBACK_META_ANALYSIS = "현재 다양한 이슈가 복합적으로 관심을 받고 있습니다."
SUMMARY_BATCH_SIZE = 5

META_ANALYSIS_PROMPT = (
    "다음은 현재 한국의 실시간 종합 트렌드 Top {count}입니다:\n"
    "{titles}\n\n"
    "이 트렌드들을 관통하는 오늘의 핵심 키워드나 현상을 1문장으로 분석해주세요.\n"
    "- 20~40자 이내\n"
    "- 구체적인 인사이트 제공\n"
    '- "~입니다" 형식으로 끝내기\n\n'
    "분석:"
)

SUMMARY_PROMPT = (
    "다음 트렌드 키워드/주제에 대해 왜 화제인지 한 줄로 요약해주세요.\n"
    "- 30자 이내로 간결하게\n"
    "- 핵심 포인트만 전달\n"
    "- 이모지 사용 가능 (1개 이하)\n"
    "- 한국어로 작성\n\n"
    "키워드: {title}\n"
    "{context}\n"
    "요약:"
)


class MetaAnalyzer:
    """One-sentence characterization of the current overall top list."""

    def __init__(self, generator: Optional[TextGenerator] = None):
        self.generator = generator or NoLLMProvider()

    async def analyze(self, top_items: Sequence[TrendItem]) -> str:
        """
        Describe the theme shared by ``top_items``.

        Returns:
            The generated sentence, or ``FALLBACK_META_ANALYSIS``
        """
        if not top_items or not self.generator.available:
            return FALLBACK_META_ANALYSIS

        titles = "\n".join(f"{item.rank}위: {item.title}" for item in top_items)
        prompt = META_ANALYSIS_PROMPT.format(count=len(top_items), titles=titles)

        try:
            text = await self.generator.complete(prompt)
        except (LLMUnavailableError, LLMCallError) as e:
            logger.warning(f"Meta analysis failed: {e}")
            return FALLBACK_META_ANALYSIS

        sentence = strip_enclosing_quotes(text or "")
        return sentence or FALLBACK_META_ANALYSIS


class SummaryWriter:
    """Short 'why is this trending' lines for individual items."""

    def __init__(self, generator: Optional[TextGenerator] = None,
                 batch_size: int = SUMMARY_BATCH_SIZE):
        self.generator = generator or NoLLMProvider()
        self.batch_size = batch_size

    async def summarize(self, title: str, context: Optional[str] = None) -> Optional[str]:
        if not self.generator.available:
            return None

        context_line = f"추가 정보: {context}" if context else ""
        try:
            text = await self.generator.complete(SUMMARY_PROMPT.format(title=title, context=context_line))
        except (LLMUnavailableError, LLMCallError) as e:
            logger.warning(f"Summary for '{title}' failed: {e}")
            return None

        return (text or "").strip() or None

    async def summarize_batch(self, items: Sequence[TrendItem]) -> List[Optional[str]]:
        """
        Summarize items in concurrent batches.

        Args:
            items: Items to summarize; their current summary is passed as context

        Returns:
            One summary (or None) per item, in input order
        """
        results: List[Optional[str]] = []
        for start in range(0, len(items), self.batch_size):
            batch = items[start:start + self.batch_size]
            results.extend(await asyncio.gather(*[
                self.summarize(item.title, item.summary) for item in batch
            ]))
        return results

    async def fill_missing(self, items: Sequence[TrendItem]) -> int:
        """Set a generated summary on items that have none. Returns the number filled."""
        missing = [item for item in items if not item.summary]
        if not missing or not self.generator.available:
            return 0

        summaries = await self.summarize_batch(missing)
        filled = 0
        for item, summary in zip(missing, summaries):
            if summary:
                item.summary = summary
                filled += 1

        logger.info(f"Generated {filled}/{len(missing)} missing summaries")
        return filled
