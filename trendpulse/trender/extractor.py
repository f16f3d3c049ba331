"""Topic extraction and classification per category.

Every extractor turns the raw candidates of one category into a ranked list of
``TrendItem``. When a text generator is available it is asked to pick and name
the topics; each pick points back at a candidate by index so links and
snippets are always the candidate's own. When the generator is missing, fails
or answers with nothing usable, a deterministic marker-word heuristic takes
over, so a non-empty candidate list always produces a non-empty result.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from trendpulse.core.errors import LLMCallError, LLMUnavailableError, ResponseParseError
from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import Category, RawCandidate, TrendItem
from trendpulse.core.text import (
    TITLE_SNIPPET_LENGTH,
    clean_snippet,
    dedup_key,
    extract_core_topic,
    extract_product_name,
)
from trendpulse.llm.parsing import extract_json_array, resolve_index
from trendpulse.llm.provider import NoLLMProvider, TextGenerator

logger = get_logger(__name__)

MAX_CANDIDATES = 50
MARKER_POINTS = 2

DEFAULT_VIRAL_SCORE = 50.0
VIRAL_MARKER_BONUS = 10.0
DEFAULT_SENTIMENT = "흥미"
DEFAULT_RISING_REASON = "커뮤니티에서 화제"
NEWS_MATCH_PREFIX = 10

SHOPPING_SEARCH_URL = "https://www.google.com/search?tbm=shop&q={query}"
SHOPPING_SOURCE_NAME = "쇼핑"
NEWS_SOURCE_NAME = "Google News"


def marker_score(title: str, markers: Sequence[str]) -> int:
    """Points for each marker word present in ``title``."""
    return sum(MARKER_POINTS for marker in markers if marker in title)


def format_view_count(count: Any) -> str:
    """Format a raw view count the way Korean video sites display it."""
    if count is None or count == "":
        return ""
    try:
        num = int(count)
    except (TypeError, ValueError):
        return ""

    if num >= 100_000_000:
        return f"{num / 100_000_000:.1f}억회"
    if num >= 10_000:
        return f"{num / 10_000:.0f}만회"
    if num >= 1_000:
        return f"{num / 1_000:.1f}천회"
    return f"{num}회"


def coerce_viral_score(value: Any) -> float:
    """Clamp a collaborator viral score to 0..100; missing or non-numeric gives 50."""
    if isinstance(value, bool):
        return DEFAULT_VIRAL_SCORE
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return DEFAULT_VIRAL_SCORE
    if not isinstance(value, (int, float)) or value != value:
        return DEFAULT_VIRAL_SCORE
    return float(min(100.0, max(0.0, value)))


def is_new_to_news(title: str, news_topics: Sequence[str]) -> bool:
    """True when no current headline overlaps ``title`` on a 10-char prefix."""
    title_lower = title.lower()
    title_prefix = title_lower[:NEWS_MATCH_PREFIX]
    for topic in news_topics:
        if not topic:
            continue
        if title_prefix and title_prefix in topic:
            return False
        if topic[:NEWS_MATCH_PREFIX] in title_lower:
            return False
    return True


class TopicExtractor(ABC):
    """
    Base class for category extractors.

    Subclasses provide the prompt, the mapping of one collaborator entry to an
    item and the mapping of one candidate to a fallback item.
    """

    category: Category
    marker_words: Sequence[str] = ()
    prompt_template: str = ""

    def __init__(self, generator: Optional[TextGenerator] = None):
        self.generator = generator or NoLLMProvider()

    async def extract(self, candidates: Sequence[RawCandidate], limit: int) -> List[TrendItem]:
        """
        Extract up to ``limit`` ranked items from ``candidates``.

        Args:
            candidates: Raw candidates of this category, in source order
            limit: Maximum number of items

        Returns:
            Items ranked 1..K; empty only when ``candidates`` is empty
        """
        if not candidates or limit <= 0:
            return []

        pool = list(candidates[:MAX_CANDIDATES])
        items: List[TrendItem] = []

        if self.generator.available:
            try:
                items = await self._extract_with_llm(pool, limit)
            except (LLMUnavailableError, LLMCallError, ResponseParseError) as e:
                logger.warning(f"{self.category.value}: LLM extraction failed, using heuristic: {e}")
                items = []
            if not items:
                logger.warning(f"{self.category.value}: LLM returned no usable topics, using heuristic")

        if not items:
            items = self._extract_heuristic(pool, limit)

        return self._assign_ranks(items[:limit])

    def build_prompt(self, pool: Sequence[RawCandidate], limit: int) -> str:
        listing = "\n".join(
            f"{i}. [{candidate.source_label}] {candidate.title}"
            for i, candidate in enumerate(pool)
        )
        return self.prompt_template.format(limit=limit, listing=listing)

    async def _extract_with_llm(self, pool: List[RawCandidate], limit: int) -> List[TrendItem]:
        text = await self.generator.complete(self.build_prompt(pool, limit))
        entries = extract_json_array(text)

        items = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.debug(f"Skipping non-object entry: {entry!r}")
                continue
            item = self._item_from_entry(entry, pool)
            if item is not None:
                items.append(item)

        return self._order_llm_items(items)[:limit]

    def _order_llm_items(self, items: List[TrendItem]) -> List[TrendItem]:
        return items

    def _extract_heuristic(self, pool: List[RawCandidate], limit: int) -> List[TrendItem]:
        seen = set()
        items = []
        for candidate in self._heuristic_order(pool):
            key = self._fallback_key(candidate)
            if not key or key in seen:
                continue
            seen.add(key)
            items.append(self._fallback_item(candidate))
            if len(items) >= limit:
                break
        return items

    def _heuristic_order(self, pool: List[RawCandidate]) -> List[RawCandidate]:
        # sorted() is stable: equal scores keep source order
        return sorted(pool, key=lambda c: marker_score(c.title, self.marker_words), reverse=True)

    def _fallback_key(self, candidate: RawCandidate) -> str:
        return dedup_key(candidate.title)

    @staticmethod
    def _assign_ranks(items: List[TrendItem]) -> List[TrendItem]:
        for rank, item in enumerate(items, start=1):
            item.rank = rank
        return items

    @abstractmethod
    def _item_from_entry(self, entry: Dict[str, Any], pool: List[RawCandidate]) -> Optional[TrendItem]:
        """Map one collaborator entry to an item, or None to skip it."""

    @abstractmethod
    def _fallback_item(self, candidate: RawCandidate) -> TrendItem:
        """Map one candidate to an item on the heuristic path."""


class KeywordExtractor(TopicExtractor):
    """Core news topics from current headlines."""

    category = Category.KEYWORD
    marker_words = ("속보", "단독", "긴급", "공식", "최초")
    prompt_template = (
        "다음은 현재 한국 뉴스 헤드라인들입니다. 이 중에서 가장 화제가 되고 있는 핵심 토픽 {limit}개를 선정해주세요.\n"
        "각 토픽에 대해 관련된 헤드라인의 인덱스 번호를 정확히 매칭해주세요.\n\n"
        "규칙:\n"
        "1. 구체적인 인물명, 사건명, 현상으로 추출\n"
        "2. 같은 주제의 뉴스가 여러 개면 가장 대표적인 것 하나 선택\n"
        "3. 인덱스는 정확히 해당 뉴스의 번호를 사용\n\n"
        "헤드라인:\n{listing}\n\n"
        "JSON 형식으로만 응답:\n"
        '[{{"topic": "토픽명", "headlineIndex": 0}}]'
    )

    def _item_from_entry(self, entry, pool):
        candidate = pool[resolve_index(entry.get("headlineIndex"), len(pool))]
        topic = str(entry.get("topic") or "").strip() or extract_core_topic(candidate.title)
        return TrendItem(
            rank=0,
            title=topic,
            category=self.category,
            source_name=candidate.source_label or NEWS_SOURCE_NAME,
            summary=clean_snippet(candidate.snippet, 100) or None,
            source_url=candidate.link,
            metadata={"traffic": "화제", "relatedQueries": []},
        )

    def _fallback_key(self, candidate):
        return dedup_key(extract_core_topic(candidate.title))

    def _fallback_item(self, candidate):
        return TrendItem(
            rank=0,
            title=extract_core_topic(candidate.title),
            category=self.category,
            source_name=candidate.source_label or NEWS_SOURCE_NAME,
            summary=clean_snippet(candidate.snippet, 100) or None,
            source_url=candidate.link,
            metadata={"traffic": "뉴스", "relatedQueries": []},
        )


class SocialExtractor(TopicExtractor):
    """Topics buzzing on social platforms, balanced across platforms."""

    category = Category.SOCIAL
    marker_words = ("화제", "바이럴", "실검", "인기", "논란", "밈")
    prompt_template = (
        "다음은 한국의 SNS(트위터/X, 인스타그램, 스레드, 페이스북) 관련 뉴스입니다.\n"
        "현재 각 SNS 플랫폼에서 화제가 되고 있는 토픽 {limit}개를 선정해주세요.\n"
        "여러 플랫폼에서 고르게 선정하고, 각 토픽에 관련된 뉴스의 인덱스 번호를 정확히 매칭해주세요.\n\n"
        "선정 기준:\n"
        "1. 실제 SNS에서 화제인 내용\n"
        "2. 연예인, 인플루언서, 바이럴 콘텐츠\n"
        "3. 일반 정치/경제 뉴스 제외\n\n"
        "뉴스 목록:\n{listing}\n\n"
        "JSON 형식으로만 응답:\n"
        '[{{"topic": "화제 토픽", "itemIndex": 0, "platform": "트위터/인스타그램/스레드/페이스북"}}]'
    )

    def _item_from_entry(self, entry, pool):
        candidate = pool[resolve_index(entry.get("itemIndex"), len(pool))]
        topic = str(entry.get("topic") or "").strip() or candidate.title[:TITLE_SNIPPET_LENGTH]
        platform = str(entry.get("platform") or "").strip()
        return TrendItem(
            rank=0,
            title=topic,
            category=self.category,
            source_name=platform or candidate.source_label,
            summary=clean_snippet(candidate.snippet, 100) or None,
            source_url=candidate.link,
            metadata=self._platform_metadata(candidate),
        )

    def _heuristic_order(self, pool):
        """Interleave platforms round-robin, each platform keeping its own order."""
        groups: "OrderedDict[str, List[RawCandidate]]" = OrderedDict()
        for candidate in pool:
            platform = candidate.metadata.get("platform") or candidate.source_label
            groups.setdefault(platform, []).append(candidate)

        queues = [list(group) for group in groups.values()]
        ordered = []
        while queues:
            for queue in list(queues):
                ordered.append(queue.pop(0))
                if not queue:
                    queues.remove(queue)
        return ordered

    def _fallback_item(self, candidate):
        return TrendItem(
            rank=0,
            title=candidate.title[:TITLE_SNIPPET_LENGTH],
            category=self.category,
            source_name=candidate.source_label,
            summary=clean_snippet(candidate.snippet, 100) or None,
            source_url=candidate.link,
            metadata=self._platform_metadata(candidate),
        )

    @staticmethod
    def _platform_metadata(candidate: RawCandidate) -> Dict[str, Any]:
        platform = candidate.metadata.get("platform")
        return {"platform": platform} if platform else {}


class ShoppingExtractor(TopicExtractor):
    """Products drawing attention in shopping news."""

    category = Category.SHOPPING
    marker_words = ("쿠팡", "네이버", "베스트", "인기", "품절", "핫딜", "할인", "세일", "최저가")
    prompt_template = (
        "다음은 한국의 쇼핑/상품 관련 뉴스입니다.\n"
        "화제가 되고 있는 상품 {limit}개를 선정하고, 각 상품의 뉴스 인덱스를 정확히 매칭해주세요.\n\n"
        "규칙:\n"
        "1. 구체적인 상품명 포함 (브랜드 + 제품명)\n"
        "2. 인덱스는 정확히 해당 뉴스의 번호를 사용\n\n"
        "뉴스 목록:\n{listing}\n\n"
        "JSON 형식으로만 응답:\n"
        '[{{"product": "상품명", "itemIndex": 0, "price": "가격(있으면)", "store": "판매처"}}]'
    )

    def _item_from_entry(self, entry, pool):
        candidate = pool[resolve_index(entry.get("itemIndex"), len(pool))]
        product = str(entry.get("product") or "").strip() or extract_product_name(candidate.title)
        store = str(entry.get("store") or "").strip()
        price = str(entry.get("price") or "").strip()
        return TrendItem(
            rank=0,
            title=product,
            category=self.category,
            source_name=store or candidate.source_label,
            summary=clean_snippet(candidate.snippet, 80) or None,
            source_url=candidate.link,
            metadata={"price": price} if price else {},
        )

    def _fallback_item(self, candidate):
        product = extract_product_name(candidate.title) or candidate.title[:30]
        return TrendItem(
            rank=0,
            title=product,
            category=self.category,
            source_name=SHOPPING_SOURCE_NAME,
            summary=clean_snippet(candidate.snippet, 80) or None,
            source_url=SHOPPING_SEARCH_URL.format(query=quote(product, safe="")),
        )


class RisingExtractor(TopicExtractor):
    """
    Community posts likely to go viral.

    Items carry a 0-100 viral score (also used as ``change_rate``), a
    sentiment label and whether the topic is already in the news.
    """

    category = Category.RISING
    marker_words = ("논란", "화제", "반응", "충격", "역대급", "근황", "실시간")
    prompt_template = (
        "아래 커뮤니티 게시글/뉴스 중에서 화제가 될 것 같은 것 {limit}개를 선정하고,\n"
        "각 항목의 인덱스를 정확히 매칭해주세요. viralScore는 0~100 사이 숫자입니다.\n\n"
        "커뮤니티 글 목록:\n{listing}\n\n"
        "JSON 형식으로만 응답:\n"
        '[{{"index": 0, "viralScore": 85, "sentimentType": "논란"}}]'
    )

    async def extract(self, candidates: Sequence[RawCandidate], limit: int,
                      news_topics: Optional[Sequence[str]] = None) -> List[TrendItem]:
        """
        Extract rising items and flag those absent from current headlines.

        Args:
            candidates: Community candidates
            limit: Maximum number of items
            news_topics: Lowercased current headlines; empty entries are ignored
        """
        items = await super().extract(candidates, limit)
        topics = [topic for topic in (news_topics or []) if topic]
        for item in items:
            item.metadata["isNewToNews"] = is_new_to_news(item.title, topics)
        return items

    def _item_from_entry(self, entry, pool):
        candidate = pool[resolve_index(entry.get("index"), len(pool))]
        viral_score = coerce_viral_score(entry.get("viralScore"))
        sentiment = str(entry.get("sentimentType") or "").strip() or DEFAULT_SENTIMENT
        return self._build_item(
            candidate, viral_score, sentiment,
            reason=clean_snippet(candidate.snippet, 80) or candidate.title[:TITLE_SNIPPET_LENGTH],
        )

    def _order_llm_items(self, items):
        return sorted(items, key=lambda item: item.change_rate, reverse=True)

    def _fallback_item(self, candidate):
        markers = marker_score(candidate.title, self.marker_words) // MARKER_POINTS
        viral_score = min(100.0, DEFAULT_VIRAL_SCORE + VIRAL_MARKER_BONUS * markers)
        return self._build_item(
            candidate, viral_score, DEFAULT_SENTIMENT,
            reason=clean_snippet(candidate.snippet, 80) or DEFAULT_RISING_REASON,
        )

    def _build_item(self, candidate: RawCandidate, viral_score: float, sentiment: str,
                    reason: str) -> TrendItem:
        return TrendItem(
            rank=0,
            title=candidate.title,
            category=self.category,
            source_name=candidate.source_label,
            summary=reason,
            source_url=candidate.link,
            change_rate=viral_score,
            metadata={"viralScore": viral_score, "sentimentType": sentiment},
        )


class ContentRanker(TopicExtractor):
    """Video chart entries; the upstream chart order is the ranking."""

    category = Category.CONTENT

    async def extract(self, candidates: Sequence[RawCandidate], limit: int) -> List[TrendItem]:
        if not candidates or limit <= 0:
            return []
        items = [self._fallback_item(candidate) for candidate in candidates[:limit]]
        return self._assign_ranks(items)

    def _item_from_entry(self, entry, pool):
        return None

    def _fallback_item(self, candidate):
        metadata = {
            "videoId": candidate.metadata.get("videoId"),
            "channelTitle": candidate.metadata.get("channelTitle") or candidate.source_label,
            "viewCount": format_view_count(candidate.metadata.get("viewCount")),
        }
        return TrendItem(
            rank=0,
            title=candidate.title,
            category=self.category,
            source_name=candidate.source_label,
            source_url=candidate.link,
            thumbnail=candidate.thumbnail,
            metadata=metadata,
        )


EXTRACTORS = {
    Category.KEYWORD: KeywordExtractor,
    Category.SOCIAL: SocialExtractor,
    Category.CONTENT: ContentRanker,
    Category.SHOPPING: ShoppingExtractor,
    Category.RISING: RisingExtractor,
}


def create_extractor(category: Category, generator: Optional[TextGenerator] = None) -> TopicExtractor:
    """Build the extractor for ``category``."""
    return EXTRACTORS[category](generator)
