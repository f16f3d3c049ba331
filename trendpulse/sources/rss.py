"""RSS/Atom feed adapter built on httpx and feedparser."""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence

import feedparser
import httpx

from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import RawCandidate
from trendpulse.core.text import clean_title
from trendpulse.sources.base import SourceAdapter

logger = get_logger(__name__)

USER_AGENT = "TrendPulse/1.0 (+https://github.com/trendpulse/trendpulse)"


@dataclass(frozen=True)
class FeedSource:
    """One configured feed."""
    name: str
    url: str
    display_name: Optional[str] = None
    platform: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name


def _entry_field(entry, field: str, default: str = "") -> str:
    if hasattr(entry, "get"):
        value = entry.get(field, default)
    else:
        value = getattr(entry, field, default)
    return value or default


def _entry_snippet(entry) -> str:
    content = _entry_field(entry, "content", None)
    if isinstance(content, list) and content:
        first = content[0]
        value = first.get("value", "") if hasattr(first, "get") else str(first)
        if value:
            return value
    return _entry_field(entry, "summary") or _entry_field(entry, "description")


class RSSFeedAdapter(SourceAdapter):
    """
    Collects headlines from a list of feeds.

    Feeds are fetched concurrently; a feed that errors is logged and skipped.
    """

    def __init__(self, name: str, feeds: Sequence[FeedSource], per_feed_limit: int = 10,
                 timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.name = name
        self.feeds = list(feeds)
        self.per_feed_limit = per_feed_limit
        self.timeout = timeout
        self.client = client

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    async def fetch(self, limit: int) -> List[RawCandidate]:
        if not self.feeds:
            return []

        if self.client is not None:
            batches = await self._fetch_all(self.client)
        else:
            async with self._build_client() as client:
                batches = await self._fetch_all(client)

        candidates = [candidate for batch in batches for candidate in batch]
        logger.info(f"{self.name}: collected {len(candidates)} candidates from {len(self.feeds)} feeds")
        return candidates[:limit]

    async def _fetch_all(self, client: httpx.AsyncClient) -> List[List[RawCandidate]]:
        return await asyncio.gather(*[self._fetch_feed(client, feed) for feed in self.feeds])

    async def _fetch_feed(self, client: httpx.AsyncClient, feed: FeedSource) -> List[RawCandidate]:
        try:
            response = await client.get(feed.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to fetch {feed.name}: HTTP {e.response.status_code}")
            return []
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {feed.name}: {type(e).__name__}: {e}")
            return []

        parsed = feedparser.parse(response.text)
        if parsed.bozo and not parsed.entries:
            logger.warning(f"Feed parsing failed for {feed.name}: {parsed.get('bozo_exception')}")
            return []

        candidates = []
        for entry in parsed.entries[:self.per_feed_limit]:
            title = clean_title(_entry_field(entry, "title"))
            if not title:
                continue
            metadata = {"platform": feed.platform} if feed.platform else {}
            candidates.append(RawCandidate(
                title=title,
                link=_entry_field(entry, "link") or None,
                source_label=feed.label,
                snippet=_entry_snippet(entry),
                metadata=metadata,
            ))

        return candidates


async def fetch_news_topics(adapter: SourceAdapter, limit: int = 20) -> List[str]:
    """Lowercased titles of the current headlines, used to tell community-only buzz apart."""
    try:
        candidates = await adapter.fetch(limit)
    except Exception as e:
        logger.warning(f"Could not load current news topics: {e}")
        return []
    return [candidate.title.lower() for candidate in candidates if candidate.title]
