"""Source adapters producing raw candidates per category."""

from .base import SourceAdapter, gather_candidates
from .rss import FeedSource, RSSFeedAdapter, fetch_news_topics
from .youtube import YouTubeTrendingAdapter

__all__ = [
    "SourceAdapter",
    "gather_candidates",
    "FeedSource",
    "RSSFeedAdapter",
    "fetch_news_topics",
    "YouTubeTrendingAdapter",
]
