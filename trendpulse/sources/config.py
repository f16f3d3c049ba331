"""Feed configuration loaded from ``config/sources.yaml``."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import Category
from trendpulse.core.settings import Settings
from trendpulse.sources.base import SourceAdapter
from trendpulse.sources.rss import FeedSource, RSSFeedAdapter
from trendpulse.sources.youtube import YouTubeTrendingAdapter

logger = get_logger(__name__)

DEFAULT_SOURCES_CONFIG_PATH = "config/sources.yaml"
DEFAULT_MAX_CANDIDATES = 50
DEFAULT_PER_FEED_LIMIT = 10


@dataclass
class CategorySourceConfig:
    """Feeds and limits for one category."""
    category: Category
    feeds: List[FeedSource] = field(default_factory=list)
    per_feed_limit: int = DEFAULT_PER_FEED_LIMIT
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    enabled: bool = True

    @classmethod
    def from_dict(cls, category: Category, data: Dict[str, Any]) -> "CategorySourceConfig":
        """Create from dictionary."""
        feeds = [
            FeedSource(
                name=feed["name"],
                url=feed["url"],
                display_name=feed.get("display_name"),
                platform=feed.get("platform"),
            )
            for feed in data.get("feeds", [])
            if feed.get("url") and feed.get("enabled", True)
        ]
        return cls(
            category=category,
            feeds=feeds,
            per_feed_limit=data.get("per_feed_limit", DEFAULT_PER_FEED_LIMIT),
            max_candidates=data.get("max_candidates", DEFAULT_MAX_CANDIDATES),
            enabled=data.get("enabled", True),
        )


@dataclass
class SourcesConfig:
    """All category feed lists plus the headline feed used for news checks."""
    categories: Dict[Category, CategorySourceConfig] = field(default_factory=dict)
    news_check: Optional[FeedSource] = None

    def for_category(self, category: Category) -> CategorySourceConfig:
        return self.categories.get(category) or CategorySourceConfig(category=category)


class SourcesConfigParser:
    """Parser for the sources YAML file."""

    def __init__(self, config_path: str = DEFAULT_SOURCES_CONFIG_PATH):
        self.config_path = Path(config_path)

    def load(self) -> SourcesConfig:
        """Load the sources configuration; a missing file yields an empty config."""
        if not self.config_path.exists():
            logger.warning(f"Sources config file not found: {self.config_path}")
            return SourcesConfig()

        with open(self.config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        config = self.load_from_dict(data)
        logger.info(f"Loaded sources for {len(config.categories)} categories from {self.config_path}")
        return config

    @staticmethod
    def load_from_dict(data: Dict[str, Any]) -> SourcesConfig:
        """Load the sources configuration from a dictionary."""
        categories = {}
        for name, category_data in (data.get("categories") or {}).items():
            try:
                category = Category(name)
            except ValueError:
                logger.warning(f"Ignoring unknown category in sources config: {name}")
                continue
            categories[category] = CategorySourceConfig.from_dict(category, category_data or {})

        news_check = None
        news_data = data.get("news_check")
        if news_data and news_data.get("url"):
            news_check = FeedSource(
                name=news_data.get("name", "news_check"),
                url=news_data["url"],
                display_name=news_data.get("display_name"),
            )

        return SourcesConfig(categories=categories, news_check=news_check)


def build_adapters(config: SourcesConfig, settings: Settings) -> Dict[Category, List[SourceAdapter]]:
    """
    Build the production adapters for every category.

    Args:
        config: Loaded feed configuration
        settings: Application settings (API keys, timeouts)

    Returns:
        Adapters keyed by category
    """
    adapters: Dict[Category, List[SourceAdapter]] = {}

    for category in Category:
        if category == Category.CONTENT:
            adapters[category] = [YouTubeTrendingAdapter(
                api_key=settings.youtube_api_key,
                region=settings.youtube_region,
                timeout=settings.source_timeout_seconds,
            )]
            continue

        category_config = config.for_category(category)
        if not category_config.enabled or not category_config.feeds:
            adapters[category] = []
            continue

        adapters[category] = [RSSFeedAdapter(
            name=f"{category.value}_rss",
            feeds=category_config.feeds,
            per_feed_limit=category_config.per_feed_limit,
            timeout=settings.source_timeout_seconds,
        )]

    return adapters


def build_news_check_adapter(config: SourcesConfig, settings: Settings) -> Optional[SourceAdapter]:
    if config.news_check is None:
        return None
    return RSSFeedAdapter(
        name="news_check",
        feeds=[config.news_check],
        per_feed_limit=20,
        timeout=settings.source_timeout_seconds,
    )
