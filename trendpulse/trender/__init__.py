"""Trend processing package.

This package contains modules for:
- Topic extraction per category (extractor.py)
- Topic merging across categories (merge.py)
- Overall ranking (ranking.py)
- Meta analysis and item summaries (summarizer.py)
- Processing pipeline and CLI (pipeline.py)
- Main application (app.py)
"""

from .extractor import (
    TopicExtractor,
    KeywordExtractor,
    SocialExtractor,
    ShoppingExtractor,
    RisingExtractor,
    ContentRanker,
    create_extractor
)

from .merge import MergeEngine, simple_merge

from .ranking import CATEGORY_WEIGHTS, OverallRanker, build_pool

from .summarizer import MetaAnalyzer, SummaryWriter, FALLBACK_META_ANALYSIS

__all__ = [
    # Extraction
    'TopicExtractor',
    'KeywordExtractor',
    'SocialExtractor',
    'ShoppingExtractor',
    'RisingExtractor',
    'ContentRanker',
    'create_extractor',

    # Merging and ranking
    'MergeEngine',
    'simple_merge',
    'CATEGORY_WEIGHTS',
    'OverallRanker',
    'build_pool',

    # Summaries
    'MetaAnalyzer',
    'SummaryWriter',
    'FALLBACK_META_ANALYSIS'
]
