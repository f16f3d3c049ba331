"""
TrendPulse

Aggregates trending items across news keywords, social buzz, video content,
shopping products and rising community posts, and derives a cross-category
overall ranking.

Subpackages:
- core: settings, logging, errors, data shapes, text cleaning and persistence
- llm: text-generation providers and lenient response parsing
- sources: RSS and video-chart source adapters
- trender: extraction, merging, ranking, summaries, pipeline and HTTP API
"""

__version__ = "0.1.0"
