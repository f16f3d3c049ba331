"""Cross-category overall ranking."""

from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Union

from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import OVERALL_CATEGORY, Category, TrendItem, WeightedTrend
from trendpulse.trender.merge import MergeEngine

logger = get_logger(__name__)

# Relative signal strength: direct search intent highest, passive consumption lowest
CATEGORY_WEIGHTS: Dict[Category, float] = {
    Category.KEYWORD: 1.0,
    Category.SOCIAL: 0.9,
    Category.CONTENT: 0.7,
    Category.SHOPPING: 0.6,
    Category.RISING: 0.8,
}
DEFAULT_WEIGHT = 0.5

BASE_RANK_SPAN = 6
OVERALL_TOP_N = 5
OVERALL_POOL_DEPTH = BASE_RANK_SPAN - 1


def category_weight(category: Union[Category, str]) -> float:
    try:
        return CATEGORY_WEIGHTS[Category(category)]
    except ValueError:
        return DEFAULT_WEIGHT


def rank_score(rank: int, category: Union[Category, str]) -> float:
    """Weighted score of an item at ``rank`` within ``category``."""
    return (BASE_RANK_SPAN - rank) * category_weight(category)


def build_pool(all_trends: Mapping[Union[Category, str], Sequence[TrendItem]]) -> List[WeightedTrend]:
    """
    Score every item of every category into one pool.

    The derived ``overall`` list, if present, is skipped. Pool order is
    mapping order, then rank order within each list.
    """
    pool = []
    for category, items in all_trends.items():
        key = category.value if isinstance(category, Category) else category
        if key == OVERALL_CATEGORY:
            continue
        try:
            original_category = Category(key)
        except ValueError:
            logger.warning(f"Pooling items of unknown category {key!r} with default weight")
            original_category = None

        for item in items:
            pool.append(WeightedTrend(
                item=item,
                score=rank_score(item.rank, key),
                original_category=original_category or item.category,
            ))
    return pool


class OverallRanker:
    """Computes the overall top-N from per-category results."""

    def __init__(self, merge_engine: Optional[MergeEngine] = None, top_n: int = OVERALL_TOP_N):
        self.merge_engine = merge_engine or MergeEngine()
        self.top_n = top_n

    async def calculate(self, all_trends: Mapping[Union[Category, str], Sequence[TrendItem]]) -> List[TrendItem]:
        """
        Rank items across categories.

        Args:
            all_trends: Per-category item lists, each ranked 1..K

        Returns:
            Up to ``top_n`` items ranked 1..N, each with ``score`` and
            ``originalCategory`` in its metadata; empty when nothing was pooled
        """
        pool = build_pool(all_trends)
        if not pool:
            logger.info("No items to rank")
            return []

        merged = await self.merge_engine.merge(pool)
        # sorted() is stable: equal scores keep pool order
        ranked = sorted(merged, key=lambda entry: entry.score, reverse=True)[:self.top_n]

        results = []
        for rank, entry in enumerate(ranked, start=1):
            metadata = dict(entry.item.metadata)
            metadata["score"] = entry.score
            metadata["originalCategory"] = entry.original_category.value
            results.append(replace(
                entry.item,
                rank=rank,
                category=entry.original_category,
                metadata=metadata,
            ))

        logger.info(f"Overall ranking: {len(pool)} pooled, {len(merged)} after merge, {len(results)} kept")
        return results
