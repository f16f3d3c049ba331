"""Deduplication of pooled trends that describe the same topic.

The same story tends to surface in several categories under different wording
("A" in the news, "A!" on social media). Before ranking, pooled entries are
grouped per topic and their weighted scores summed, so a topic that is hot
everywhere ranks above one that is only mildly hot in one place.

Two strategies:

* ``MergeEngine`` asks the text generator to partition the pool. Groups whose
  representative index is invalid are dropped and pool entries not covered by
  any group are not carried over; both losses are logged.
* ``simple_merge`` groups by a normalized 15-char title prefix. It conserves
  the total score mass and is used whenever the generator is unavailable,
  fails, or the pool is small.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Set

from trendpulse.core.errors import LLMCallError, LLMUnavailableError, ResponseParseError
from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import MergeGroup, WeightedTrend
from trendpulse.core.text import merge_key
from trendpulse.llm.parsing import coerce_index, extract_json_array, is_valid_index
from trendpulse.llm.provider import NoLLMProvider, TextGenerator

logger = get_logger(__name__)

SMALL_POOL_SIZE = 5

MERGE_PROMPT = (
    "다음 트렌드 항목들 중에서 같은 주제/이슈를 다루는 것들을 그룹핑해주세요.\n\n"
    "트렌드 목록:\n{listing}\n\n"
    "규칙:\n"
    "1. 같은 인물/사건/현상에 대한 것은 하나로 묶기\n"
    "2. 각 그룹에서 가장 대표적인 제목 선택\n"
    "3. 그룹 내 점수는 합산\n"
    "4. 서로 다른 주제는 별도 그룹으로 유지\n\n"
    "다음 JSON 형식으로만 응답:\n"
    '[{{"indices": [0, 3, 5], "representativeIndex": 0, "mergedTitle": "통합된 제목"}},\n'
    ' {{"indices": [1], "representativeIndex": 1, "mergedTitle": null}}]'
)


def simple_merge(pool: Sequence[WeightedTrend]) -> List[WeightedTrend]:
    """
    Merge entries whose titles share a normalized prefix key.

    Scores always add up. Provenance (source URL, source name and, when
    present, thumbnail) comes from the entry with the lowest rank in the group;
    on a rank tie the earlier entry keeps it. The title stays with the
    first-seen entry. Groups come out in first-seen order. Input entries are
    not modified.

    Args:
        pool: Weighted entries in pool order

    Returns:
        One entry per distinct key
    """
    merged: Dict[str, WeightedTrend] = {}
    provenance_rank: Dict[str, int] = {}

    for entry in pool:
        key = merge_key(entry.title)
        existing = merged.get(key)

        if existing is None:
            merged[key] = WeightedTrend(
                item=replace(entry.item, metadata=dict(entry.item.metadata)),
                score=entry.score,
                original_category=entry.original_category,
            )
            provenance_rank[key] = entry.rank
            continue

        existing.score += entry.score
        if entry.rank < provenance_rank[key]:
            provenance_rank[key] = entry.rank
            existing.item.source_url = entry.item.source_url
            existing.item.source_name = entry.item.source_name
            existing.item.thumbnail = entry.item.thumbnail or existing.item.thumbnail

    return list(merged.values())


def parse_merge_groups(entries: Sequence[Any]) -> List[MergeGroup]:
    """Turn parsed collaborator entries into merge groups, skipping malformed ones."""
    groups = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue

        indices = entry.get("indices")
        if not isinstance(indices, list):
            indices = []

        merged_title = entry.get("mergedTitle")
        if not isinstance(merged_title, str):
            merged_title = None

        groups.append(MergeGroup(
            indices=indices,
            representative_index=entry.get("representativeIndex"),
            merged_title=merged_title,
        ))
    return groups


class MergeEngine:
    """Groups pooled entries per topic, with the generator when possible."""

    def __init__(self, generator: Optional[TextGenerator] = None,
                 small_pool_size: int = SMALL_POOL_SIZE):
        self.generator = generator or NoLLMProvider()
        self.small_pool_size = small_pool_size

    async def merge(self, pool: Sequence[WeightedTrend]) -> List[WeightedTrend]:
        """
        Merge the pool into one entry per topic.

        Args:
            pool: Weighted entries from every category

        Returns:
            Merged entries, at most ``len(pool)`` of them
        """
        if not pool:
            return []

        if len(pool) <= self.small_pool_size or not self.generator.available:
            return simple_merge(pool)

        try:
            text = await self.generator.complete(self.build_prompt(pool))
            groups = parse_merge_groups(extract_json_array(text))
        except (LLMUnavailableError, LLMCallError, ResponseParseError) as e:
            logger.warning(f"Smart merge failed, using prefix merge: {e}")
            return simple_merge(pool)

        if not groups:
            logger.warning("Smart merge returned no groups, using prefix merge")
            return simple_merge(pool)

        merged = self.apply_groups(pool, groups)
        if not merged:
            logger.warning("Smart merge produced no valid group, using prefix merge")
            return simple_merge(pool)

        return merged

    @staticmethod
    def build_prompt(pool: Sequence[WeightedTrend]) -> str:
        listing = "\n".join(
            f"{i}. [{entry.original_category.value}] {entry.title} (score: {entry.score:.1f})"
            for i, entry in enumerate(pool)
        )
        return MERGE_PROMPT.format(listing=listing)

    @staticmethod
    def apply_groups(pool: Sequence[WeightedTrend], groups: Sequence[MergeGroup]) -> List[WeightedTrend]:
        """
        Build merged entries from collaborator groups.

        A group is dropped when its representative index is invalid. Members are
        the representative plus the listed indices; invalid members and members
        already claimed by an earlier group contribute nothing. When the
        representative itself was claimed earlier, the group is re-seated on its
        first unclaimed member.
        """
        size = len(pool)
        claimed: Set[int] = set()
        merged = []

        for group in groups:
            rep_index = coerce_index(group.representative_index)
            if not is_valid_index(rep_index, size):
                logger.warning(f"Dropping merge group with representative {group.representative_index!r}")
                continue

            candidates = [rep_index] + [coerce_index(value) for value in group.indices]
            members = [
                index for index in dict.fromkeys(candidates)
                if is_valid_index(index, size) and index not in claimed
            ]
            if not members:
                logger.debug(f"Merge group around {rep_index} has no unclaimed entries left")
                continue
            if members[0] != rep_index:
                logger.info(f"Entry {rep_index} already grouped, re-seating its group on {members[0]}")

            claimed.update(members)
            representative = pool[members[0]]
            title = (group.merged_title or "").strip() or representative.title

            merged.append(WeightedTrend(
                item=replace(representative.item, title=title,
                             metadata=dict(representative.item.metadata)),
                score=sum(pool[index].score for index in members),
                original_category=representative.original_category,
            ))

        uncovered = [i for i in range(size) if i not in claimed]
        if uncovered and merged:
            lost = sum(pool[i].score for i in uncovered)
            logger.warning(f"Smart merge left {len(uncovered)} entries ungrouped, dropping score {lost:.1f}")

        return merged
