"""Tests for the topic merge engine."""

import pytest

from conftest import FakeTextGenerator
from trendpulse.core.errors import LLMCallError
from trendpulse.core.schemas import Category, MergeGroup, TrendItem, WeightedTrend
from trendpulse.trender.merge import MergeEngine, parse_merge_groups, simple_merge


def weighted(title, category, rank, score, source_url=None, thumbnail=None):
    item = TrendItem(
        rank=rank,
        title=title,
        category=category,
        source_name=f"{category.value}-source",
        source_url=source_url or f"https://example.com/{category.value}/{rank}",
        thumbnail=thumbnail,
    )
    return WeightedTrend(item=item, score=score, original_category=category)


@pytest.fixture
def large_pool():
    return [
        weighted("BTS 컴백 확정", Category.KEYWORD, 1, 5.0),
        weighted("방탄소년단 새 앨범", Category.SOCIAL, 1, 4.5),
        weighted("두바이 초콜릿", Category.SHOPPING, 1, 3.0),
        weighted("폭우 특보", Category.KEYWORD, 2, 4.0),
        weighted("신작 예고편", Category.CONTENT, 1, 3.5),
        weighted("BTS 뮤비 공개", Category.CONTENT, 2, 2.8),
    ]


class TestSimpleMerge:
    """Tests for the deterministic prefix merge."""

    def test_worked_example(self):
        pool = [
            weighted("A", Category.KEYWORD, 1, 5.0),
            weighted("A!", Category.SOCIAL, 1, 4.5),
            weighted("B", Category.SHOPPING, 2, 2.4),
        ]

        merged = simple_merge(pool)

        assert [entry.title for entry in merged] == ["A", "B"]
        assert merged[0].score == pytest.approx(9.5)
        assert merged[1].score == pytest.approx(2.4)
        # Rank tie: first-seen keeps title and provenance
        assert merged[0].original_category == Category.KEYWORD
        assert merged[0].item.source_url == "https://example.com/keyword/1"

    def test_lower_rank_takes_provenance_not_title(self):
        pool = [
            weighted("폭우 특보", Category.SOCIAL, 3, 2.7, thumbnail="https://img/first.jpg"),
            weighted("폭우 특보!!", Category.KEYWORD, 1, 5.0, source_url="https://news/1"),
        ]

        merged = simple_merge(pool)

        assert len(merged) == 1
        assert merged[0].title == "폭우 특보"
        assert merged[0].item.source_url == "https://news/1"
        assert merged[0].item.source_name == "keyword-source"
        # Winner has no thumbnail, existing one is kept
        assert merged[0].item.thumbnail == "https://img/first.jpg"
        assert merged[0].score == pytest.approx(7.7)

    def test_lowest_rank_wins_provenance_across_group(self):
        pool = [
            weighted("폭우 특보", Category.SOCIAL, 3, 2.7, source_url="https://rank3"),
            weighted("폭우 특보!", Category.KEYWORD, 1, 5.0, source_url="https://rank1"),
            weighted("폭우 특보?", Category.RISING, 2, 3.2, source_url="https://rank2"),
        ]

        merged = simple_merge(pool)

        assert len(merged) == 1
        assert merged[0].title == "폭우 특보"
        assert merged[0].item.source_url == "https://rank1"
        assert merged[0].item.source_name == "keyword-source"
        assert merged[0].score == pytest.approx(10.9)

    def test_conserves_score_mass(self, large_pool):
        merged = simple_merge(large_pool)

        assert sum(entry.score for entry in merged) == pytest.approx(sum(entry.score for entry in large_pool))
        assert len(merged) <= len(large_pool)

    def test_no_shared_keys_keeps_everything(self, large_pool):
        assert len(simple_merge(large_pool)) == len(large_pool)

    def test_input_not_mutated(self):
        pool = [
            weighted("A", Category.SOCIAL, 2, 3.6),
            weighted("A", Category.KEYWORD, 1, 5.0, source_url="https://news/a"),
        ]

        simple_merge(pool)

        assert pool[0].score == 3.6
        assert pool[0].item.source_url == "https://example.com/social/2"


class TestMergeEngine:
    """Tests for the generator-assisted merge."""

    @pytest.mark.asyncio
    async def test_small_pool_skips_generator(self):
        generator = FakeTextGenerator("[]")
        pool = [weighted("A", Category.KEYWORD, 1, 5.0), weighted("A!", Category.SOCIAL, 1, 4.5)]

        merged = await MergeEngine(generator).merge(pool)

        assert generator.prompts == []
        assert len(merged) == 1

    @pytest.mark.asyncio
    async def test_groups_applied(self, large_pool):
        generator = FakeTextGenerator(
            '[{"indices": [0, 1, 5], "representativeIndex": 0, "mergedTitle": "BTS 컴백"},'
            ' {"indices": [2], "representativeIndex": 2, "mergedTitle": null},'
            ' {"indices": [3], "representativeIndex": 3},'
            ' {"indices": [4], "representativeIndex": 4, "mergedTitle": ""}]'
        )

        merged = await MergeEngine(generator).merge(large_pool)

        assert [entry.title for entry in merged] == ["BTS 컴백", "두바이 초콜릿", "폭우 특보", "신작 예고편"]
        assert merged[0].score == pytest.approx(12.3)
        assert merged[0].original_category == Category.KEYWORD
        assert "0. [keyword] BTS 컴백 확정 (score: 5.0)" in generator.prompts[0]
        # Input untouched
        assert large_pool[0].title == "BTS 컴백 확정"

    @pytest.mark.asyncio
    async def test_invalid_representative_drops_group(self, large_pool):
        generator = FakeTextGenerator(
            '[{"indices": [0, 1], "representativeIndex": 0},'
            ' {"indices": [2, 3], "representativeIndex": 42},'
            ' {"indices": [4, 5, 99], "representativeIndex": 4}]'
        )

        merged = await MergeEngine(generator).merge(large_pool)

        assert [entry.title for entry in merged] == ["BTS 컴백 확정", "신작 예고편"]
        assert merged[0].score == pytest.approx(9.5)
        assert merged[1].score == pytest.approx(6.3)

    @pytest.mark.asyncio
    async def test_representative_counted_once(self, large_pool):
        generator = FakeTextGenerator('[{"indices": [1, 1], "representativeIndex": 0}]')

        merged = await MergeEngine(generator).merge(large_pool)

        assert len(merged) == 1
        assert merged[0].score == pytest.approx(9.5)

    @pytest.mark.asyncio
    async def test_claimed_index_not_double_counted(self, large_pool):
        generator = FakeTextGenerator(
            '[{"indices": [0, 1], "representativeIndex": 0},'
            ' {"indices": [1, 2], "representativeIndex": 2},'
            ' {"indices": [3], "representativeIndex": 1}]'
        )

        merged = await MergeEngine(generator).merge(large_pool)

        # Entry 1 is already grouped, so the last group is re-seated on entry 3
        assert [entry.title for entry in merged] == ["BTS 컴백 확정", "두바이 초콜릿", "폭우 특보"]
        assert [entry.score for entry in merged] == [pytest.approx(9.5), pytest.approx(3.0), pytest.approx(4.0)]

    @pytest.mark.asyncio
    async def test_group_with_claimed_representative_keeps_its_members(self):
        pool = [weighted(f"토픽 {i}", Category.KEYWORD, i + 1, 1.0) for i in range(6)]
        generator = FakeTextGenerator(
            '[{"indices": [0, 1], "representativeIndex": 0},'
            ' {"indices": [1, 2, 3, 4, 5], "representativeIndex": 1, "mergedTitle": "묶음"}]'
        )

        merged = await MergeEngine(generator).merge(pool)

        assert [entry.title for entry in merged] == ["토픽 0", "묶음"]
        assert merged[1].item.source_url == pool[2].item.source_url
        assert sum(entry.score for entry in merged) == pytest.approx(6.0)

    @pytest.mark.asyncio
    async def test_odd_index_strings_contribute_nothing(self, large_pool):
        generator = FakeTextGenerator(
            '[{"indices": ["--1", 1, "²"], "representativeIndex": 0},'
            ' {"indices": [2, 3, 4, 5], "representativeIndex": "2"}]'
        )

        merged = await MergeEngine(generator).merge(large_pool)

        assert [entry.title for entry in merged] == ["BTS 컴백 확정", "두바이 초콜릿"]
        assert merged[0].score == pytest.approx(9.5)
        assert sum(entry.score for entry in merged) == pytest.approx(sum(entry.score for entry in large_pool))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("generator", [
        FakeTextGenerator(error=LLMCallError("timeout")),
        FakeTextGenerator("sorry, no groups"),
        FakeTextGenerator("[]"),
        FakeTextGenerator('[{"indices": [0], "representativeIndex": 77}]'),
        FakeTextGenerator(available=False),
    ])
    async def test_falls_back_to_prefix_merge(self, large_pool, generator):
        merged = await MergeEngine(generator).merge(large_pool)

        assert [entry.title for entry in merged] == [entry.title for entry in large_pool]
        assert sum(entry.score for entry in merged) == pytest.approx(sum(entry.score for entry in large_pool))

    @pytest.mark.asyncio
    async def test_empty_pool(self):
        assert await MergeEngine(FakeTextGenerator("[]")).merge([]) == []


def test_parse_merge_groups_skips_malformed():
    groups = parse_merge_groups([
        {"indices": [0, 1], "representativeIndex": 0, "mergedTitle": "X"},
        "not a group",
        {"indices": "0,1", "representativeIndex": 2, "mergedTitle": 5},
    ])

    assert groups == [
        MergeGroup(indices=[0, 1], representative_index=0, merged_title="X"),
        MergeGroup(indices=[], representative_index=2, merged_title=None),
    ]
