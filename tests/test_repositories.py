"""Tests for the trend stores."""

import pytest

from conftest import make_items
from trendpulse.core.errors import PersistenceError
from trendpulse.core.repositories import InMemoryTrendStore, SqlTrendStore
from trendpulse.core.schemas import OVERALL_CATEGORY, Category, TrendItem


async def make_sql_store(tmp_path):
    store = SqlTrendStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'trends.db'}")
    await store.create_tables()
    return store


class TestSqlTrendStore:
    """Tests for the SQLAlchemy store on SQLite."""

    @pytest.mark.asyncio
    async def test_replace_and_read(self, tmp_path):
        store = await make_sql_store(tmp_path)
        try:
            items = make_items(Category.CONTENT, ["영상 A", "영상 B", "영상 C"])
            items[0].thumbnail = "https://i.ytimg.com/vi/a/mqdefault.jpg"
            items[0].metadata = {"viewCount": "1.2억회"}

            saved = await store.replace("content", items)
            stored = await store.read_top("content", 2)

            assert saved == 3
            assert [item.title for item in stored] == ["영상 A", "영상 B"]
            assert stored[0].thumbnail == "https://i.ytimg.com/vi/a/mqdefault.jpg"
            assert stored[0].metadata["viewCount"] == "1.2억회"
            assert stored[0].category == Category.CONTENT
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_replace_overwrites_whole_list(self, tmp_path):
        store = await make_sql_store(tmp_path)
        try:
            await store.replace("keyword", make_items(Category.KEYWORD, ["가", "나", "다"]))
            await store.replace("keyword", make_items(Category.KEYWORD, ["라"]))
            await store.replace("social", make_items(Category.SOCIAL, ["소셜"]))

            assert [item.title for item in await store.read_top("keyword", 10)] == ["라"]
            assert [item.title for item in await store.read_top("social", 10)] == ["소셜"]
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_overall_rows_keep_original_category(self, tmp_path):
        store = await make_sql_store(tmp_path)
        try:
            item = TrendItem(
                rank=1, title="BTS 컴백", category=Category.SOCIAL,
                metadata={"score": 9.5, "originalCategory": "social", "metaAnalysis": "컴백이 화제입니다."},
            )
            await store.replace(OVERALL_CATEGORY, [item])

            stored = await store.read_top(OVERALL_CATEGORY, 5)

            assert stored[0].category == Category.SOCIAL
            assert stored[0].metadata["metaAnalysis"] == "컴백이 화제입니다."
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_list(self, tmp_path):
        store = await make_sql_store(tmp_path)
        try:
            await store.replace("shopping", make_items(Category.SHOPPING, ["기존 상품"]))
            duplicate_ranks = make_items(Category.SHOPPING, ["새 상품 1", "새 상품 2"])
            duplicate_ranks[1].rank = 1

            with pytest.raises(PersistenceError) as exc_info:
                await store.replace("shopping", duplicate_ranks)

            assert exc_info.value.category == "shopping"
            assert [item.title for item in await store.read_top("shopping", 10)] == ["기존 상품"]
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_last_updated(self, tmp_path):
        store = await make_sql_store(tmp_path)
        try:
            assert await store.last_updated("rising") is None
            await store.replace("rising", make_items(Category.RISING, ["떡상"]))
            assert await store.last_updated("rising") is not None
        finally:
            await store.close()


class TestInMemoryTrendStore:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        store = InMemoryTrendStore()
        items = make_items(Category.KEYWORD, ["가", "나"])

        await store.replace("keyword", items)
        items[0].title = "변경됨"

        stored = await store.read_top("keyword", 10)
        assert [item.title for item in stored] == ["가", "나"]
        assert await store.last_updated("keyword") is not None
        assert await store.read_top("social", 10) == []
