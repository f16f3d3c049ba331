"""Tests for the trend service API."""

import pytest
from fastapi.testclient import TestClient

from conftest import StaticAdapter, make_candidates
from trendpulse.core.errors import PersistenceError
from trendpulse.core.repositories import InMemoryTrendStore
from trendpulse.core.schemas import Category
from trendpulse.trender.app import app, get_pipeline
from trendpulse.trender.pipeline import TrendPipeline


class ReadOnlyStore(InMemoryTrendStore):
    """Store whose writes always fail."""

    async def replace(self, category, items):
        raise PersistenceError(category, "read-only database")


def make_pipeline(news_candidates, store=None):
    adapters = {
        Category.KEYWORD: [StaticAdapter(news_candidates)],
        Category.SHOPPING: [StaticAdapter(make_candidates(["[핫딜] 에어팟 프로2, 역대 최저가"], "쇼핑뉴스"))],
    }
    return TrendPipeline(adapters, store or InMemoryTrendStore())


@pytest.fixture
def pipeline(news_candidates):
    return make_pipeline(news_candidates)


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestReadEndpoints:
    """Tests for health and stored list endpoints."""

    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "trendpulse"
        assert data["llm"]["provider"] == "NoLLM"
        assert data["llm"]["status"] == "unavailable"

    def test_empty_list(self, client):
        response = client.get("/trends/keyword")

        assert response.status_code == 200
        data = response.json()
        assert data["label"] == "뉴스"
        assert data["items"] == []
        assert data["last_updated"] is None

    def test_unknown_category(self, client):
        assert client.get("/trends/weather").status_code == 404

    def test_all_lists(self, client):
        data = client.get("/trends").json()

        assert set(data) == {"keyword", "social", "content", "shopping", "rising", "overall"}
        assert data["overall"]["label"] == "종합"


class TestRunEndpoints:
    """Tests for the run endpoints."""

    def test_run_category_then_read(self, client):
        response = client.post("/run/keyword")

        assert response.status_code == 200
        result = response.json()
        assert result["status"] == "ok"
        assert result["count"] == 4
        assert result["saved"] == 4

        stored = client.get("/trends/keyword").json()
        assert [item["rank"] for item in stored["items"]] == [1, 2, 3, 4]
        assert "sourceUrl" in stored["items"][0]
        assert stored["last_updated"] is not None

    def test_run_category_is_case_insensitive(self, client):
        assert client.post("/run/Shopping").json()["category"] == "shopping"

    def test_run_unknown_category(self, client):
        assert client.post("/run/weather").status_code == 404

    def test_run_all(self, client):
        response = client.post("/run/all")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["results"]["keyword"]["status"] == "ok"
        assert data["results"]["content"]["status"] == "no_data"
        assert data["results"]["overall"]["status"] == "ok"

        overall = client.get("/trends/overall").json()["items"]
        assert overall[0]["metadata"]["metaAnalysis"]
        assert overall[0]["category"] == "keyword"

    def test_run_overall(self, client):
        client.post("/run/keyword")

        response = client.post("/run/overall")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_persistence_failure(self, news_candidates):
        app.dependency_overrides[get_pipeline] = lambda: make_pipeline(news_candidates, ReadOnlyStore())
        try:
            client = TestClient(app)

            assert client.post("/run/keyword").status_code == 503
            data = client.post("/run/all").json()
            assert data["status"] == "error"
            assert data["results"]["keyword"]["status"] == "error"
        finally:
            app.dependency_overrides.clear()
