"""Trend service FastAPI application."""

from functools import lru_cache
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from trendpulse.core.errors import PersistenceError
from trendpulse.core.logging import get_logger, setup_logging
from trendpulse.core.schemas import CATEGORY_ICONS, CATEGORY_LABELS, OVERALL_CATEGORY, Category, parse_category
from trendpulse.core.settings import get_settings
from trendpulse.trender.pipeline import CategoryRunResult, TrendPipeline, build_pipeline

# Setup logging
setup_logging("trendpulse")
logger = get_logger(__name__)

app = FastAPI(title="TrendPulse", version="0.1.0", description="Cross-category trend ranking API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

STORED_CATEGORIES = [category.value for category in Category] + [OVERALL_CATEGORY]


class CategoryRunResponse(BaseModel):
    """Response model for one category run."""
    category: str
    status: str
    count: int
    saved: int
    error: Optional[str] = None
    runtime_seconds: float
    items: List[Dict[str, Any]]


class RunAllResponse(BaseModel):
    """Response model for a run over every category."""
    status: str
    results: Dict[str, CategoryRunResponse]


class TrendListResponse(BaseModel):
    """Response model for a stored trend list."""
    category: str
    label: str
    icon: str
    last_updated: Optional[str] = None
    items: List[Dict[str, Any]]


@lru_cache()
def get_pipeline() -> TrendPipeline:
    """Pipeline shared by all requests."""
    return build_pipeline()


def _to_response(result: CategoryRunResult) -> CategoryRunResponse:
    return CategoryRunResponse(**result.to_dict())


async def _read_list(pipeline: TrendPipeline, category: str) -> TrendListResponse:
    try:
        items = await pipeline.store.read_top(category, pipeline.category_limit)
        last_updated = await pipeline.store.last_updated(category)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return TrendListResponse(
        category=category,
        label=CATEGORY_LABELS[category],
        icon=CATEGORY_ICONS[category],
        last_updated=last_updated.isoformat() if last_updated else None,
        items=[item.to_dict() for item in items],
    )


@app.get("/healthz")
async def health_check(pipeline: TrendPipeline = Depends(get_pipeline)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "trendpulse",
        "llm": await pipeline.generator.health_check(),
    }


@app.get("/trends", response_model=Dict[str, TrendListResponse])
async def list_all_trends(pipeline: TrendPipeline = Depends(get_pipeline)):
    """Stored lists of every category plus the overall list."""
    return {category: await _read_list(pipeline, category) for category in STORED_CATEGORIES}


@app.get("/trends/{category}", response_model=TrendListResponse)
async def list_trends(category: str, pipeline: TrendPipeline = Depends(get_pipeline)):
    """Stored list of one category (``overall`` included)."""
    key = category.strip().lower()
    if key not in STORED_CATEGORIES:
        raise HTTPException(status_code=404, detail=f"Unknown category '{category}'")
    return await _read_list(pipeline, key)


@app.post("/run/all", response_model=RunAllResponse)
async def run_all_endpoint(pipeline: TrendPipeline = Depends(get_pipeline)):
    """Fetch and rank every category, then recompute the overall list."""
    logger.info("Starting run for all categories via API")
    results = await pipeline.run_all()
    status = "error" if any(result.failed for result in results.values()) else "success"
    return RunAllResponse(
        status=status,
        results={key: _to_response(result) for key, result in results.items()},
    )


@app.post("/run/overall", response_model=CategoryRunResponse)
async def run_overall_endpoint(pipeline: TrendPipeline = Depends(get_pipeline)):
    """Recompute the overall list from the stored category lists."""
    try:
        result = await pipeline.run_overall()
    except PersistenceError as e:
        logger.error(f"Overall run failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return _to_response(result)


@app.post("/run/{category}", response_model=CategoryRunResponse)
async def run_category_endpoint(category: str, pipeline: TrendPipeline = Depends(get_pipeline)):
    """Fetch, rank and store one category."""
    try:
        parsed = parse_category(category)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    logger.info(f"Starting {parsed.value} run via API")
    try:
        result = await pipeline.run_category(parsed)
    except PersistenceError as e:
        logger.error(f"{parsed.value} run failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return _to_response(result)


if __name__ == "__main__":
    settings = get_settings()
    logger.info("Starting trendpulse service via uvicorn")
    uvicorn.run(
        "trendpulse.trender.app:app",
        host=settings.service_host,
        port=settings.service_port or 8000,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
