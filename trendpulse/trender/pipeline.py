"""Pipeline orchestrator for trend aggregation.

Coordinates one run of the trend flow:
1. Collection: fetch raw candidates for a category from its source adapters
2. Extraction: turn candidates into a ranked category list
3. Persistence: replace the stored list of that category
4. Overall ranking: pool, merge and rank the category lists, add a meta analysis

Categories are independent and run concurrently under one wall-clock budget;
the overall ranking only sees categories that completed.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from trendpulse.core.errors import NoDataError, PersistenceError
from trendpulse.core.logging import get_logger, setup_logging
from trendpulse.core.repositories import InMemoryTrendStore, SqlTrendStore, TrendStore
from trendpulse.core.schemas import OVERALL_CATEGORY, Category, TrendItem, parse_category
from trendpulse.core.settings import Settings, get_settings
from trendpulse.llm.provider import NoLLMProvider, TextGenerator, create_text_generator
from trendpulse.sources.base import DEFAULT_SOURCE_TIMEOUT, SourceAdapter, gather_candidates
from trendpulse.sources.config import SourcesConfigParser, build_adapters, build_news_check_adapter
from trendpulse.sources.rss import fetch_news_topics
from trendpulse.trender.extractor import MAX_CANDIDATES, RisingExtractor, TopicExtractor, create_extractor
from trendpulse.trender.merge import MergeEngine
from trendpulse.trender.ranking import OVERALL_POOL_DEPTH, OVERALL_TOP_N, OverallRanker
from trendpulse.trender.summarizer import MetaAnalyzer, SummaryWriter

logger = get_logger(__name__)

# Pipeline configuration
DEFAULT_CATEGORY_LIMIT = 10
DEFAULT_RUN_BUDGET_SECONDS = 60.0
SUMMARIZED_CATEGORIES = (Category.KEYWORD, Category.SOCIAL, Category.CONTENT)

STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"
STATUS_ERROR = "error"
STATUS_TIMEOUT = "timeout"
FAILED_STATUSES = (STATUS_ERROR, STATUS_TIMEOUT)


@dataclass
class CategoryRunResult:
    """Outcome of one category run (or of the overall ranking)."""
    category: str
    status: str
    items: List[TrendItem] = field(default_factory=list)
    saved: int = 0
    error: Optional[str] = None
    runtime_seconds: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category,
            "status": self.status,
            "count": len(self.items),
            "saved": self.saved,
            "error": self.error,
            "runtime_seconds": round(self.runtime_seconds, 3),
            "items": [item.to_dict() for item in self.items],
        }


class TrendPipeline:
    """
    Runs collection, extraction, ranking and persistence for all categories.

    All collaborators are injected; ``build_pipeline`` wires the production ones.
    """

    def __init__(self, adapters: Mapping[Category, Sequence[SourceAdapter]], store: TrendStore,
                 generator: Optional[TextGenerator] = None,
                 news_adapter: Optional[SourceAdapter] = None,
                 category_limit: int = DEFAULT_CATEGORY_LIMIT,
                 overall_top_n: int = OVERALL_TOP_N,
                 source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
                 run_budget: float = DEFAULT_RUN_BUDGET_SECONDS,
                 max_candidates: Optional[Mapping[Category, int]] = None,
                 summarize: bool = True):
        self.adapters = {category: list(adapters.get(category, [])) for category in Category}
        self.store = store
        self.generator = generator or NoLLMProvider()
        self.news_adapter = news_adapter
        self.category_limit = category_limit
        self.source_timeout = source_timeout
        self.run_budget = run_budget
        self.max_candidates = dict(max_candidates or {})
        self.summarize = summarize

        self.extractors: Dict[Category, TopicExtractor] = {
            category: create_extractor(category, self.generator) for category in Category
        }
        self.ranker = OverallRanker(MergeEngine(self.generator), top_n=overall_top_n)
        self.meta_analyzer = MetaAnalyzer(self.generator)
        self.summary_writer = SummaryWriter(self.generator)

    async def fetch_category(self, category: Category) -> List[TrendItem]:
        """
        Collect and extract one category without persisting it.

        Raises:
            NoDataError: if the adapters returned no candidates at all
        """
        limit = self.max_candidates.get(category, MAX_CANDIDATES)
        extractor = self.extractors[category]

        if isinstance(extractor, RisingExtractor):
            candidates, news_topics = await asyncio.gather(
                gather_candidates(self.adapters[category], limit, self.source_timeout),
                self._news_topics(),
            )
        else:
            candidates = await gather_candidates(self.adapters[category], limit, self.source_timeout)
            news_topics = None

        logger.info(f"{category.value}: collected {len(candidates)} candidates")
        if not candidates:
            raise NoDataError(category.value)

        if isinstance(extractor, RisingExtractor):
            items = await extractor.extract(candidates, self.category_limit, news_topics=news_topics)
        else:
            items = await extractor.extract(candidates, self.category_limit)

        if self.summarize and category in SUMMARIZED_CATEGORIES:
            await self.summary_writer.fill_missing(items)

        return items

    async def _news_topics(self) -> List[str]:
        if self.news_adapter is None:
            return []
        try:
            return await asyncio.wait_for(fetch_news_topics(self.news_adapter), timeout=self.source_timeout)
        except asyncio.TimeoutError:
            logger.warning("Current news topics timed out, treating every rising item as new")
            return []

    async def run_category(self, category: Union[Category, str]) -> CategoryRunResult:
        """
        Fetch, rank and store one category.

        A category without candidates reports ``no_data`` and leaves the stored
        list untouched.

        Raises:
            PersistenceError: if the store rejected the write
        """
        category = parse_category(category) if isinstance(category, str) else category
        start_time = time.time()

        try:
            items = await self.fetch_category(category)
        except NoDataError as e:
            logger.warning(f"{e}; keeping previously stored list")
            return CategoryRunResult(
                category=category.value,
                status=STATUS_NO_DATA,
                error=str(e),
                runtime_seconds=time.time() - start_time,
            )

        saved = await self.store.replace(category.value, items)
        runtime = time.time() - start_time
        logger.info(f"{category.value}: saved {saved} items in {runtime:.2f}s")

        return CategoryRunResult(
            category=category.value,
            status=STATUS_OK,
            items=items,
            saved=saved,
            runtime_seconds=runtime,
        )

    async def _run_category_isolated(self, category: Category) -> CategoryRunResult:
        start_time = time.time()
        try:
            return await self.run_category(category)
        except PersistenceError as e:
            error = str(e)
        except Exception as e:
            logger.exception(f"{category.value}: run failed")
            error = f"{type(e).__name__}: {e}"
        return CategoryRunResult(
            category=category.value,
            status=STATUS_ERROR,
            error=error,
            runtime_seconds=time.time() - start_time,
        )

    async def run_all(self) -> Dict[str, CategoryRunResult]:
        """
        Run every category concurrently, then the overall ranking.

        Categories still running when the budget expires are cancelled and
        reported as ``timeout``. The overall ranking uses the fresh lists of the
        categories that completed, not the store, and gets whatever is left of
        the budget; if it overruns, ``overall`` is reported as ``timeout`` and
        the stored overall list is kept.

        Returns:
            Results keyed by category value plus ``overall``
        """
        start_time = time.time()
        logger.info(f"Starting run for all categories (budget {self.run_budget}s)")

        tasks = {
            asyncio.create_task(self._run_category_isolated(category)): category
            for category in Category
        }
        done, pending = await asyncio.wait(tasks.keys(), timeout=self.run_budget)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        by_category: Dict[Category, CategoryRunResult] = {}
        for task, category in tasks.items():
            if task in done:
                by_category[category] = task.result()
            else:
                logger.warning(f"{category.value}: abandoned after run budget of {self.run_budget}s")
                by_category[category] = CategoryRunResult(
                    category=category.value,
                    status=STATUS_TIMEOUT,
                    error=f"exceeded run budget of {self.run_budget}s",
                    runtime_seconds=time.time() - start_time,
                )

        results: Dict[str, CategoryRunResult] = {
            category.value: by_category[category] for category in Category
        }

        fresh = {
            category: result.items[:OVERALL_POOL_DEPTH]
            for category, result in by_category.items()
            if result.status == STATUS_OK
        }
        remaining = max(self.run_budget - (time.time() - start_time), 0.0)
        try:
            results[OVERALL_CATEGORY] = await asyncio.wait_for(self.compute_overall(fresh), timeout=remaining)
        except asyncio.TimeoutError:
            logger.warning(f"Overall ranking abandoned after run budget of {self.run_budget}s")
            results[OVERALL_CATEGORY] = CategoryRunResult(
                category=OVERALL_CATEGORY,
                status=STATUS_TIMEOUT,
                error=f"exceeded run budget of {self.run_budget}s",
                runtime_seconds=time.time() - start_time,
            )
        except PersistenceError as e:
            results[OVERALL_CATEGORY] = CategoryRunResult(
                category=OVERALL_CATEGORY, status=STATUS_ERROR, error=str(e),
            )
        except Exception as e:
            logger.exception("Overall ranking failed")
            results[OVERALL_CATEGORY] = CategoryRunResult(
                category=OVERALL_CATEGORY, status=STATUS_ERROR, error=f"{type(e).__name__}: {e}",
            )

        statuses = {key: result.status for key, result in results.items()}
        logger.info(f"Run finished in {time.time() - start_time:.2f}s: {statuses}")
        return results

    async def compute_overall(self, all_trends: Mapping[Category, Sequence[TrendItem]]) -> CategoryRunResult:
        """
        Rank the given category lists and store the overall list.

        The meta analysis sentence goes into the first item's metadata.

        Raises:
            PersistenceError: if the store rejected the write
        """
        start_time = time.time()
        items = await self.ranker.calculate(all_trends)

        if not items:
            logger.warning("No trends to analyze; keeping previously stored overall list")
            return CategoryRunResult(
                category=OVERALL_CATEGORY,
                status=STATUS_NO_DATA,
                error="no trends to rank",
                runtime_seconds=time.time() - start_time,
            )

        meta_analysis = await self.meta_analyzer.analyze(items)
        items[0].metadata["metaAnalysis"] = meta_analysis

        saved = await self.store.replace(OVERALL_CATEGORY, items)
        return CategoryRunResult(
            category=OVERALL_CATEGORY,
            status=STATUS_OK,
            items=items,
            saved=saved,
            runtime_seconds=time.time() - start_time,
        )

    async def run_overall(self) -> CategoryRunResult:
        """Recompute the overall list from the stored category lists."""
        all_trends = {}
        for category in Category:
            all_trends[category] = await self.store.read_top(category.value, OVERALL_POOL_DEPTH)
        return await self.compute_overall(all_trends)


def build_pipeline(settings: Optional[Settings] = None, store: Optional[TrendStore] = None) -> TrendPipeline:
    """Wire a pipeline with the production adapters, generator and store."""
    settings = settings or get_settings()
    sources_config = SourcesConfigParser(settings.sources_config_path).load()

    return TrendPipeline(
        adapters=build_adapters(sources_config, settings),
        store=store or SqlTrendStore.from_url(settings.db_url),
        generator=create_text_generator(settings),
        news_adapter=build_news_check_adapter(sources_config, settings),
        category_limit=settings.category_limit,
        overall_top_n=settings.overall_top_n,
        source_timeout=settings.source_timeout_seconds,
        run_budget=settings.run_budget_seconds,
        max_candidates={
            category: sources_config.for_category(category).max_candidates
            for category in Category
        },
    )


async def run_target(pipeline: TrendPipeline, target: str) -> Dict[str, CategoryRunResult]:
    """Run ``all``, ``overall`` or a single category."""
    if target == "all":
        return await pipeline.run_all()
    if target == OVERALL_CATEGORY:
        return {OVERALL_CATEGORY: await pipeline.run_overall()}

    category = parse_category(target)
    try:
        result = await pipeline.run_category(category)
    except PersistenceError as e:
        result = CategoryRunResult(category=category.value, status=STATUS_ERROR, error=str(e))
    return {category.value: result}


async def _run_cli(target: str, dry_run: bool) -> Dict[str, CategoryRunResult]:
    store = InMemoryTrendStore() if dry_run else None
    pipeline = build_pipeline(store=store)

    if isinstance(pipeline.store, SqlTrendStore):
        await pipeline.store.create_tables()
    try:
        return await run_target(pipeline, target)
    finally:
        if isinstance(pipeline.store, SqlTrendStore):
            await pipeline.store.close()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for running the trend pipeline."""
    import argparse

    targets = [category.value for category in Category] + ["all", OVERALL_CATEGORY]

    parser = argparse.ArgumentParser(description='Trend aggregation pipeline')
    parser.add_argument(
        'target',
        choices=targets,
        help='Category to run, "all" for every category plus overall, or "overall"'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Keep results in memory instead of writing to the database'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args(argv)

    setup_logging("trendpulse-cli", verbose=args.verbose)

    results = asyncio.run(_run_cli(args.target, args.dry_run))

    print("\n=== Trend Pipeline Results ===")
    for key, result in results.items():
        line = f"{key:10s} {result.status:8s} items={len(result.items)} saved={result.saved}"
        if result.error:
            line += f" ({result.error})"
        print(line)
        for item in result.items:
            print(f"    {item.rank:2d}. {item.title} [{item.source_name}]")

    return 1 if any(result.failed for result in results.values()) else 0


if __name__ == "__main__":
    exit(main())
