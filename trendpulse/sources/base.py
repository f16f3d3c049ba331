"""Source adapter interface and failure-isolated concurrent collection."""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Sequence

from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import RawCandidate

logger = get_logger(__name__)

DEFAULT_SOURCE_TIMEOUT = 10.0


class SourceAdapter(ABC):
    """Produces raw candidates for one category from one upstream source family."""

    name: str = "source"

    @abstractmethod
    async def fetch(self, limit: int) -> List[RawCandidate]:
        """
        Fetch at most ``limit`` candidates.

        Implementations catch and log failures of the individual feeds they
        iterate over; an adapter with nothing to offer returns ``[]``.
        """


async def _fetch_isolated(adapter: SourceAdapter, limit: int, timeout: float) -> List[RawCandidate]:
    try:
        return await asyncio.wait_for(adapter.fetch(limit), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Source {adapter.name} timed out after {timeout}s, treating as empty")
    except Exception as e:
        logger.error(f"Source {adapter.name} failed: {e}")
    return []


async def gather_candidates(adapters: Sequence[SourceAdapter], limit: int,
                            timeout: float = DEFAULT_SOURCE_TIMEOUT) -> List[RawCandidate]:
    """
    Fetch all adapters concurrently and concatenate their candidates.

    A failing or slow adapter contributes nothing; its siblings are unaffected.
    Candidates keep adapter order, then feed order, and are capped at ``limit``.

    Args:
        adapters: Adapters for one category
        limit: Maximum number of candidates returned
        timeout: Per-adapter time budget in seconds

    Returns:
        Flat list of raw candidates
    """
    if not adapters:
        return []

    results = await asyncio.gather(*[
        _fetch_isolated(adapter, limit, timeout) for adapter in adapters
    ])

    candidates: List[RawCandidate] = []
    for adapter, batch in zip(adapters, results):
        logger.debug(f"Source {adapter.name} returned {len(batch)} candidates")
        candidates.extend(batch)

    return candidates[:limit]
