"""Most-popular video chart from the YouTube Data API."""

from typing import List, Optional

import httpx

from trendpulse.core.logging import get_logger
from trendpulse.core.schemas import RawCandidate
from trendpulse.sources.base import SourceAdapter

logger = get_logger(__name__)

YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def _pick_thumbnail(thumbnails: dict) -> Optional[str]:
    for size in ("medium", "default", "high"):
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return None


class YouTubeTrendingAdapter(SourceAdapter):
    """
    Reads the ``mostPopular`` chart for one region.

    Without an API key the adapter yields nothing; the category then reports
    no data instead of showing a placeholder entry.
    """

    name = "youtube"

    def __init__(self, api_key: str, region: str = "KR", timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key
        self.region = region
        self.timeout = timeout
        self.client = client

    async def fetch(self, limit: int) -> List[RawCandidate]:
        if not self.api_key:
            logger.warning("YOUTUBE_API_KEY is not set; content category has no source")
            return []

        params = {
            "part": "snippet,statistics",
            "chart": "mostPopular",
            "regionCode": self.region,
            "maxResults": str(min(max(limit, 1), 50)),
            "key": self.api_key,
        }

        try:
            if self.client is not None:
                response = await self.client.get(YOUTUBE_VIDEOS_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                    response = await client.get(YOUTUBE_VIDEOS_URL, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"YouTube API error: HTTP {e.response.status_code}")
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching YouTube videos: {e}")
            return []

        candidates = []
        for video in data.get("items", [])[:limit]:
            video_id = video.get("id")
            snippet = video.get("snippet") or {}
            title = (snippet.get("title") or "").strip()
            if not video_id or not title:
                continue

            channel = snippet.get("channelTitle") or ""
            candidates.append(RawCandidate(
                title=title,
                link=WATCH_URL.format(video_id=video_id),
                source_label=channel,
                thumbnail=_pick_thumbnail(snippet.get("thumbnails") or {}),
                metadata={
                    "videoId": video_id,
                    "channelTitle": channel,
                    "viewCount": (video.get("statistics") or {}).get("viewCount"),
                },
            ))

        logger.info(f"Fetched {len(candidates)} trending videos for region {self.region}")
        return candidates
