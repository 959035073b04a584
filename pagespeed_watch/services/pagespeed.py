"""PageSpeed Insights client — one request per audit category, fetched concurrently."""

import asyncio
import logging
from typing import AsyncIterator, Optional

import httpx

from pagespeed_watch.config import get_settings
from pagespeed_watch.exceptions import UpstreamFailure
from pagespeed_watch.models.schemas import CATEGORIES, Category, CategoryScore

logger = logging.getLogger("pagespeed.pagespeed")


def extract_score(data: dict, category: Category) -> Optional[float]:
    """Pull one category score out of a PSI response, scaled to 0-100.

    Returns None when Lighthouse left the category or its score out.
    """
    lighthouse = data.get("lighthouseResult")
    categories = lighthouse.get("categories") if isinstance(lighthouse, dict) else None
    entry = categories.get(category.lighthouse_key) if isinstance(categories, dict) else None
    raw = entry.get("score") if isinstance(entry, dict) else None
    if raw is None:
        return None
    try:
        return round(float(raw) * 100, 2)
    except (TypeError, ValueError):
        return None


class PageSpeedClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        endpoint: str,
        strategy: str = "mobile",
    ):
        self.http = http
        self.api_key = api_key
        self.endpoint = endpoint
        self.strategy = strategy

    async def fetch_category(self, url: str, category: Category) -> CategoryScore:
        params = {
            "url": url,
            "key": self.api_key,
            "strategy": self.strategy,
            "category": category.name,
        }
        try:
            resp = await self.http.get(self.endpoint, params=params)
        except httpx.HTTPError as e:
            raise UpstreamFailure(f"API call for {category.name} failed: {e!r}") from e

        if not resp.is_success:
            raise UpstreamFailure(
                f"API call for {category.name} failed with status {resp.status_code}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamFailure(f"API call for {category.name} returned invalid JSON") from e

        value = extract_score(data if isinstance(data, dict) else {}, category)
        if value is None:
            logger.warning(f"PSI response for {url} has no {category.name} score")
        return CategoryScore(category=category, value=value)

    async def fetch_scores(self, url: str) -> tuple[CategoryScore, ...]:
        """Fetch all categories at once; the first failure fails the whole set."""
        tasks = [asyncio.ensure_future(self.fetch_category(url, c)) for c in CATEGORIES]
        try:
            scores = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            raise
        return tuple(scores)


async def get_pagespeed_client() -> AsyncIterator[PageSpeedClient]:
    """FastAPI dependency — one short-lived HTTP client per request."""
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.psi_timeout_seconds) as http:
        yield PageSpeedClient(
            http,
            api_key=settings.psi_api_key,
            endpoint=settings.psi_endpoint,
            strategy=settings.psi_strategy,
        )
