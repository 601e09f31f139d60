"""
Market Pull — Maps Listing Search
Pulls business listings from the DataForSEO Google Maps endpoint, one query
per sub-region, and keeps the first listing seen for every website domain.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set

import aiohttp

from .base import BusinessListing, extract_domain

logger = logging.getLogger(__name__)

MAPS_ENDPOINT = "https://api.dataforseo.com/v3/serp/google/maps/live/advanced"

# DataForSEO task-level success code; anything else means "no results".
TASK_OK = 20000

_LOCATION_CODE = 2840  # United States
_LANGUAGE_CODE = "en"
_DEPTH = 100

_QUERY_DELAY = 0.5
_REQUEST_TIMEOUT = 60

ProgressCallback = Callable[[str, int, int], None]


class MapsSearchError(RuntimeError):
    """Raised when the maps provider rejects or fails a request."""


def _rating_value(rating) -> float:
    """Rating as a float; DataForSEO sends ``{"value": 4.7, ...}`` but a bare number is accepted."""
    if isinstance(rating, dict):
        rating = rating.get("value")
    try:
        return float(rating or 0)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _parse_items(data: dict, keyword: str) -> List[BusinessListing]:
    """Turn a DataForSEO response body into listings for one keyword."""
    results: List[BusinessListing] = []

    tasks = (data or {}).get("tasks") or []
    task = tasks[0] if tasks else None
    if not task:
        logger.error(f"DataForSEO returned no task for '{keyword}': {str(data)[:500]}")
        return results
    if task.get("status_code") != TASK_OK:
        logger.error(
            f"DataForSEO task error for '{keyword}': "
            f"code={task.get('status_code')} msg='{task.get('status_message')}'"
        )
        return results

    for result_set in task.get("result") or []:
        for item in (result_set or {}).get("items") or []:
            website = item.get("url") or item.get("domain") or ""
            if not website:
                continue
            if not website.startswith("http"):
                website = f"https://{website}"
            results.append(BusinessListing(
                business_name=item.get("title") or "",
                address=item.get("address") or "",
                phone=item.get("phone") or "",
                website=website,
                rating=_rating_value(item.get("rating")),
                reviews_count=_to_int(item.get("reviews_count")),
                source_query=keyword,
            ))

    return results


class MapsSearchClient:
    """
    DataForSEO maps search with per-run domain dedup, a popularity floor
    and a hard result cap.
    """

    def __init__(self, login: str, password: str, query_delay: float = _QUERY_DELAY):
        self._auth = aiohttp.BasicAuth(login, password)
        self.query_delay = query_delay

    async def search_maps(self, session: aiohttp.ClientSession, keyword: str) -> List[BusinessListing]:
        """Run one maps query. Task-level errors yield an empty list."""
        body = [{
            "keyword": keyword,
            "location_code": _LOCATION_CODE,
            "language_code": _LANGUAGE_CODE,
            "depth": _DEPTH,
        }]
        async with session.post(
            MAPS_ENDPOINT,
            json=body,
            auth=self._auth,
            timeout=aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT),
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                text = await resp.text()
                raise MapsSearchError(f"DataForSEO error {resp.status}: {text[:300]}")
            data = await resp.json(content_type=None)

        results = _parse_items(data, keyword)
        logger.info(f"  🗺️  DataForSEO '{keyword}': {len(results)} raw results")
        return results

    async def pull_listings(
        self,
        session: aiohttp.ClientSession,
        service_category: str,
        region_abbr: str,
        sub_regions: List[str],
        min_reviews: int,
        max_results: int,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[BusinessListing]:
        """
        Query every sub-region in order and collect accepted listings.

        A listing is accepted when its domain has not been seen in this run
        and it has at least ``min_reviews`` reviews. Scanning stops once
        ``max_results`` listings are accepted. A failed query is logged and
        skipped.
        """
        accepted: List[BusinessListing] = []
        seen_domains: Set[str] = set()
        total = len(sub_regions)

        for i, sub_region in enumerate(sub_regions):
            if len(accepted) >= max_results:
                break

            query = f"{service_category} {sub_region} {region_abbr}"
            if on_progress:
                on_progress(f"Searching: {query}", i + 1, total)

            try:
                listings = await self.search_maps(session, query)
            except Exception as e:
                logger.error(f"  ❌  DataForSEO error for '{query}': {e}")
                if on_progress:
                    on_progress(f"Error searching {sub_region}, skipping...", i + 1, total)
                await asyncio.sleep(self.query_delay)
                continue

            for listing in listings:
                if len(accepted) >= max_results:
                    break
                domain = extract_domain(listing.website)
                if domain in seen_domains:
                    continue
                if listing.reviews_count < min_reviews:
                    continue
                seen_domains.add(domain)
                listing.city = sub_region
                accepted.append(listing)

            await asyncio.sleep(self.query_delay)

        logger.info(f"  ✅  Listing discovery complete: {len(accepted)} businesses")
        return accepted
