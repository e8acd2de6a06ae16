from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Union
from re import Pattern
from urllib.parse import quote
import logging
import httpx
from .. import config
from ..models import ProxySpec, ResultItem, SearchRequest
from ..services import uule
from ..services.errors import ConfigurationError
from ..services.fetch import fetch_page
from ..services.geo import CoordinateResolver, DatasetsGeoLookup, GeoLookup, lookup_from_config
from ..services.http import build_client, proxy_url
from ..services.parser import parse_page
from ..services.result import Result
from ..services.target import compile_target, matches

logger = logging.getLogger(__name__)

_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_search_url(
    keyword: str,
    num: int = config.GOOGLE_PAGE_SIZE,
    start: int = 0,
    language: Optional[str] = None,
    base: str = config.GOOGLE_SEARCH_URL,
) -> str:
    # Spaces become %20, not +
    url = f"{base}?q={quote(keyword, safe=_URI_COMPONENT_SAFE)}&num={num}"
    if start:
        url += f"&start={start}"
    if language:
        url += f"&hl={quote(language, safe='')}"
    return url


@dataclass
class _Stop:
    """Ends the harvest from inside the item loop; `item` is set on a target hit."""
    item: Optional[ResultItem] = None


class GoogleSearch:
    """
    Harvests organic listings from Google result pages.

    In target mode (`request.target` set) the harvest stops at the first
    listing whose host+path matches the target and returns that listing.
    Otherwise listings are collected up to `request.max_results`.

    Named locations go through `datasets` when it is a lookup object; a URL
    string (or None) picks the backend named by `geo_lookup` instead.
    """

    def __init__(
        self,
        *,
        proxy: Optional[ProxySpec] = None,
        datasets: Union[str, GeoLookup, None] = config.DATASETS_URL,
        geo_lookup: str = config.GEO_LOOKUP,
        max_retries: int = config.MAX_RETRIES,
        page_size: int = config.GOOGLE_PAGE_SIZE,
        search_url: str = config.GOOGLE_SEARCH_URL,
        client: Optional[httpx.AsyncClient] = None,
        resolver: Optional[CoordinateResolver] = None,
    ):
        self.proxy = proxy
        self.max_retries = max_retries
        self.page_size = page_size
        self.search_url = search_url
        # Only what this instance built is closed by aclose()
        if datasets is None or isinstance(datasets, str):
            lookup = lookup_from_config(geo_lookup, datasets)
            self._owned_lookup = lookup
        else:
            lookup, self._owned_lookup = datasets, None
        self.resolver = resolver or CoordinateResolver(lookup)
        self._owns_client = client is None
        self._client = client or build_client(proxy)

    async def __aenter__(self) -> "GoogleSearch":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
        if isinstance(self._owned_lookup, DatasetsGeoLookup):
            await self._owned_lookup.aclose()

    async def search(self, request: SearchRequest) -> Result:
        target = compile_target(request.target)

        try:
            proxy_url(request.proxy)
        except (TypeError, ValueError) as e:
            logger.warning("Search %r aborted: invalid proxy: %s", request.keyword, e)
            return Result.catch(ConfigurationError(f"Invalid proxy: {e}"))

        try:
            coordinate = await self.resolver.resolve(request.location, request.min_distance, request.max_distance)
        except ConfigurationError as e:
            logger.warning("Search %r aborted: %s", request.keyword, e)
            return Result.catch(e)

        headers = {"cookie": "UULE=" + uule.encode(coordinate)}
        logger.info("Searching %r (target=%s, max_results=%d) at %.5f,%.5f",
                    request.keyword, request.target, request.max_results, coordinate.lat, coordinate.lng)

        if request.proxy:
            async with build_client(request.proxy) as client:
                return await self._harvest(client, request, target, headers)
        return await self._harvest(self._client, request, target, headers)

    async def _harvest(
        self,
        client: httpx.AsyncClient,
        request: SearchRequest,
        target: Optional[Pattern[str]],
        headers: dict,
    ) -> Result:
        results: List[ResultItem] = []
        start = 0
        while True:
            url = build_search_url(request.keyword, self.page_size, start, request.language, self.search_url)
            res = await fetch_page(client, url, headers=headers, max_retries=self.max_retries)
            if not res.ok:
                logger.warning("Search %r failed at offset %d: %s %s", request.keyword, start, res.status, res.reason)
                return res

            page = parse_page(res.data, first_position=len(results) + 1)
            logger.debug("Offset %d: %d listings, next=%s", start, len(page.items), page.has_next)

            stop = self._consume(page.items, results, target, request.max_results)
            if stop is not None:
                if stop.item is not None:
                    logger.info("Target %s found at position %d", request.target, stop.item.position)
                    return Result.success(stop.item)
                break
            if not page.has_next:
                break
            start += self.page_size

        if target is not None:
            logger.info("Target %s not found in %d listings", request.target, len(results))
            return Result.success()
        logger.info("Collected %d listings for %r", len(results), request.keyword)
        return Result.success(results)

    @staticmethod
    def _consume(
        items: List[ResultItem],
        results: List[ResultItem],
        target: Optional[Pattern[str]],
        max_results: int,
    ) -> Optional[_Stop]:
        for item in items:
            results.append(item)
            if target is not None and matches(target, item):
                return _Stop(item)
            if len(results) >= max_results:
                return _Stop()
        return None
