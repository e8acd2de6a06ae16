from __future__ import annotations
from typing import Any, Dict, List, Optional
import json
import logging
import httpx
from .. import config
from ..models import ProxySpec
from ..services.errors import UpstreamDataError
from ..services.gate import Gate
from ..services.http import build_client
from ..services.result import Result

logger = logging.getLogger(__name__)

# CDX fields: urlkey, timestamp, original, mimetype, statuscode, digest, length
INDEX_PARAMS = [
    ("matchType", "exact"),
    ("fl", "timestamp"),
    ("filter", "statuscode:200"),
    ("filter", "mimetype:text/html"),
    ("output", "json"),
    ("from", "2010"),
    ("collapse", "timestamp:6"),
]


def zip_rows(rows: Any) -> List[Dict[str, Any]]:
    """CDX JSON output: the first row names the fields, the rest are positional values."""
    if not isinstance(rows, list):
        raise UpstreamDataError("CDX response is not a JSON array")
    if not rows:
        return []
    header, body = rows[0], rows[1:]
    if not isinstance(header, list) or not all(isinstance(r, list) for r in body):
        raise UpstreamDataError("CDX response rows are not arrays")
    for row in body:
        if len(row) != len(header):
            raise UpstreamDataError(f"CDX row has {len(row)} fields, header has {len(header)}")
    return [dict(zip(header, row)) for row in body]


class ArchiveOrg:
    """
    Wayback Machine index and snapshot client. Every request goes through one
    admission gate, so at most `max_threads` are in flight per instance.
    """

    def __init__(
        self,
        *,
        proxy: Optional[ProxySpec] = None,
        max_threads: int = config.ARCHIVE_MAX_THREADS,
        base_url: str = config.ARCHIVE_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.gate = Gate(max_threads or 10)
        self._proxy = proxy
        self._owns_client = client is None
        self._client = client or build_client(proxy)
        self._retired: List[httpx.AsyncClient] = []

    @property
    def proxy(self) -> Optional[ProxySpec]:
        return self._proxy

    @proxy.setter
    def proxy(self, proxy: Optional[ProxySpec]) -> None:
        # In-flight requests keep the old client; it is closed on the next aclose()
        client = build_client(proxy)
        if self._owns_client:
            self._retired.append(self._client)
        self._owns_client = True
        self._proxy = proxy
        self._client = client

    @property
    def max_threads(self) -> int:
        return self.gate.capacity

    async def __aenter__(self) -> "ArchiveOrg":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for client in self._retired:
            await client.aclose()
        self._retired = []
        if self._owns_client:
            await self._client.aclose()

    async def get_index(self, domain: str) -> Result:
        url = f"{self.base_url}/cdx/search/cdx"
        res = await self.gate.run(self._get, url, [("url", domain)] + INDEX_PARAMS)
        if not res.ok:
            return res
        try:
            records = zip_rows(json.loads(res.data))
        except json.JSONDecodeError as e:
            logger.warning("Malformed CDX JSON for %s: %s", domain, e)
            return Result.catch(UpstreamDataError(f"Malformed CDX JSON: {e}"))
        except UpstreamDataError as e:
            logger.warning("Unexpected CDX shape for %s: %s", domain, e)
            return Result.catch(e)
        logger.debug("CDX index for %s: %d snapshots", domain, len(records))
        return Result.success(records)

    async def get_snapshot(self, domain: str, timestamp: str) -> Result:
        url = f"{self.base_url}/web/{timestamp}/{domain}/"
        return await self.gate.run(self._get, url)

    async def _get(self, url: str, params: Optional[list] = None) -> Result:
        try:
            r = await self._client.get(url, params=params)
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Archive request %s failed: %s", url, e)
            return Result.catch(e)
        return Result.success(r.text)
