from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional
import asyncio
import logging
import httpx
from .. import config
from .result import Result

logger = logging.getLogger(__name__)


@dataclass
class RetryState:
    attempt: int = 0
    max_retries: int = config.MAX_RETRIES

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_retries


async def fetch_page(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    max_retries: int = config.MAX_RETRIES,
    backoff: float = config.RETRY_BACKOFF_SECONDS,
) -> Result:
    """
    GET `url`, retrying on transport errors and non-2xx responses.
    Returns Result(200, data=<text>) or the last failure once attempts run out.
    """
    state = RetryState(max_retries=max(1, max_retries))
    res = Result.fail(503, "not attempted", "transport")
    while not state.exhausted:
        state.attempt += 1
        try:
            r = await client.get(url, headers=headers)
            r.raise_for_status()
            return Result.success(r.text)
        except httpx.HTTPError as e:
            res = Result.catch(e)
            logger.debug("Attempt %d/%d for %s failed: %s %s", state.attempt, state.max_retries, url, res.status, res.reason)
        if backoff and not state.exhausted:
            await asyncio.sleep(backoff)
    logger.warning("All %d attempts failed for %s: %s %s", state.max_retries, url, res.status, res.reason)
    return res
