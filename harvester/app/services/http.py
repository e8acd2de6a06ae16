from __future__ import annotations
from typing import Any, Dict, Optional
from urllib.parse import quote, urlsplit, urlunsplit
import random
import httpx
from .. import config
from ..models import ProxySpec

BROWSER_HEADERS = {
    "user-agent": config.USER_AGENT,
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "accept-language": "en-US,en;q=0.9",
}


def proxy_url(proxy: Optional[ProxySpec]) -> Optional[str]:
    """
    Normalize a proxy spec to a URL httpx accepts.
    Credentials given separately in a mapping are folded into the URL.
    """
    if not proxy:
        return None
    if isinstance(proxy, str):
        return proxy
    if isinstance(proxy, dict):
        url = proxy.get("url")
        if not url:
            raise ValueError("proxy mapping needs a 'url'")
        user = proxy.get("username")
        if not user:
            return url
        parts = urlsplit(url)
        auth = quote(str(user), safe="")
        if proxy.get("password"):
            auth += ":" + quote(str(proxy["password"]), safe="")
        host = parts.netloc.rsplit("@", 1)[-1]
        return urlunsplit((parts.scheme, f"{auth}@{host}", parts.path, parts.query, parts.fragment))
    raise TypeError(f"unsupported proxy spec: {type(proxy).__name__}")


def default_proxy() -> Optional[str]:
    if not config.PROXY_POOL:
        return None
    return random.choice(config.PROXY_POOL)


def build_client(
    proxy: Optional[ProxySpec] = None,
    *,
    timeout: float | None = None,
    headers: Dict[str, Any] | None = None,
) -> httpx.AsyncClient:
    """Keep-alive client; falls back to OUTBOUND_HTTP_PROXIES when no proxy is given."""
    url = proxy_url(proxy) or default_proxy()
    return httpx.AsyncClient(
        proxy=url,
        timeout=timeout if timeout is not None else config.REQUEST_TIMEOUT_SECONDS,
        headers={**BROWSER_HEADERS, **(headers or {})},
        follow_redirects=True,
    )
