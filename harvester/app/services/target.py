from __future__ import annotations
from typing import Optional
from re import Pattern
from urllib.parse import urlsplit
import re
from ..models import ResultItem


def compile_target(target: Optional[str]) -> Optional[Pattern[str]]:
    """
    Glob-like target to an anchored, case-insensitive pattern over host+path:
      "*.example.com"   -> example.com or any subdomain, any path
      "example.com/blog*" -> that path prefix on example.com or a subdomain
    """
    if not target:
        return None
    if target.startswith("*."):
        target = target[2:]
    rx = r"(.*\.)?" + re.escape(target)
    if rx.endswith(r"\*"):
        rx = rx[:-2] + ".*"
    if "/" not in target:
        rx += r"\/.*"
    return re.compile("^" + rx + "$", re.I)


def match_subject(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not host:
        return None
    return host + (parts.path or "/")


def matches(pattern: Pattern[str], item: ResultItem) -> bool:
    subject = match_subject(item.url)
    return subject is not None and pattern.match(subject) is not None
