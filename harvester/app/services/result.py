from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional
import logging
import httpx
from .errors import HarvestError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class Result:
    """
    Outcome of a public operation. Failures are returned, not raised, so callers
    branch on `ok`:
      status: HTTP-like code (200 on success)
      reason: short human readable message
      data:   payload on success (None means "nothing found")
      error:  failure category ("transport", "configuration", "upstream", ...)
    """
    status: int = 200
    reason: str = "OK"
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, data: Any = None) -> "Result":
        return cls(200, "OK", data)

    @classmethod
    def fail(cls, status: int, reason: str, error: str = "error") -> "Result":
        return cls(status, reason, None, error)

    @classmethod
    def catch(cls, exc: BaseException) -> "Result":
        if isinstance(exc, httpx.HTTPStatusError):
            r = exc.response
            return cls.fail(r.status_code, r.reason_phrase or f"HTTP {r.status_code}", TransportError.category)
        if isinstance(exc, httpx.HTTPError):
            return cls.fail(TransportError.status, str(exc) or exc.__class__.__name__, TransportError.category)
        if isinstance(exc, HarvestError):
            return cls.fail(exc.status, str(exc), exc.category)
        logger.error("Unexpected failure: %r", exc)
        return cls.fail(500, str(exc) or exc.__class__.__name__)

    def to_dict(self) -> dict:
        data = self.data
        if hasattr(data, "model_dump"):
            data = data.model_dump()
        elif isinstance(data, list):
            data = [d.model_dump() if hasattr(d, "model_dump") else d for d in data]
        return {"ok": self.ok, "status": self.status, "reason": self.reason, "data": data}
