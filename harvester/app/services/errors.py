from typing import Optional


class HarvestError(Exception):
    """Base class; `status` mirrors the HTTP status reported to callers."""
    status = 500
    category = "error"

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class ConfigurationError(HarvestError):
    category = "configuration"


class TransportError(HarvestError):
    status = 503
    category = "transport"


class UpstreamDataError(HarvestError):
    status = 502
    category = "upstream"
