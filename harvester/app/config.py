import os
from .services.config import load_yaml, setting, split_list

# Optional YAML overlay; environment variables still take precedence
_cfg = load_yaml(os.getenv("HARVESTER_CONFIG", ""))

GOOGLE_SEARCH_URL = setting(_cfg, "GOOGLE_SEARCH_URL", "https://www.google.com/search")
GOOGLE_PAGE_SIZE = setting(_cfg, "GOOGLE_PAGE_SIZE", 100)
MAX_RETRIES = setting(_cfg, "MAX_RETRIES", 10)
RETRY_BACKOFF_SECONDS = setting(_cfg, "RETRY_BACKOFF_SECONDS", 0.0)
REQUEST_TIMEOUT_SECONDS = setting(_cfg, "REQUEST_TIMEOUT_SECONDS", 30.0)

DATASETS_URL = setting(_cfg, "DATASETS_URL", "") or None
GEO_LOOKUP = setting(_cfg, "GEO_LOOKUP", "datasets")
NOMINATIM_URL = setting(_cfg, "NOMINATIM_URL", "https://nominatim.openstreetmap.org/search")

ARCHIVE_BASE_URL = setting(_cfg, "ARCHIVE_BASE_URL", "https://web.archive.org").rstrip("/")
ARCHIVE_MAX_THREADS = setting(_cfg, "ARCHIVE_MAX_THREADS", 10)

PROXY_POOL = split_list(setting(_cfg, "OUTBOUND_HTTP_PROXIES", ""))

LOG_LEVEL = setting(_cfg, "LOG_LEVEL", "INFO")

# Desktop Chrome on Windows
USER_AGENT = setting(
    _cfg,
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)
