import logging
import time

logger = logging.getLogger(__name__)

# ────────────────────────────────
# Time Helpers
# ────────────────────────────────


def now() -> float:
    return time.perf_counter()


def to_ms(seconds: float | None) -> int | None:
    if seconds is None:
        return None
    return int(round(seconds * 1000))


# ────────────────────────────────
# Request Headers
# ────────────────────────────────

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36"
)
JSON_CONTENT_TYPE = "application/json"


def get_default_headers(token: str, base_headers: dict | None = None) -> dict:
    base = base_headers or {}
    return {
        **base,
        "User-Agent": USER_AGENT,
        "Content-Type": JSON_CONTENT_TYPE,
        "Accept": JSON_CONTENT_TYPE,
        "Authorization": f"Bearer {token}",
    }


def join_url(base_url: str, path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    joined = base_url.rstrip("/") + path
    logger.debug(f"Resolved request URL: {joined}")
    return joined
