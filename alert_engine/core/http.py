"""
Best-effort HTTP helpers with per-domain throttling and 429 backoff.
"""
import asyncio
import logging
import time
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "SkySpy-Alert-Engine/1.0"

# Rate limiting: track last request time per domain
_domain_last_request: dict[str, float] = {}
_domain_min_interval: dict[str, float] = {
    "geo.weather.gc.ca": 0.2,
}
_domain_backoff_until: dict[str, float] = {}  # Backoff after 429

DEFAULT_MIN_INTERVAL = 0.0
MAX_BACKOFF_S = 60


def set_min_interval(domain: str, seconds: float):
    """Configure the minimum spacing between requests to a domain."""
    _domain_min_interval[domain.lower()] = max(0.0, seconds)


def reset_rate_limits():
    """Forget throttling and backoff state (used by tests)."""
    _domain_last_request.clear()
    _domain_backoff_until.clear()


def _domain_of(url: str) -> str:
    parsed = urlparse(url)
    return parsed.hostname.lower() if parsed.hostname else parsed.netloc.lower()


def _retry_delay(response: httpx.Response, attempt: int) -> int:
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return int(retry_after)
        except ValueError:
            return MAX_BACKOFF_S
    return min(MAX_BACKOFF_S, 5 * (2 ** attempt))


async def request_json(
    method: str,
    url: str,
    params: Optional[dict] = None,
    json: Any = None,
    timeout: float = 5.0,
    max_retries: int = 1,
) -> Optional[Any]:
    """
    Make a best-effort HTTP request and decode the JSON body.

    Requests to the same domain are spaced by its configured minimum
    interval. A 429 puts the domain into backoff (``Retry-After`` honoured)
    and requests made during backoff return None without touching the
    network. Any transport, status or decode failure also returns None.
    """
    domain = _domain_of(url)

    now = time.time()
    backoff_until = _domain_backoff_until.get(domain, 0)
    if now < backoff_until:
        logger.debug(f"Rate limited: {domain} in backoff for {backoff_until - now:.1f}s more")
        return None

    min_interval = _domain_min_interval.get(domain, DEFAULT_MIN_INTERVAL)
    elapsed = now - _domain_last_request.get(domain, 0)
    if elapsed < min_interval:
        await asyncio.sleep(min_interval - elapsed)

    _domain_last_request[domain] = time.time()

    for attempt in range(max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers={"User-Agent": USER_AGENT},
                )

                if response.status_code == 429:
                    delay = _retry_delay(response, attempt)
                    logger.warning(f"Rate limited (429) from {domain}, backing off for {delay}s")
                    _domain_backoff_until[domain] = time.time() + delay
                    return None

                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            logger.debug(f"HTTP error from {domain}: {e.response.status_code}")
            return None
        except httpx.TransportError as e:
            if attempt < max_retries:
                logger.debug(f"Transport error for {url}, retrying: {e}")
                continue
            logger.debug(f"Request failed for {url}: {e}")
            return None
        except ValueError as e:
            logger.debug(f"Invalid JSON from {domain}: {e}")
            return None

    return None
