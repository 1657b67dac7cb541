from __future__ import annotations

import asyncio
from typing import Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-IN,en;q=0.9",
}


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 30.0,
    user_agent: Optional[str] = None,
    retries: int = 2,
) -> Optional[str]:
    """
    Fetch a URL and return body text. Returns None on failure after retries.
    Client errors other than 429 are not retried.
    """
    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    last_exc: Optional[BaseException] = None
    for attempt in range(retries + 1):
        try:
            async with session.get(url, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
                resp.raise_for_status()
                return await resp.text()
        except aiohttp.ClientResponseError as exc:
            last_exc = exc
            logger.debug("fetch_text attempt %s for %s returned HTTP %s", attempt + 1, url, exc.status)
            if 400 <= exc.status < 500 and exc.status != 429:
                break
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            last_exc = exc
            logger.debug("fetch_text attempt %s failed for %s: %r", attempt + 1, url, exc)
        if attempt < retries:
            await asyncio.sleep(min(2 ** attempt, 5))
    logger.warning("fetch_text failed for %s after %s attempts: %r", url, attempt + 1, last_exc)
    return None


def create_session() -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; concurrency managed by the frontier workers
    return aiohttp.ClientSession(connector=connector, headers=DEFAULT_HEADERS)
