from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

from ..adapters.base import FetchResult
from ..errors import ConnectivityLost

logger = logging.getLogger(__name__)

NOT_FOUND = "not found"

# Failures that mean "we are offline", as opposed to "this endpoint misbehaved".
CONNECTIVITY_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError, OSError)


async def fetch_json(
    session: ClientSession,
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    timeout: float = 15.0,
    user_agent: Optional[str] = None,
    retries: int = 0,
) -> FetchResult[Any]:
    """
    GET a URL and decode its JSON body.

    Connectivity failures return FATAL immediately. Bad statuses and
    undecodable bodies return EMPTY, after ``retries`` extra attempts.
    A 404 is EMPTY with reason ``NOT_FOUND`` and is never retried.
    """
    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    reason = "no attempt made"
    for attempt in range(retries + 1):
        try:
            async with session.get(url, params=params, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
                if resp.status == 404:
                    return FetchResult.empty(NOT_FOUND)
                resp.raise_for_status()
                return FetchResult.ok(await resp.json(content_type=None))
        except CONNECTIVITY_ERRORS as exc:
            logger.debug("fetch_json lost connectivity on %s: %r", url, exc)
            return FetchResult.fatal(ConnectivityLost())
        except (aiohttp.ClientError, ValueError) as exc:
            # ValueError covers undecodable JSON and bodies that are not valid UTF-8.
            reason = repr(exc)
            logger.debug("fetch_json attempt %s failed for %s: %s", attempt + 1, url, reason)
            if attempt < retries:
                await asyncio.sleep(min(2 ** attempt, 5))
    return FetchResult.empty(reason)


def create_session(user_agent: Optional[str] = None) -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    headers = {"User-Agent": user_agent} if user_agent else None
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; callers fetch sequentially
    return aiohttp.ClientSession(connector=connector, headers=headers)
