"""HTTP request helper with retry on server and network errors.

Requests are attempted up to ``MAX_ATTEMPTS`` times. Server errors (5xx) and
transport failures are retried after ``base_delay * 2^attempt`` seconds;
client errors (4xx) and successes are returned immediately.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_BASE_DELAY = 1.0


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    stream: bool = False,
    attempts: int = MAX_ATTEMPTS,
    base_delay: float | None = None,
) -> httpx.Response:
    """Send a request, retrying 5xx responses and transport errors.

    Returns the last response received, which may still be a 5xx once the
    attempts are exhausted. Streamed responses must be closed by the caller.

    Raises:
        httpx.TransportError: If the final attempt fails to connect.
    """
    delay = RETRY_BASE_DELAY if base_delay is None else base_delay
    for attempt in range(attempts):
        last = attempt == attempts - 1
        try:
            response = await client.send(client.build_request(method, url), stream=stream)
        except httpx.TransportError as exc:
            if last:
                raise
            logger.debug("Request to %s failed (%s), attempt %d/%d", url, exc, attempt + 1, attempts)
        else:
            if response.status_code < 500 or last:
                return response
            logger.debug(
                "Request to %s returned HTTP %d, attempt %d/%d",
                url,
                response.status_code,
                attempt + 1,
                attempts,
            )
            await response.aclose()
        await asyncio.sleep(delay * (2**attempt))

    raise RuntimeError("send_with_retry needs at least one attempt")
