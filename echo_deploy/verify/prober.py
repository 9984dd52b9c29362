"""HTTP probe with a fixed retry schedule.

The only failure the probe expects is the freshly deployed container still
starting up, so attempts are spaced by a constant interval rather than an
exponential backoff. Total wait stays predictable:
``settle_delay + (max_attempts - 1) * interval`` plus request time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from ..models import ProbeResult, ProbeSettings

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


async def probe_endpoint(
    url: str,
    settings: ProbeSettings,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Sleep = asyncio.sleep,
) -> ProbeResult:
    """Poll ``url`` until it answers with the expected status or attempts run out.

    Unexpected statuses count as a failed attempt but never end the run early;
    request errors (refused, timeout, DNS) are retried until the last attempt,
    whose error is reported in the result details.
    """
    schedule = settings.schedule
    log.info("Probing %s (settle %.1fs, %d attempts)", url, settings.settle_delay, schedule.max_attempts)

    # Give the container process time to bind its port.
    await sleep(settings.settle_delay)

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=settings.timeout, follow_redirects=True)

    last_status: Optional[int] = None
    try:
        for attempt in range(1, schedule.max_attempts + 1):
            log.info("Attempt %d/%d...", attempt, schedule.max_attempts)
            try:
                response = await client.get(
                    url,
                    timeout=settings.timeout,
                    headers={"User-Agent": settings.user_agent},
                )
            except httpx.RequestError as exc:
                if attempt == schedule.max_attempts:
                    log.error("All %d attempts failed", schedule.max_attempts)
                    return ProbeResult(
                        success=False,
                        message=f"Echo server test failed after {schedule.max_attempts} attempts",
                        details={"error": str(exc) or repr(exc), "code": type(exc).__name__},
                    )
                log.info("Connection failed (%s), waiting before retry...", type(exc).__name__)
            else:
                if response.status_code == settings.expected_status:
                    data = _body_snapshot(response)
                    log.info("Server responded with status %d", response.status_code)
                    log.debug("Response data: %s", data)
                    return ProbeResult(
                        success=True,
                        message=f"Echo server is working correctly at {url}",
                        details={"status": response.status_code, "data": data},
                    )
                last_status = response.status_code
                log.warning("Unexpected status code: %d", response.status_code)

            if attempt < schedule.max_attempts:
                await sleep(schedule.interval)
    finally:
        if owns_client:
            await client.aclose()

    details = {"last_status": last_status} if last_status is not None else None
    return ProbeResult(
        success=False,
        message=f"Echo server test failed after {schedule.max_attempts} attempts",
        details=details,
    )


def _body_snapshot(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
