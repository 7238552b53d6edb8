from __future__ import annotations

import asyncio
import logging

import httpx

from rvscan.config import ScanningConfig
from rvscan.models import HTTP_PORT, ReachabilityResult

logger = logging.getLogger(__name__)

SERVER_ERROR_THRESHOLD = 500


def root_url(ip: str, path: str = "/") -> str:
    return f"http://{ip}:{HTTP_PORT}{path}"


def describe_error(exc: BaseException) -> str:
    message = str(exc)
    name = type(exc).__name__
    return f"{name}: {message}" if message else name


async def check_reachability(
    client: httpx.AsyncClient,
    ip: str,
    config: ScanningConfig,
    retries: int | None = None,
) -> ReachabilityResult:
    """HEAD the device root until it answers below 500 or retries run out."""
    if retries is None:
        retries = config.probe_retries
    url = root_url(ip)
    status_code: int | None = None
    error: str | None = None

    for attempt in range(1, retries + 2):
        try:
            response = await client.head(url, timeout=config.probe_timeout)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            status_code = None
            error = describe_error(exc)
            logger.debug("Probe %d for %s failed: %s", attempt, ip, error)
        else:
            status_code = response.status_code
            if status_code < SERVER_ERROR_THRESHOLD:
                logger.debug("Probe %d for %s answered %d", attempt, ip, status_code)
                return ReachabilityResult(
                    reachable=True, attempts=attempt, status_code=status_code
                )
            error = f"HTTP {status_code}"
            logger.debug(
                "Probe %d for %s got server error %d", attempt, ip, status_code
            )

        if attempt <= retries and config.retry_delay > 0:
            await asyncio.sleep(config.retry_delay)

    return ReachabilityResult(
        reachable=False, attempts=retries + 1, status_code=status_code, error=error
    )


async def probe(
    client: httpx.AsyncClient,
    ip: str,
    config: ScanningConfig,
    retries: int | None = None,
) -> bool:
    result = await check_reachability(client, ip, config, retries=retries)
    return result.reachable
