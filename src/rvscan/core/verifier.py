from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from rvscan.config import MatchingConfig, ScanningConfig
from rvscan.models import HTTP_PORT, VerificationResult, default_device_name

from .matcher import DEFAULT_MATCHING, classify_body, extract_device_name
from .prober import describe_error, root_url

logger = logging.getLogger(__name__)

VERIFY_ENDPOINTS = (
    "/",
    "/info",
    "/status",
    "/device",
    "/api/info",
    "/api/status",
    "/api/device",
    "/system",
    "/config",
)

ACCEPT_HEADER = "application/json, text/plain, text/html, */*"

_UNPARSEABLE = object()


def _read_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "").lower()
    try:
        if "json" in content_type:
            return response.json()
        return response.text
    except (ValueError, UnicodeDecodeError):
        return _UNPARSEABLE


def _same_origin(url: httpx.URL, ip: str) -> bool:
    return (
        url.scheme == "http"
        and url.host == ip
        and url.port in (None, HTTP_PORT)
    )


async def verify_device(
    client: httpx.AsyncClient,
    ip: str,
    config: ScanningConfig,
    matching: MatchingConfig = DEFAULT_MATCHING,
) -> VerificationResult:
    """Probe each known endpoint of *ip* until one identifies an R_VOLUTION."""
    for endpoint in VERIFY_ENDPOINTS:
        url = root_url(ip, endpoint)
        try:
            # httpx timeouts apply per read; the deadline bounds the whole body.
            async with asyncio.timeout(config.verify_timeout):
                response = await client.get(
                    url,
                    headers={"Accept": ACCEPT_HEADER},
                    timeout=config.verify_timeout,
                    follow_redirects=True,
                )
        except TimeoutError:
            logger.debug("GET %s exceeded %.1fs", url, config.verify_timeout)
            continue
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            logger.debug("GET %s failed: %s", url, describe_error(exc))
            continue

        if not _same_origin(response.url, ip):
            logger.debug("GET %s redirected off-device to %s", url, response.url)
            continue

        if not response.is_success:
            logger.debug("GET %s answered %d", url, response.status_code)
            continue

        body = _read_body(response)
        if body is _UNPARSEABLE:
            logger.debug("GET %s returned an unparseable body", url)
            continue

        if classify_body(body, matching):
            name = extract_device_name(body, default_device_name(ip), matching)
            logger.debug("Identified '%s' at %s via %s", name, ip, endpoint)
            return VerificationResult(
                is_positive=True,
                device_name=name,
                endpoint=endpoint,
                raw_body=body,
            )

    return VerificationResult(is_positive=False)
