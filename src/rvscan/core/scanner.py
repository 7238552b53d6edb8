from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import httpx

from rvscan.config import MatchingConfig, ScanningConfig
from rvscan.models import HTTP_PORT, Device, Err, Ok, Outcome

from .matcher import DEFAULT_MATCHING
from .prober import describe_error
from .verifier import verify_device

logger = logging.getLogger(__name__)


def host_ips(prefix: str, start_host: int, end_host: int) -> list[str]:
    return [f"{prefix}.{host}" for host in range(start_host, end_host + 1)]


async def _check_address(
    client: httpx.AsyncClient,
    ip: str,
    known: set[tuple[str, int]],
    semaphore: asyncio.Semaphore,
    config: ScanningConfig,
    matching: MatchingConfig,
) -> Outcome[Device | None]:
    try:
        async with semaphore:
            result = await verify_device(client, ip, config, matching)
    except Exception as exc:
        return Err(describe_error(exc))

    if not result.is_positive:
        return Ok(None)
    if (ip, HTTP_PORT) in known:
        logger.debug("R_VOLUTION at %s is already registered", ip)
        return Ok(None)

    device = Device.create(ip, result.device_name, manual=False, online=True)
    logger.info("Found R_VOLUTION '%s' at %s (%s)", device.name, ip, result.endpoint)
    return Ok(device)


async def scan_range(
    client: httpx.AsyncClient,
    prefix: str,
    start_host: int,
    end_host: int,
    existing: Iterable[Device],
    config: ScanningConfig,
    matching: MatchingConfig = DEFAULT_MATCHING,
) -> list[Device]:
    """Verify every host of ``prefix.start_host..end_host`` and return new devices.

    At most ``config.concurrency`` verifications are in flight at once. Hosts
    whose address already appears in *existing* are never returned.
    """
    known = {device.address for device in existing}
    semaphore = asyncio.Semaphore(config.concurrency)
    ips = host_ips(prefix, start_host, end_host)

    outcomes = await asyncio.gather(
        *(
            _check_address(client, ip, known, semaphore, config, matching)
            for ip in ips
        )
    )

    found: list[Device] = []
    for ip, outcome in zip(ips, outcomes, strict=True):
        if isinstance(outcome, Err):
            logger.warning("Skipping %s: %s", ip, outcome.reason)
        elif outcome.value is not None:
            found.append(outcome.value)
    return found
