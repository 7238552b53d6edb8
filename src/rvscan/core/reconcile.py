from __future__ import annotations

import asyncio
import logging

import httpx

from rvscan.config import MatchingConfig, ScanningConfig
from rvscan.models import Device, Err, Ok, Outcome, utcnow
from rvscan.storage import Database

from .matcher import DEFAULT_MATCHING
from .prober import check_reachability, describe_error
from .verifier import verify_device

logger = logging.getLogger(__name__)


async def _refresh_manual(
    client: httpx.AsyncClient, device: Device, config: ScanningConfig
) -> Device:
    result = await check_reachability(
        client, device.ip, config, retries=config.refresh_probe_retries
    )
    updated = device.model_copy()
    updated.is_online = result.reachable
    if result.reachable:
        updated.last_seen = utcnow()
    else:
        logger.debug("%s (%s) unreachable: %s", device.name, device.ip, result.error)
    return updated


async def _refresh_discovered(
    client: httpx.AsyncClient,
    device: Device,
    config: ScanningConfig,
    matching: MatchingConfig,
) -> Device:
    updated = device.model_copy()
    result = await verify_device(client, device.ip, config, matching)
    if result.is_positive:
        updated.is_online = True
        updated.last_seen = utcnow()
        if result.device_name:
            updated.name = result.device_name
        return updated

    # Reachability only feeds the log; an unverified responder stays offline.
    reach = await check_reachability(
        client, device.ip, config, retries=config.refresh_probe_retries
    )
    if reach.reachable:
        logger.info(
            "%s answers HTTP %s but no longer identifies as R_VOLUTION; "
            "marking offline",
            device.ip,
            reach.status_code,
        )
    else:
        logger.debug("%s (%s) unreachable: %s", device.name, device.ip, reach.error)
    updated.is_online = False
    return updated


async def _refresh_device(
    client: httpx.AsyncClient,
    device: Device,
    config: ScanningConfig,
    matching: MatchingConfig,
) -> Outcome[Device]:
    try:
        if device.is_manually_added:
            return Ok(await _refresh_manual(client, device, config))
        return Ok(await _refresh_discovered(client, device, config, matching))
    except Exception as exc:
        return Err(describe_error(exc))


async def refresh_devices(
    client: httpx.AsyncClient,
    db: Database,
    config: ScanningConfig,
    matching: MatchingConfig = DEFAULT_MATCHING,
) -> list[Device]:
    """Re-check every stored device and persist the result in one write.

    Manually added devices only need to be reachable. Discovered devices must
    verify as R_VOLUTION again to count as online.
    """
    devices = db.load_devices()
    if not devices:
        return []

    outcomes = await asyncio.gather(
        *(_refresh_device(client, device, config, matching) for device in devices)
    )

    refreshed: list[Device] = []
    for device, outcome in zip(devices, outcomes, strict=True):
        if isinstance(outcome, Err):
            logger.warning(
                "Refresh of %s (%s) failed: %s", device.name, device.ip, outcome.reason
            )
            failed = device.model_copy()
            failed.is_online = False
            refreshed.append(failed)
        else:
            refreshed.append(outcome.value)

    db.save_devices(refreshed)
    online = sum(1 for device in refreshed if device.is_online)
    logger.info("Refreshed %d device(s), %d online", len(refreshed), online)
    return refreshed
