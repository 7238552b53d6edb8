from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from rvscan.config import MatchingConfig, ScanningConfig
from rvscan.models import Device
from rvscan.storage import Database

from .matcher import DEFAULT_MATCHING
from .scanner import scan_range

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def host_batches(start_host: int, end_host: int, size: int) -> list[tuple[int, int]]:
    return [
        (first, min(first + size - 1, end_host))
        for first in range(start_host, end_host + 1, size)
    ]


async def discover_devices(
    client: httpx.AsyncClient,
    db: Database,
    config: ScanningConfig,
    matching: MatchingConfig = DEFAULT_MATCHING,
    on_progress: ProgressCallback | None = None,
) -> list[Device]:
    """Sweep every configured prefix and persist newly found players.

    Prefixes are swept in order and batches run one after another, so no more
    than one batch of probes is ever in flight. *on_progress* receives a
    fraction between 0 and 1 after every batch. New devices are written to
    *db* in a single save once the sweep is complete.
    """
    snapshot = db.load_devices()
    batches = host_batches(config.host_start, config.host_end, config.concurrency)
    total_prefixes = len(config.prefixes)
    found: list[Device] = []

    logger.info(
        "Scanning %d prefix(es) in %d batch(es) of %d hosts",
        total_prefixes,
        len(batches),
        config.concurrency,
    )

    for prefix_index, prefix in enumerate(config.prefixes):
        logger.debug("Sweeping %s.%d-%d", prefix, config.host_start, config.host_end)
        for batch_index, (first, last) in enumerate(batches):
            new_devices = await scan_range(
                client,
                prefix,
                first,
                last,
                [*snapshot, *found],
                config,
                matching,
            )
            found.extend(new_devices)

            if on_progress is not None:
                fraction = (batch_index + 1) / len(batches)
                on_progress((prefix_index + fraction) / total_prefixes)

    if not found:
        logger.info("Scan complete: no new R_VOLUTION devices found")
        return []

    added = db.merge_devices(found)
    logger.info("Scan complete: registered %d new device(s)", len(added))
    return added
