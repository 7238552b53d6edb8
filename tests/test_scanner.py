from __future__ import annotations

import asyncio

import httpx
from fakes import mock_client, player_handler

from rvscan.config import ScanningConfig
from rvscan.core import scanner as scanner_module
from rvscan.core.discovery import discover_devices, host_batches
from rvscan.core.scanner import scan_range
from rvscan.models import Device
from rvscan.storage import Database

PLAYERS = {
    "192.168.1.7": {"name": "Cinema", "manufacturer": "R_VOLUTION"},
    "192.168.1.12": {"deviceName": "Bedroom", "model": "PlayerOne 8K R-volution"},
}


async def _scan(handler, *args, **kwargs):
    async with mock_client(handler) as client:
        return await scan_range(client, *args, **kwargs)


def test_scan_range_returns_new_players(scanning):
    handler = player_handler(PLAYERS, reachable={"192.168.1.1"})
    found = asyncio.run(_scan(handler, "192.168.1", 1, 20, [], scanning))

    assert sorted(device.ip for device in found) == ["192.168.1.12", "192.168.1.7"]
    for device in found:
        assert device.id.startswith(f"auto_{device.ip}_")
        assert device.is_online is True
        assert device.is_manually_added is False
        assert device.last_seen is not None
        assert device.port == 80
    assert {device.name for device in found} == {"Cinema", "Bedroom"}


def test_scan_range_skips_known_addresses(scanning):
    existing = [Device.create("192.168.1.7", "Mine", manual=True)]
    handler = player_handler(PLAYERS)
    found = asyncio.run(_scan(handler, "192.168.1", 1, 20, existing, scanning))

    assert [device.ip for device in found] == ["192.168.1.12"]


def test_scan_range_keeps_successes_when_an_address_fails(scanning, monkeypatch):
    real_verify = scanner_module.verify_device

    async def flaky_verify(client, ip, config, matching):
        if ip == "192.168.1.3":
            raise RuntimeError("boom")
        return await real_verify(client, ip, config, matching)

    monkeypatch.setattr(scanner_module, "verify_device", flaky_verify)
    handler = player_handler(PLAYERS)
    found = asyncio.run(_scan(handler, "192.168.1", 1, 20, [], scanning))

    assert sorted(device.ip for device in found) == ["192.168.1.12", "192.168.1.7"]


def test_scan_range_respects_concurrency_ceiling():
    config = ScanningConfig(concurrency=3, verify_timeout=0.5, retry_delay=0)
    state = {"in_flight": 0, "peak": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        state["in_flight"] += 1
        state["peak"] = max(state["peak"], state["in_flight"])
        await asyncio.sleep(0.001)
        state["in_flight"] -= 1
        return httpx.Response(200, text="nothing here")

    found = asyncio.run(_scan(handler, "10.0.0", 1, 12, [], config))

    assert found == []
    assert state["peak"] == 3


def test_host_batches_cover_range_without_overlap():
    batches = host_batches(1, 254, 15)
    assert batches[0] == (1, 15)
    assert batches[-1] == (241, 254)
    assert len(batches) == 17
    hosts = [host for first, last in batches for host in range(first, last + 1)]
    assert hosts == list(range(1, 255))


def test_discover_devices_persists_once_and_reports_progress(tmp_path, monkeypatch):
    config = ScanningConfig(
        prefixes=("192.168.1", "10.0.0"),
        host_start=1,
        host_end=20,
        concurrency=10,
        retry_delay=0,
    )
    players = {**PLAYERS, "10.0.0.3": {"name": "Office R_VOLUTION"}}
    db = Database(tmp_path)
    existing = db.add_device(Device.create("192.168.1.7", "Mine", manual=True))

    saves: list[int] = []
    real_save = db.save_devices

    def counting_save(devices):
        saves.append(len(devices))
        real_save(devices)

    monkeypatch.setattr(db, "save_devices", counting_save)
    progress: list[float] = []

    async def _main():
        async with mock_client(player_handler(players)) as client:
            return await discover_devices(
                client, db, config, on_progress=progress.append
            )

    added = asyncio.run(_main())

    assert sorted(device.ip for device in added) == ["10.0.0.3", "192.168.1.12"]
    assert saves == [3]
    stored = db.load_devices()
    assert stored[0] == existing
    assert {device.ip for device in stored} == {
        "192.168.1.7",
        "192.168.1.12",
        "10.0.0.3",
    }
    assert progress == [0.25, 0.5, 0.75, 1.0]


def test_discover_devices_with_no_players_does_not_write(tmp_path):
    config = ScanningConfig(prefixes=("192.168.1",), host_end=5, retry_delay=0)
    db = Database(tmp_path / "data")

    async def _main():
        async with mock_client(player_handler({})) as client:
            return await discover_devices(client, db, config)

    assert asyncio.run(_main()) == []
    assert not db.devices_path.exists()
