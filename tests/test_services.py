from __future__ import annotations

import asyncio

import httpx
import pytest
from fakes import mock_client, player_handler

from rvscan import services as services_module
from rvscan.config import ControlConfig, data_dir_from_settings
from rvscan.errors import (
    CommandError,
    DeviceNotFoundError,
    DuplicateDeviceError,
    InvalidAddressError,
    InvalidIRCodeError,
    ScanInProgressError,
    SessionBusyError,
)
from rvscan.services import DeviceManager, SessionState
from rvscan.storage import Database


def _manager(settings, handler) -> DeviceManager:
    db = Database(data_dir_from_settings(settings))
    return DeviceManager(db, settings, client=mock_client(handler))


def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)


def test_add_device_forces_http_port_and_probes(settings):
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200)

    async def _main():
        async with _manager(settings, handler) as manager:
            device = await manager.add_device_manually(" 192.168.1.20 ", "Cinema")
            return device, manager.devices

    device, devices = asyncio.run(_main())

    assert device.port == 80
    assert device.ip == "192.168.1.20"
    assert device.name == "Cinema"
    assert device.is_manually_added is True
    assert device.is_online is True
    assert device.id.startswith("manual_192.168.1.20_")
    assert devices == [device]
    assert methods == ["HEAD"]


def test_add_unreachable_device_is_stored_offline(settings):
    async def _main():
        async with _manager(settings, _refuse) as manager:
            return await manager.add_device_manually("192.168.1.20")

    device = asyncio.run(_main())
    assert device.is_online is False
    assert device.last_seen is None
    assert device.name == "R_VOLUTION (192.168.1.20)"


def test_add_without_name_uses_reported_name(settings):
    handler = player_handler(
        {"192.168.1.20": {"deviceName": "Living Room", "brand": "R_VOLUTION"}}
    )

    async def _main():
        async with _manager(settings, handler) as manager:
            return await manager.add_device_manually("192.168.1.20")

    device = asyncio.run(_main())
    assert device.name == "Living Room"
    assert device.is_online is True
    assert device.is_manually_added is True


def test_add_without_name_keeps_default_for_unverified_host(settings):
    handler = player_handler({}, reachable=["192.168.1.20"])

    async def _main():
        async with _manager(settings, handler) as manager:
            return await manager.add_device_manually("192.168.1.20")

    device = asyncio.run(_main())
    assert device.name == "R_VOLUTION (192.168.1.20)"
    assert device.is_online is True


def test_add_invalid_ip_fails_before_any_request(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async def _main():
        async with _manager(settings, handler) as manager:
            await manager.add_device_manually("999.1.1.1")

    with pytest.raises(InvalidAddressError):
        asyncio.run(_main())


def test_add_duplicate_leaves_store_unchanged(settings):
    async def _main():
        async with _manager(settings, _refuse) as manager:
            await manager.add_device_manually("192.168.1.20")
            with pytest.raises(DuplicateDeviceError):
                await manager.add_device_manually("192.168.1.20", "Again")
            return manager.devices

    assert len(asyncio.run(_main())) == 1


def test_edit_rename_remove_roundtrip(settings):
    async def _main():
        async with _manager(settings, _refuse) as manager:
            first = await manager.add_device_manually("192.168.1.20")
            await manager.add_device_manually("10.0.0.5")

            renamed = await manager.rename_device(first.id, "Cinema")
            with pytest.raises(DuplicateDeviceError):
                await manager.update_device(first.id, ip="10.0.0.5")
            moved = await manager.update_device(first.id, ip="192.168.1.21")
            await manager.remove_device(first.id)
            with pytest.raises(DeviceNotFoundError):
                await manager.remove_device(first.id)
            return renamed, moved, manager.devices

    renamed, moved, devices = asyncio.run(_main())

    assert renamed.name == "Cinema"
    assert moved.ip == "192.168.1.21"
    assert moved.name == "Cinema"
    assert moved.last_seen is None
    assert [device.ip for device in devices] == ["10.0.0.5"]


def test_scan_network_updates_registry_and_resets_state(settings):
    handler = player_handler({"192.168.1.7": {"name": "Cinema", "brand": "R_VOLUTION"}})
    seen_states: list[SessionState] = []

    async def _main():
        async with _manager(settings, handler) as manager:
            real_progress = manager._on_progress

            def spy(fraction: float) -> None:
                seen_states.append(manager.state)
                real_progress(fraction)

            manager._on_progress = spy
            found = await manager.scan_network()
            return found, manager.devices, manager.state, manager.scan_progress

    found, devices, state, progress = asyncio.run(_main())

    assert [device.ip for device in found] == ["192.168.1.7"]
    assert devices == found
    assert state is SessionState.IDLE
    assert progress == 0
    assert seen_states and set(seen_states) == {SessionState.SCANNING}


def test_scan_is_not_reentrant(settings):
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(404)

    async def _main():
        async with _manager(settings, handler) as manager:
            first = asyncio.create_task(manager.scan_network())
            await asyncio.sleep(0)
            assert manager.state is SessionState.SCANNING
            with pytest.raises(ScanInProgressError):
                await manager.scan_network()
            with pytest.raises(SessionBusyError):
                await manager.refresh_all()
            release.set()
            return await first

    assert asyncio.run(_main()) == []


def test_refresh_all_updates_snapshot(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    async def _main():
        async with _manager(settings, _refuse) as manager:
            await manager.add_device_manually("192.168.1.20")
        async with _manager(settings, handler) as manager:
            return await manager.refresh_all()

    (device,) = asyncio.run(_main())
    assert device.is_online is True
    assert device.last_seen is not None


def test_load_is_shared_between_concurrent_callers(settings, monkeypatch):
    db = Database(data_dir_from_settings(settings))
    calls: list[int] = []
    real_load = db.load_devices

    def counting_load():
        calls.append(1)
        return real_load()

    monkeypatch.setattr(db, "load_devices", counting_load)
    manager = DeviceManager(db, settings, client=mock_client(_refuse))

    async def _main():
        results = await asyncio.gather(*(manager.load() for _ in range(5)))
        await manager.aclose()
        return results

    assert asyncio.run(_main()) == [[]] * 5
    assert calls == [1]


def test_send_ir_code(settings, monkeypatch):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "HEAD":
            return httpx.Response(200)
        return httpx.Response(200, text="OK")

    async def _main():
        async with _manager(settings, handler) as manager:
            device = await manager.add_device_manually("192.168.1.20")
            result = await manager.send_ir_code(device.id, "next")
            with pytest.raises(InvalidIRCodeError):
                await manager.send_ir_code(device.id, "not-hex!")
            return result

    result = asyncio.run(_main())

    assert result == {"success": True, "response": "OK"}
    sent = requests[-1]
    assert sent.url.path == "/cgi-bin/do"
    assert sent.url.params["cmd"] == "ir_code"
    assert sent.url.params["ir_code"] == "E11E4040"


def test_send_ir_code_reports_http_failures(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(200)
        return httpx.Response(503)

    async def _main():
        async with _manager(settings, handler) as manager:
            device = await manager.add_device_manually("192.168.1.20")
            await manager.send_ir_code(device.id, "BD424040")

    with pytest.raises(CommandError, match="503"):
        asyncio.run(_main())


def test_client_is_created_and_closed_when_not_injected(settings, monkeypatch):
    created: list[httpx.AsyncClient] = []
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        client = real_client(transport=httpx.MockTransport(_refuse))
        created.append(client)
        return client

    monkeypatch.setattr(services_module.httpx, "AsyncClient", factory)

    async def _main():
        db = Database(data_dir_from_settings(settings))
        async with DeviceManager(db, settings) as manager:
            await manager.add_device_manually("192.168.1.20")

    asyncio.run(_main())
    assert len(created) == 1
    assert created[0].is_closed


def test_send_ir_code_gives_up_on_endless_response(settings):
    settings = settings.model_copy(update={"control": ControlConfig(timeout=0.2)})

    async def trickle():
        while True:
            yield b"."
            await asyncio.sleep(0.05)

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/cgi-bin/do":
            return httpx.Response(200, content=trickle())
        return _refuse(request)

    async def _main():
        async with _manager(settings, handler) as manager:
            device = await manager.add_device_manually("192.168.1.20", "Cinema")
            await asyncio.wait_for(manager.send_ir_code(device.id, "stop"), 5)

    with pytest.raises(CommandError, match="did not answer"):
        asyncio.run(_main())
