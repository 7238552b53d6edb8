"""Session facade consumed by the CLI and any other front end."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from enum import Enum
from types import TracebackType
from typing import Any, TypeVar

import httpx

from rvscan.config import Settings
from rvscan.core import (
    discover_devices,
    probe,
    refresh_devices,
    send_ir_code,
    verify_device,
)
from rvscan.errors import (
    DeviceNotFoundError,
    DuplicateDeviceError,
    InvalidNameError,
    ScanInProgressError,
    SessionBusyError,
)
from rvscan.models import HTTP_PORT, Device, utcnow, validate_ip
from rvscan.storage import Database

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    REFRESHING = "refreshing"


class DeviceManager:
    """Owns the registry, the HTTP client and the scan/refresh state.

    One ``asyncio.Lock`` serializes every operation that writes the registry,
    so a discovery run, a refresh pass and user edits never interleave their
    read-modify-write cycles. Only one scan or refresh may run at a time.

    Usage:
        async with DeviceManager(db, settings) as manager:
            await manager.scan_network()
            await manager.refresh_all()
    """

    def __init__(
        self,
        db: Database,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._db = db
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._lock = asyncio.Lock()
        self._load_task: asyncio.Future[None] | None = None
        self._devices: list[Device] = []
        self._state = SessionState.IDLE
        self._progress = 0.0

    async def __aenter__(self) -> DeviceManager:
        if self._client is None:
            self._client = httpx.AsyncClient()
        await self.load()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    @property
    def devices(self) -> list[Device]:
        return [device.model_copy() for device in self._devices]

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scan_progress(self) -> float:
        """Progress of the running scan as a percentage between 0 and 100."""
        return self._progress * 100

    def get_device(self, device_id: str) -> Device:
        for device in self._devices:
            if device.id == device_id:
                return device.model_copy()
        raise DeviceNotFoundError(device_id)

    async def load(self) -> list[Device]:
        """Load the registry once; concurrent callers share the same read."""
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._read_registry())
        task = self._load_task
        try:
            await asyncio.shield(task)
        except Exception:
            if task.done() and self._load_task is task:
                self._load_task = None
            raise
        return self.devices

    async def reload(self) -> list[Device]:
        self._load_task = None
        return await self.load()

    async def _read_registry(self) -> None:
        self._devices = await asyncio.to_thread(self._db.load_devices)
        logger.debug("Loaded %d device(s) from %s", len(self._devices), self._db.path)

    @asynccontextmanager
    async def _running(self, state: SessionState) -> AsyncIterator[None]:
        if self._state is not SessionState.IDLE:
            if state is SessionState.SCANNING:
                raise ScanInProgressError(f"Cannot scan while {self._state.value}")
            raise SessionBusyError(
                f"Cannot start {state.value} while {self._state.value}"
            )
        self._state = state
        try:
            async with self._lock:
                yield
        finally:
            self._state = SessionState.IDLE
            self._progress = 0.0

    async def _write(self, operation: Callable[[], T]) -> T:
        async with self._lock:
            result = operation()
            self._devices = self._db.load_devices()
            return result

    def _on_progress(self, fraction: float) -> None:
        self._progress = fraction
        logger.debug("Scan progress %.0f%%", fraction * 100)

    async def scan_network(self) -> list[Device]:
        """Sweep the configured prefixes and register new players."""
        async with self._running(SessionState.SCANNING):
            found = await discover_devices(
                self.client,
                self._db,
                self._settings.scanning,
                self._settings.matching,
                on_progress=self._on_progress,
            )
            self._devices = self._db.load_devices()
        return found

    async def refresh_all(self) -> list[Device]:
        async with self._running(SessionState.REFRESHING):
            self._devices = await refresh_devices(
                self.client,
                self._db,
                self._settings.scanning,
                self._settings.matching,
            )
        return self.devices

    async def add_device_manually(self, ip: str, name: str | None = None) -> Device:
        ip = validate_ip(ip)
        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidNameError("Device name must not be empty")

        await self.load()
        if any(device.address == (ip, HTTP_PORT) for device in self._devices):
            raise DuplicateDeviceError(ip, HTTP_PORT)

        online = await probe(self.client, ip, self._settings.scanning)
        if online and name is None:
            result = await verify_device(
                self.client, ip, self._settings.scanning, self._settings.matching
            )
            if result.is_positive:
                name = result.device_name

        device = Device.create(ip, name, manual=True)
        if online:
            device.is_online = True
            device.last_seen = utcnow()
        else:
            logger.info("%s is not answering yet; adding it as offline", ip)

        await self._write(lambda: self._db.add_device(device))
        logger.info("Added device '%s' at %s", device.name, ip)
        return device

    async def remove_device(self, device_id: str) -> Device:
        removed = await self._write(lambda: self._db.remove_device(device_id))
        logger.info("Removed device '%s' (%s)", removed.name, removed.ip)
        return removed

    async def rename_device(self, device_id: str, name: str) -> Device:
        return await self._write(lambda: self._db.rename_device(device_id, name))

    async def update_device(
        self, device_id: str, name: str | None = None, ip: str | None = None
    ) -> Device:
        return await self._write(
            lambda: self._db.update_device(device_id, name=name, ip=ip)
        )

    async def send_ir_code(self, device_id: str, code: str) -> dict[str, Any]:
        await self.load()
        device = self.get_device(device_id)
        return await send_ir_code(self.client, device, code, self._settings.control)

