from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from rvscan.errors import DeviceNotFoundError, DuplicateDeviceError, InvalidNameError
from rvscan.models import Device, validate_ip

logger = logging.getLogger(__name__)

STORAGE_KEY = "rvolution_devices"
DEVICES_FILE = f"{STORAGE_KEY}.json"
DEFAULT_FILE_MODE = 0o644

_DEVICE_LIST = TypeAdapter(list[Device])


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise InvalidNameError("Device name must not be empty")
    return cleaned


def _dedupe(devices: Iterable[Device]) -> list[Device]:
    seen: set[tuple[str, int]] = set()
    unique: list[Device] = []
    for device in devices:
        if device.address in seen:
            logger.warning(
                "Dropping duplicate record %s for %s:%d",
                device.id,
                device.ip,
                device.port,
            )
            continue
        seen.add(device.address)
        unique.append(device)
    return unique


class Database:
    """JSON-backed device registry.

    Every mutator reads the full collection, applies its change and writes the
    full collection back through a temporary file and ``os.replace``.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._devices_path = data_dir / DEVICES_FILE

    @property
    def path(self) -> Path:
        return self._data_dir

    @property
    def devices_path(self) -> Path:
        return self._devices_path

    def ensure_dirs(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def init(self, force: bool = False) -> bool:
        self.ensure_dirs()
        if self._devices_path.exists() and not force:
            return False
        self.save_devices([])
        return True

    def load_devices(self) -> list[Device]:
        if not self._devices_path.exists():
            return []

        try:
            with self._devices_path.open("r") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(
                f"Invalid JSON in devices file: {self._devices_path}\n{exc}"
            ) from exc

        try:
            devices = _DEVICE_LIST.validate_python(data or [])
        except ValidationError as exc:
            raise ValueError(
                f"Invalid devices file: {self._devices_path}\n{exc}"
            ) from exc

        return _dedupe(devices)

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self._devices_path.stat().st_mode)
        except FileNotFoundError:
            return DEFAULT_FILE_MODE

    def save_devices(self, devices: list[Device]) -> None:
        self.ensure_dirs()
        payload = _DEVICE_LIST.dump_python(devices, mode="json")
        fd, tmp_name = tempfile.mkstemp(
            dir=self._data_dir, prefix=f".{STORAGE_KEY}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as handle:
                json.dump(payload, handle, indent=2)
            # mkstemp creates 0600; keep the registry's existing mode instead.
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self._devices_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d device(s) to %s", len(devices), self._devices_path)

    def add_device(self, device: Device) -> Device:
        devices = self.load_devices()
        if any(existing.address == device.address for existing in devices):
            raise DuplicateDeviceError(device.ip, device.port)
        devices.append(device)
        self.save_devices(devices)
        return device

    def merge_devices(self, new_devices: Iterable[Device]) -> list[Device]:
        """Append *new_devices* whose address is not yet stored, in one write.

        Returns the devices that were actually added.
        """
        devices = self.load_devices()
        known = {device.address for device in devices}
        added: list[Device] = []
        for device in new_devices:
            if device.address in known:
                continue
            known.add(device.address)
            added.append(device)

        if added:
            self.save_devices(devices + added)
        return added

    def remove_device(self, device_id: str) -> Device:
        devices = self.load_devices()
        for index, device in enumerate(devices):
            if device.id == device_id:
                del devices[index]
                self.save_devices(devices)
                return device
        raise DeviceNotFoundError(device_id)

    def rename_device(self, device_id: str, name: str) -> Device:
        return self.update_device(device_id, name=name)

    def update_device(
        self, device_id: str, name: str | None = None, ip: str | None = None
    ) -> Device:
        # Validate everything before touching the stored copy.
        new_name = _clean_name(name) if name is not None else None
        new_ip = validate_ip(ip) if ip is not None else None

        def apply(device: Device, others: list[Device]) -> None:
            if new_ip is not None and new_ip != device.ip:
                if any(other.address == (new_ip, device.port) for other in others):
                    raise DuplicateDeviceError(new_ip, device.port)
                device.ip = new_ip
                device.is_online = False
                device.last_seen = None
            if new_name is not None:
                device.name = new_name

        return self._mutate(device_id, apply)

    def _mutate(
        self, device_id: str, apply: Callable[[Device, list[Device]], None]
    ) -> Device:
        devices = self.load_devices()
        target = next((device for device in devices if device.id == device_id), None)
        if target is None:
            raise DeviceNotFoundError(device_id)

        others = [device for device in devices if device.id != device_id]
        updated = target.model_copy()
        apply(updated, others)

        self.save_devices(
            [updated if device.id == device_id else device for device in devices]
        )
        return updated
