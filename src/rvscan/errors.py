"""Exceptions raised by rvscan."""

from __future__ import annotations


class RvscanError(Exception):
    """Base class for rvscan errors."""


class InvalidAddressError(RvscanError, ValueError):
    """The IP string is malformed or has an octet outside 0-255."""

    def __init__(self, ip: str) -> None:
        super().__init__(f"Invalid IPv4 address: {ip!r}")
        self.ip = ip


class InvalidNameError(RvscanError, ValueError):
    """A device name is empty or blank."""


class DuplicateDeviceError(RvscanError):
    """A device with the same ip and port is already registered."""

    def __init__(self, ip: str, port: int) -> None:
        super().__init__(f"A device is already registered at {ip}:{port}")
        self.ip = ip
        self.port = port


class DeviceNotFoundError(RvscanError, KeyError):
    """No device with the given id exists."""

    def __init__(self, device_id: str) -> None:
        super().__init__(device_id)
        self.device_id = device_id

    def __str__(self) -> str:
        return f"No device with id {self.device_id!r}"


class SessionBusyError(RvscanError):
    """A scan or refresh is already running in this session."""


class ScanInProgressError(SessionBusyError):
    """A discovery scan was requested while another operation is running."""


class InvalidIRCodeError(RvscanError, ValueError):
    """An IR code is not a hexadecimal string."""


class CommandError(RvscanError):
    """A command could not be delivered to a device."""
