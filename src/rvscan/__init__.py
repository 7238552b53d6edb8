"""rvscan - discover, verify and track R_VOLUTION players on the local network."""

from __future__ import annotations

from importlib.metadata import version

from .config import ScanningConfig, Settings, get_settings
from .errors import (
    DeviceNotFoundError,
    DuplicateDeviceError,
    InvalidAddressError,
    RvscanError,
)
from .models import HTTP_PORT, Device, VerificationResult
from .services import DeviceManager, SessionState
from .storage import Database

__all__ = [
    "HTTP_PORT",
    "Database",
    "Device",
    "DeviceManager",
    "DeviceNotFoundError",
    "DuplicateDeviceError",
    "InvalidAddressError",
    "RvscanError",
    "ScanningConfig",
    "SessionState",
    "Settings",
    "VerificationResult",
    "__version__",
    "get_settings",
]

__version__ = version("rvscan")
