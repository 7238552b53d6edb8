"""Data models for rvscan."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

from rvscan.errors import InvalidAddressError

HTTP_PORT = 80
MANUAL_PREFIX = "manual"
AUTO_PREFIX = "auto"

_IP_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")

T = TypeVar("T")


def validate_ip(ip: str) -> str:
    """Return the stripped dotted-quad *ip* or raise InvalidAddressError."""
    candidate = ip.strip()
    if not _IP_RE.match(candidate):
        raise InvalidAddressError(ip)
    if any(int(octet) > 255 for octet in candidate.split(".")):
        raise InvalidAddressError(ip)
    return candidate


def default_device_name(ip: str) -> str:
    return f"R_VOLUTION ({ip})"


def new_device_id(ip: str, manual: bool) -> str:
    prefix = MANUAL_PREFIX if manual else AUTO_PREFIX
    return f"{prefix}_{ip}_{time.time_ns() // 1_000_000}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Device(BaseModel):
    """A registered R_VOLUTION player."""

    model_config = {"extra": "forbid", "validate_assignment": True}

    id: str
    name: str
    ip: str
    port: int = HTTP_PORT
    is_online: bool = False
    # None means the device has never answered a probe.
    last_seen: datetime | None = None
    is_manually_added: bool = Field(default=False, frozen=True)

    @field_validator("ip")
    @classmethod
    def _check_ip(cls, value: str) -> str:
        return validate_ip(value)

    @field_validator("port", mode="before")
    @classmethod
    def _force_http_port(cls, _value: Any) -> int:
        return HTTP_PORT

    @property
    def address(self) -> tuple[str, int]:
        return (self.ip, self.port)

    @classmethod
    def create(
        cls,
        ip: str,
        name: str | None = None,
        *,
        manual: bool,
        online: bool = False,
    ) -> Device:
        ip = validate_ip(ip)
        return cls(
            id=new_device_id(ip, manual),
            name=name or default_device_name(ip),
            ip=ip,
            is_online=online,
            last_seen=utcnow() if online else None,
            is_manually_added=manual,
        )


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of probing one IP for an R_VOLUTION player."""

    is_positive: bool
    device_name: str | None = None
    endpoint: str | None = None
    raw_body: Any = None


@dataclass(frozen=True)
class ReachabilityResult:
    reachable: bool
    attempts: int
    status_code: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str


Outcome = Ok[T] | Err
