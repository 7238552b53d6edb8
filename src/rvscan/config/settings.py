from __future__ import annotations

import json
import os
import re
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .paths import default_config_path, default_data_dir, expand_path

CONFIG_ENV_VAR = "RVSCAN_CONFIG"

DEFAULT_PREFIXES = (
    "192.168.1",
    "192.168.0",
    "192.168.2",
    "192.168.10",
    "192.168.100",
    "10.0.0",
    "172.16.0",
)

_PREFIX_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")


class DatabaseConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: str = Field(default_factory=lambda: str(default_data_dir()))


class ScanningConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    prefixes: tuple[str, ...] = DEFAULT_PREFIXES
    host_start: int = Field(default=1, ge=1, le=254)
    host_end: int = Field(default=254, ge=1, le=254)
    concurrency: int = Field(default=15, ge=1, le=254)
    probe_timeout: float = Field(default=5.0, gt=0)
    verify_timeout: float = Field(default=3.0, gt=0)
    probe_retries: int = Field(default=2, ge=0)
    refresh_probe_retries: int = Field(default=1, ge=0)
    retry_delay: float = Field(default=0.5, ge=0)

    @field_validator("prefixes")
    @classmethod
    def _check_prefixes(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for prefix in value:
            match = _PREFIX_RE.match(prefix)
            if match is None or any(int(octet) > 255 for octet in match.groups()):
                raise ValueError(f"invalid network prefix: {prefix!r}")
        return value

    @model_validator(mode="after")
    def _check_host_range(self) -> ScanningConfig:
        if self.host_end < self.host_start:
            raise ValueError("host_end must not be lower than host_start")
        return self


class MatchingConfig(BaseModel):
    """Heuristics used to recognise an R_VOLUTION player from an HTTP body."""

    model_config = {"frozen": True, "extra": "forbid"}

    brand_patterns: tuple[str, ...] = (
        "r_volution",
        "r-volution",
        "r volution",
        "rvolution",
        "revolution",
    )
    field_marker: str = "volution"
    match_fields: tuple[str, ...] = (
        "name",
        "deviceName",
        "model",
        "hostname",
        "manufacturer",
        "product",
        "brand",
    )
    name_fields: tuple[str, ...] = ("name", "deviceName")
    fallback_name_fields: tuple[str, ...] = ("hostname", "model")


class ControlConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    timeout: float = Field(default=3.0, gt=0)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scanning: ScanningConfig = Field(default_factory=ScanningConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    control: ControlConfig = Field(default_factory=ControlConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def data_dir_from_settings(settings: Settings) -> Path:
    return expand_path(settings.database.path)


def _toml_value(value: object) -> str:
    # JSON strings, numbers and string arrays are valid TOML literals.
    if isinstance(value, tuple):
        value = list(value)
    return json.dumps(value)


def _render_section(name: str, model: BaseModel) -> list[str]:
    lines = [f"[{name}]"]
    for key, value in model.model_dump().items():
        lines.append(f"{key} = {_toml_value(value)}")
    lines.append("")
    return lines


def render_settings_toml(settings: Settings) -> str:
    lines = ["# rvscan configuration", ""]
    lines += _render_section("database", settings.database)
    lines += _render_section("scanning", settings.scanning)
    lines += _render_section("matching", settings.matching)
    lines += _render_section("control", settings.control)
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
