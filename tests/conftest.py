from __future__ import annotations

import pytest

from rvscan.config import ScanningConfig, Settings, get_settings


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("RVSCAN_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def scanning() -> ScanningConfig:
    return ScanningConfig(
        prefixes=("192.168.1",),
        host_start=1,
        host_end=30,
        concurrency=10,
        probe_timeout=0.5,
        verify_timeout=0.5,
        retry_delay=0,
    )


@pytest.fixture
def settings(tmp_path, scanning: ScanningConfig) -> Settings:
    return Settings(database={"path": str(tmp_path / "data")}, scanning=scanning)

