"""
Shared fixtures.

PLAYER_AGENT_HOME is pointed at a temporary directory before any
player_agent import so config and log files never land in the real home.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone

os.environ.setdefault("PLAYER_AGENT_HOME", tempfile.mkdtemp(prefix="player_agent_test_"))

import pytest

from player_agent.schemas.hardware import HardwareProfile, HardwareTier
from player_agent.services.database.kv_store import MemoryKeyValueStore
from player_agent.services.schema_store import SchemaStore
from player_agent.services.setting_catalog import get_setting_catalog


class FakeClock:
    """Deterministic clock; each call advances one second."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def catalog():
    return get_setting_catalog()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(kv, catalog, clock):
    return SchemaStore(kv, catalog=catalog, clock=clock)


@pytest.fixture
def nvidia_profile():
    return HardwareProfile(
        cpu_name="AMD Ryzen 7 5800X",
        cpu_cores=8,
        cpu_threads=16,
        gpu_name="NVIDIA GeForce RTX 3070",
        is_nvidia=True,
        vram_mb=8192,
        ram_gb=32.0,
        refresh_rate_hz=144,
        os_major=11,
        tier=HardwareTier.HIGH_END,
    )
