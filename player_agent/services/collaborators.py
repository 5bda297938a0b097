"""
Interfaces of the host-side collaborators the core talks to, plus the
reference telemetry probe.

The core never mutates the OS itself. A host supplies a HostMutationService
to apply selections and a SystemStateChecker to report which settings are
already in effect.
"""

import platform
import shutil
import subprocess
from functools import lru_cache
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

import psutil

from player_agent.schemas.setting import SettingValue
from player_agent.schemas.system_state import ApplyReport, SystemState
from player_agent.utils.logger import log

StateReading = Union[bool, None, SystemState]


@runtime_checkable
class TelemetryProvider(Protocol):
    def probe(self) -> Mapping[str, Any]:
        """Raw readings keyed by HardwareProfile field name."""
        ...


@runtime_checkable
class SystemStateChecker(Protocol):
    def check(self, ids: Iterable[str]) -> Mapping[str, StateReading]:
        """Whether each setting is already in effect. None means unknown."""
        ...


@runtime_checkable
class HostMutationService(Protocol):
    def apply(self, selection: Mapping[str, SettingValue], scope: Optional[str] = None) -> ApplyReport:
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class UnknownStateChecker:
    """Checker for hosts that cannot inspect the system; every id is UNKNOWN."""

    def check(self, ids: Iterable[str]) -> Dict[str, StateReading]:
        return {setting_id: None for setting_id in ids}


class SystemTelemetryProvider:
    """
    Probes the local machine with psutil and nvidia-smi.

    Readings that cannot be taken are left out; the classifier fills them
    with defaults.
    """

    def probe(self) -> Dict[str, Any]:
        raw: Dict[str, Any] = {
            "cpu_name": self.get_cpu_name(),
            "cpu_cores": psutil.cpu_count(logical=False),
            "cpu_threads": psutil.cpu_count(logical=True),
            "ram_gb": psutil.virtual_memory().total / (1024 ** 3),
            "os_major": self.get_os_major(),
        }

        try:
            freq = psutil.cpu_freq()
            if freq:
                raw["cpu_clock_mhz"] = freq.max or freq.current
        except (OSError, NotImplementedError, AttributeError) as e:
            log.debug(f"CPU frequency unavailable: {e}")

        gpu_name, vram_mb = self.get_gpu_info()
        if gpu_name:
            raw["gpu_name"] = gpu_name
        if vram_mb:
            raw["vram_mb"] = vram_mb
        return raw

    @staticmethod
    def get_cpu_name() -> str:
        return platform.processor() or platform.machine()

    @staticmethod
    def get_os_major() -> Optional[int]:
        if platform.system() != "Windows":
            return None
        try:
            build = int(platform.version().split(".")[-1])
        except ValueError:
            return None
        # Windows 11 still reports release "10"; builds from 22000 on are 11
        return 11 if build >= 22000 else 10

    @staticmethod
    @lru_cache(maxsize=1)
    def get_gpu_info() -> Tuple[str, int]:
        """
        Detects GPU name and VRAM (MB) through nvidia-smi. Cached result.
        Returns ("", 0) when no NVIDIA driver is present.
        """
        if not shutil.which("nvidia-smi"):
            return "", 0
        try:
            output = subprocess.check_output(
                ["nvidia-smi", "--query-gpu=name,memory.total", "--format=csv,noheader,nounits"],
                creationflags=subprocess.CREATE_NO_WINDOW if platform.system() == "Windows" else 0,
                timeout=10,
            ).decode()
            name, mem = output.strip().splitlines()[0].split(",")
            return name.strip(), int(float(mem))
        except (OSError, subprocess.SubprocessError, ValueError, IndexError) as e:
            log.warning(f"NVIDIA detection failed: {e}")
            return "", 0
