from dataclasses import dataclass
from enum import Enum


class HardwareTier(Enum):
    """Coarse capability bucket derived from VRAM, cores and RAM."""
    LOW_END = "low_end"
    MID_RANGE = "mid_range"
    HIGH_END = "high_end"


@dataclass(frozen=True)
class HardwareProfile:
    """Output of HardwareProfileService / classify()."""

    # CPU
    cpu_name: str = "Unknown"
    cpu_cores: int = 4
    cpu_threads: int = 8
    cpu_clock_mhz: int = 3000

    # GPU
    gpu_name: str = "Unknown"
    is_nvidia: bool = False
    is_amd: bool = False
    is_intel: bool = False
    vram_mb: int = 4096

    # Memory / Display
    ram_gb: float = 16.0
    refresh_rate_hz: int = 60

    # OS capabilities
    hardware_scheduling_available: bool = False
    resizable_bar_available: bool = False
    os_major: int = 10

    # Derived
    tier: HardwareTier = HardwareTier.MID_RANGE
    is_fallback: bool = False

    @property
    def has_discrete_gpu(self) -> bool:
        return self.is_nvidia or self.is_amd

    def to_dict(self):
        return {
            "cpu_name": self.cpu_name,
            "cpu_cores": self.cpu_cores,
            "cpu_threads": self.cpu_threads,
            "cpu_clock_mhz": self.cpu_clock_mhz,
            "gpu_name": self.gpu_name,
            "is_nvidia": self.is_nvidia,
            "is_amd": self.is_amd,
            "is_intel": self.is_intel,
            "vram_mb": self.vram_mb,
            "ram_gb": self.ram_gb,
            "refresh_rate_hz": self.refresh_rate_hz,
            "hardware_scheduling_available": self.hardware_scheduling_available,
            "resizable_bar_available": self.resizable_bar_available,
            "os_major": self.os_major,
            "tier": self.tier.value,
            "is_fallback": self.is_fallback,
        }


# Substituted when the telemetry probe fails entirely.
FALLBACK_PROFILE = HardwareProfile(
    cpu_name="Unknown",
    cpu_cores=4,
    cpu_threads=8,
    cpu_clock_mhz=3000,
    gpu_name="Unknown",
    vram_mb=4096,
    ram_gb=16.0,
    refresh_rate_hz=60,
    os_major=10,
    tier=HardwareTier.MID_RANGE,
    is_fallback=True,
)
