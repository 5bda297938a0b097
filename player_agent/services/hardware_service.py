"""
Hardware Profile Service.

Turns raw telemetry readings into a typed HardwareProfile with a coarse
HardwareTier. Classification is total: missing or unparseable readings fall
back to conservative defaults and a failed probe yields FALLBACK_PROFILE.
"""

import re
from typing import Any, Mapping, Optional, Tuple

from player_agent.config.constants import (
    AMD_TOKENS,
    DEFAULT_CLOCK_MHZ,
    DEFAULT_CORES,
    DEFAULT_OS_MAJOR,
    DEFAULT_RAM_GB,
    DEFAULT_REFRESH_HZ,
    DEFAULT_THREADS,
    DEFAULT_VRAM_MB,
    HIGH_END_CORES,
    HIGH_END_RAM_GB,
    HIGH_END_VRAM_MB,
    INTEL_TOKENS,
    LOW_END_CORES,
    LOW_END_RAM_GB,
    LOW_END_VRAM_MB,
    NVIDIA_TOKENS,
)
from player_agent.schemas.hardware import FALLBACK_PROFILE, HardwareProfile, HardwareTier
from player_agent.utils.logger import log

TRUE_STRINGS = ("true", "yes", "on", "1", "enabled")


# =============================================================================
# Coercion helpers
# =============================================================================

def _as_int(value: Any, default: int, minimum: int = 0) -> int:
    """Parse ints, floats and numeric strings ("8", "8.0", " 16 ")."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default
    return result if result >= minimum else default


def _as_float(value: Any, default: float, minimum: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    if result != result or result < minimum:  # NaN
        return default
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return False


def _as_name(value: Any) -> str:
    if value is None:
        return "Unknown"
    name = str(value).strip()
    return name or "Unknown"


def _matches(name: str, tokens: Tuple[str, ...], whole_word: bool = True) -> bool:
    """Case-insensitive token match. With whole_word a token must not sit inside a longer word."""
    upper = name.upper()
    if not whole_word:
        return any(t in upper for t in tokens)
    return any(re.search(rf"(?<![A-Z]){re.escape(t)}(?![A-Z])", upper) for t in tokens)


# =============================================================================
# Classification
# =============================================================================

def detect_vendors(gpu_name: str, cpu_name: str = "") -> Tuple[bool, bool, bool]:
    """
    Vendor flags (is_nvidia, is_amd, is_intel) from the GPU name.

    When the GPU name matches no vendor (integrated graphics often reports a
    generic adapter name) the CPU name decides between AMD and Intel.
    """
    is_nvidia = _matches(gpu_name, NVIDIA_TOKENS, whole_word=False)
    is_amd = _matches(gpu_name, AMD_TOKENS)
    is_intel = _matches(gpu_name, INTEL_TOKENS)

    if not (is_nvidia or is_amd or is_intel) and cpu_name:
        is_amd = _matches(cpu_name, ("AMD", "RYZEN"))
        is_intel = not is_amd and _matches(cpu_name, ("INTEL", "CORE"))

    return is_nvidia, is_amd, is_intel


def compute_tier(vram_mb: int, cpu_cores: int, ram_gb: float) -> HardwareTier:
    if vram_mb < LOW_END_VRAM_MB or cpu_cores < LOW_END_CORES or ram_gb < LOW_END_RAM_GB:
        return HardwareTier.LOW_END
    if vram_mb >= HIGH_END_VRAM_MB and cpu_cores >= HIGH_END_CORES and ram_gb >= HIGH_END_RAM_GB:
        return HardwareTier.HIGH_END
    return HardwareTier.MID_RANGE


def classify(raw: Optional[Mapping[str, Any]], probe_failed: bool = False) -> HardwareProfile:
    """
    Build a HardwareProfile from raw telemetry.

    Args:
        raw: Telemetry readings keyed by HardwareProfile field name. Any key
            may be missing, None or a numeric string.
        probe_failed: The caller could not probe at all; FALLBACK_PROFILE is
            returned without looking at raw.

    Never raises.
    """
    if probe_failed or raw is None:
        return FALLBACK_PROFILE
    if not isinstance(raw, Mapping):
        log.warning(f"Telemetry is not a mapping ({type(raw).__name__}); using fallback profile")
        return FALLBACK_PROFILE

    cpu_name = _as_name(raw.get("cpu_name"))
    gpu_name = _as_name(raw.get("gpu_name"))

    cpu_cores = _as_int(raw.get("cpu_cores"), DEFAULT_CORES, minimum=1)
    cpu_threads = _as_int(raw.get("cpu_threads"), DEFAULT_THREADS, minimum=1)
    vram_mb = _as_int(raw.get("vram_mb"), DEFAULT_VRAM_MB)
    ram_gb = _as_float(raw.get("ram_gb"), DEFAULT_RAM_GB)

    is_nvidia, is_amd, is_intel = detect_vendors(
        gpu_name if gpu_name != "Unknown" else "",
        cpu_name if cpu_name != "Unknown" else "",
    )

    return HardwareProfile(
        cpu_name=cpu_name,
        cpu_cores=cpu_cores,
        cpu_threads=cpu_threads,
        cpu_clock_mhz=_as_int(raw.get("cpu_clock_mhz"), DEFAULT_CLOCK_MHZ, minimum=1),
        gpu_name=gpu_name,
        is_nvidia=is_nvidia,
        is_amd=is_amd,
        is_intel=is_intel,
        vram_mb=vram_mb,
        ram_gb=ram_gb,
        refresh_rate_hz=_as_int(raw.get("refresh_rate_hz"), DEFAULT_REFRESH_HZ, minimum=1),
        hardware_scheduling_available=_as_bool(raw.get("hardware_scheduling_available")),
        resizable_bar_available=_as_bool(raw.get("resizable_bar_available")),
        os_major=_as_int(raw.get("os_major"), DEFAULT_OS_MAJOR, minimum=1),
        tier=compute_tier(vram_mb, cpu_cores, ram_gb),
        is_fallback=False,
    )


# =============================================================================
# Cached service
# =============================================================================

class HardwareProfileService:
    """
    Probes once per process and caches the classified profile.

    Usage:
        service = HardwareProfileService(provider)
        profile = service.get_profile()
        service.invalidate()   # user forced a rescan
    """

    def __init__(self, provider=None):
        if provider is None:
            from player_agent.services.collaborators import SystemTelemetryProvider
            provider = SystemTelemetryProvider()
        self.provider = provider
        self._profile: Optional[HardwareProfile] = None

    @property
    def is_cached(self) -> bool:
        return self._profile is not None

    def get_profile(self) -> HardwareProfile:
        if self._profile is None:
            self._profile = self._scan()
        return self._profile

    def invalidate(self) -> None:
        self._profile = None
        log.debug("Hardware profile cache invalidated")

    def _scan(self) -> HardwareProfile:
        try:
            raw = self.provider.probe()
        except Exception as e:
            log.warning(f"Telemetry probe failed, using fallback profile: {e}")
            return classify(None, probe_failed=True)

        profile = classify(raw)
        log.info(
            f"Hardware: {profile.cpu_name} ({profile.cpu_cores}C/{profile.cpu_threads}T), "
            f"{profile.gpu_name} {profile.vram_mb} MB, {profile.ram_gb:.1f} GB RAM, "
            f"{profile.refresh_rate_hz} Hz -> {profile.tier.value}"
        )
        return profile
