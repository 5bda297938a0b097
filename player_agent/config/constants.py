"""
Centralized constants for the Player Agent core.
"""

# --- Hardware Tier Thresholds ---
LOW_END_VRAM_MB = 4096        # Below this VRAM the machine is LowEnd
LOW_END_CORES = 4
LOW_END_RAM_GB = 8.0
HIGH_END_VRAM_MB = 8192       # At or above all three HighEnd thresholds
HIGH_END_CORES = 6
HIGH_END_RAM_GB = 16.0

# --- Telemetry defaults (used when a reading is missing) ---
DEFAULT_CORES = 4
DEFAULT_THREADS = 8
DEFAULT_CLOCK_MHZ = 3000
DEFAULT_VRAM_MB = 4096
DEFAULT_RAM_GB = 16.0
DEFAULT_REFRESH_HZ = 60
DEFAULT_OS_MAJOR = 10

# --- Vendor name tokens (case-insensitive; AMD and Intel tokens must not sit inside a longer word) ---
NVIDIA_TOKENS = ("NVIDIA", "GEFORCE", "RTX", "GTX", "QUADRO")
AMD_TOKENS = ("AMD", "RADEON", "RX")
INTEL_TOKENS = ("INTEL", "ARC", "IRIS", "UHD")

# --- Recommendation rules ---
FRAME_CAP_UNCAPPED_HZ = 240   # Displays at or above this run uncapped ("0")
FRAME_CAP_MAX = 999

# --- Impact Model ---
# ~250 FPS on a mid-range system at competitive 1080p low settings.
BASELINE_FPS = 250

# --- Schema layout ---
PRINCIPAL_BUCKET = "principal"
SECONDARY_PREFIX = "secondary:"
DEFAULT_SCHEMA_NAME = "Default"
SCHEMA_FORMAT_VERSION = 2

# Fixed category -> secondary bucket group
CATEGORY_BUCKETS = {
    "bios": "platform",
    "windows": "platform",
    "network": "network",
    "nvidia": "gpu",
    "services": "services",
    "autoexec": "console",
    "console": "console",
    "launch": "launch",
    "extras": "extras",
}
CUSTOM_BUCKET_GROUP = "extras"

# --- Key-value store keys ---
KV_SCHEMAS_KEY = "schemas"
KV_ACTIVE_KEY = "active_schema_id"
KV_LEGACY_PROFILES_KEY = "legacy_profiles"
LEGACY_VALUE_SUFFIX = "_v"    # Legacy text field paired with a value checkbox
