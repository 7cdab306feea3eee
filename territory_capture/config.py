"""Central configuration for the territory capture pipeline.

All values are constants imported by the rest of the package. Every tunable
can be overridden through an environment variable of the same name
(optionally via a local `.env`), which is handy when replaying recorded
fixes with different thresholds.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# Earth model / projection
# ---------------------------------------------------------------------------
# Mean Earth radius used by the Haversine distance.
EARTH_RADIUS_M = 6_371_000.0

# Metres per degree used by the local equirectangular projection. Only valid
# for path extents of a few kilometres.
METERS_PER_DEGREE_LON = 111_320.0
METERS_PER_DEGREE_LAT = 110_540.0

# Two ring endpoints closer than this are treated as the same vertex.
RING_CLOSURE_TOLERANCE_M = 1.0


# ---------------------------------------------------------------------------
# Capture defaults
# ---------------------------------------------------------------------------
# Fixes closer than this to the last trail point are dropped as jitter.
CAPTURE_MIN_POINT_DISTANCE_M = _env_float("CAPTURE_MIN_POINT_DISTANCE_M", 5.0)

# Fixes reporting a worse accuracy radius are rejected.
CAPTURE_GPS_ACCURACY_THRESHOLD_M = _env_float("CAPTURE_GPS_ACCURACY_THRESHOLD_M", 20.0)

# Trail points averaged by the weighted-window smoother.
CAPTURE_SMOOTHING_WINDOW = _env_int("CAPTURE_SMOOTHING_WINDOW", 3)

# Maximum deviation (metres) allowed when simplifying the closed ring.
CAPTURE_SIMPLIFICATION_TOLERANCE_M = _env_float(
    "CAPTURE_SIMPLIFICATION_TOLERANCE_M", 5.0
)

# Minimum travelled distance before loop closure is considered.
CAPTURE_MIN_LOOP_DISTANCE_M = _env_float("CAPTURE_MIN_LOOP_DISTANCE_M", 50.0)

# The trail closes once its end comes back within this distance of the start.
CAPTURE_LOOP_CLOSURE_THRESHOLD_M = _env_float("CAPTURE_LOOP_CLOSURE_THRESHOLD_M", 15.0)

# Accepted territory area bounds (square metres).
CAPTURE_MIN_AREA_SQ_M = _env_float("CAPTURE_MIN_AREA_SQ_M", 100.0)
CAPTURE_MAX_AREA_SQ_M = _env_float("CAPTURE_MAX_AREA_SQ_M", 500_000.0)

# Pause between loop detection and automatic finalization so the UI can show
# the "loop detected" state first.
CAPTURE_AUTO_FINALIZE_DELAY_S = _env_float("CAPTURE_AUTO_FINALIZE_DELAY_S", 0.5)

# Run accepted fixes through the Kalman filter before they enter the trail.
CAPTURE_KALMAN_PREFILTER = _env_bool("CAPTURE_KALMAN_PREFILTER", False)

# Owner recorded on captured territories.
CAPTURE_DEFAULT_USER_ID = os.getenv("CAPTURE_DEFAULT_USER_ID", "user-1")


# ---------------------------------------------------------------------------
# Signal conditioning
# ---------------------------------------------------------------------------
# Kalman process noise (Q) and measurement noise (R).
KALMAN_PROCESS_NOISE = _env_float("KALMAN_PROCESS_NOISE", 0.001)
KALMAN_MEASUREMENT_NOISE = _env_float("KALMAN_MEASUREMENT_NOISE", 3.0)

# Accuracy assumed when a provider omits it.
DEFAULT_FIX_ACCURACY_M = 10.0

# Samples retained by the adaptive smoother.
SMOOTHER_BUFFER_SIZE = 10

# (upper speed bound m/s, window size) bands; faster movement smooths less.
SMOOTHER_SPEED_BANDS = ((0.5, 5), (2.0, 3), (4.0, 2))
SMOOTHER_FAST_WINDOW = 1

# Implied speed ceiling (m/s) above which a fix is an outlier (54 km/h).
OUTLIER_MAX_SPEED_MPS = _env_float("OUTLIER_MAX_SPEED_MPS", 15.0)

# Minimum movement (metres) before an idle fix is processed.
GATE_IDLE_MIN_MOVEMENT_M = _env_float("GATE_IDLE_MIN_MOVEMENT_M", 3.0)

# Fixes worse than this are skipped even while capturing.
GATE_CAPTURE_MAX_ACCURACY_M = _env_float("GATE_CAPTURE_MAX_ACCURACY_M", 50.0)


# ---------------------------------------------------------------------------
# Duty-cycle advice
# ---------------------------------------------------------------------------
# Battery percentage under which idle/background tracking drops to low power.
LOW_BATTERY_THRESHOLD = _env_int("LOW_BATTERY_THRESHOLD", 20)

TRACKING_CAPTURE_INTERVAL_MS = 2000
TRACKING_CAPTURE_DISTANCE_M = 5.0
TRACKING_BALANCED_INTERVAL_MS = 5000
TRACKING_BALANCED_DISTANCE_M = 10.0
TRACKING_LOW_POWER_INTERVAL_MS = 10000
TRACKING_LOW_POWER_DISTANCE_M = 20.0


# ---------------------------------------------------------------------------
# Diagnostic map
# ---------------------------------------------------------------------------
MAP_ZOOM_START = _env_int("MAP_ZOOM_START", 17)
