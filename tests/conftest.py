"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable trail builders, a manual
finalize scheduler and a fake clock so capture tests stay deterministic.
"""
from __future__ import annotations

import math
import os
import sys
from typing import Callable, Iterable, List, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from territory_capture.models import GeoPoint, GpsFix


ORIGIN = (21.1458, 79.0882)
METERS_PER_DEGREE_LAT = 110_540.0
METERS_PER_DEGREE_LON = 111_320.0

# Raw corners and thirds of a 42 m square walked counter-clockwise from the
# south-west corner; the last fix lands 3 m north of the start.
SQUARE_42M: List[Tuple[float, float]] = [
    (0, 0), (14, 0), (28, 0), (42, 0),
    (42, 14), (42, 28), (42, 42),
    (28, 42), (14, 42), (0, 42),
    (0, 28), (0, 14), (0, 3),
]

# A 40 m square in 12 fixes after the start; the last fix is 5 m from it.
SQUARE_40M: List[Tuple[float, float]] = [
    (0, 0), (13, 0), (27, 0), (40, 0),
    (40, 13), (40, 27), (40, 40),
    (27, 40), (13, 40), (0, 40),
    (0, 27), (0, 13), (0, 5),
]

# Bowtie: diagonal up, down the east side, diagonal back, down the west side.
FIGURE_EIGHT: List[Tuple[float, float]] = [
    (0, 0), (15, 15), (30, 30), (45, 45),
    (45, 30), (45, 15), (45, 0),
    (30, 15), (15, 30), (0, 45),
    (0, 30), (0, 16), (0, 4),
]


# --- Factory helpers -------------------------------------------------
def offset_point(x_m: float, y_m: float, origin: Tuple[float, float] = ORIGIN) -> GeoPoint:
    """Return the point ``x_m`` east and ``y_m`` north of ``origin``."""

    lat0, lng0 = origin
    latitude = lat0 + y_m / METERS_PER_DEGREE_LAT
    longitude = lng0 + x_m / (METERS_PER_DEGREE_LON * math.cos(math.radians(lat0)))
    return GeoPoint(latitude, longitude)


def make_fix(
    x_m: float,
    y_m: float,
    *,
    index: int = 0,
    accuracy: float | None = 5.0,
    speed: float | None = 2.8,
    interval_ms: int = 5_000,
    start_ms: int = 1_700_000_000_000,
    origin: Tuple[float, float] = ORIGIN,
) -> GpsFix:
    point = offset_point(x_m, y_m, origin)
    return GpsFix(
        latitude=point.latitude,
        longitude=point.longitude,
        accuracy=accuracy,
        timestamp=start_ms + index * interval_ms,
        speed=speed,
    )


def make_trail(
    offsets: Iterable[Tuple[float, float]],
    *,
    shift: Tuple[float, float] = (0.0, 0.0),
    **kwargs,
) -> List[GpsFix]:
    dx, dy = shift
    return [
        make_fix(x + dx, y + dy, index=i, **kwargs)
        for i, (x, y) in enumerate(offsets)
    ]


def ring(offsets: Sequence[Tuple[float, float]]) -> List[GeoPoint]:
    return [offset_point(x, y) for x, y in offsets]


class ManualTask:
    def __init__(self, delay_s: float, callback: Callable[[], None]) -> None:
        self.delay_s = delay_s
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Finalize scheduler whose tasks only run when the test fires them."""

    def __init__(self) -> None:
        self.tasks: List[ManualTask] = []

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(delay_s, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> List[ManualTask]:
        return [task for task in self.tasks if not task.cancelled]

    def fire_all(self) -> int:
        fired = 0
        for task in list(self.tasks):
            if not task.cancelled:
                task.callback()
                fired += 1
        self.tasks.clear()
        return fired


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms

    def __call__(self) -> int:
        return self.now_ms


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def square_trail() -> List[GpsFix]:
    return make_trail(SQUARE_42M)


@pytest.fixture
def figure_eight_trail() -> List[GpsFix]:
    return make_trail(FIGURE_EIGHT, speed=5.0, interval_ms=3_000)
