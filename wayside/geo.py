"""Geographic utility functions."""

from __future__ import annotations

import math
import threading
import time
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from .errors import SearchCancelled

if TYPE_CHECKING:
    from .logger import Logger

EARTH_RADIUS_M = 6371000

T = TypeVar("T")


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def bearing_between(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate bearing from point 1 to point 2 in degrees (0-360, 0=North)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def bearing_to_compass(bearing: float) -> str:
    """Convert bearing to compass direction"""
    directions = ["north", "northeast", "east", "southeast",
                  "south", "southwest", "west", "northwest"]
    index = round(bearing / 45) % 8
    return directions[index]


def signed_angle_difference(from_bearing: float, to_bearing: float) -> float:
    """Signed difference to_bearing - from_bearing, normalized to (-180, 180]"""
    diff = (to_bearing - from_bearing) % 360
    if diff > 180:
        diff -= 360
    return diff


def relative_direction(heading: float, lat: float, lon: float,
                       place_lat: float, place_lon: float) -> str:
    """Describe where a place lies relative to the direction of travel.

    Within 22.5 degrees of the heading is "directly ahead", 157.5 degrees
    or more is "behind you", anything else is to the right or left.
    """
    bearing = bearing_between(lat, lon, place_lat, place_lon)
    diff = signed_angle_difference(heading, bearing)

    if abs(diff) <= 22.5:
        return "directly ahead"
    elif abs(diff) >= 157.5:
        return "behind you"
    elif diff > 0:
        return "to your right"
    else:
        return "to your left"


def project_position(lat: float, lon: float, heading: float,
                     distance_m: float) -> tuple[float, float]:
    """Move distance_m meters from (lat, lon) along a great circle with the given initial heading."""
    angular = distance_m / EARTH_RADIUS_M
    phi1 = math.radians(lat)
    theta = math.radians(heading)

    phi2 = math.asin(math.sin(phi1) * math.cos(angular) +
                     math.cos(phi1) * math.sin(angular) * math.cos(theta))
    delta_lambda = math.atan2(math.sin(theta) * math.sin(angular) * math.cos(phi1),
                              math.cos(angular) - math.sin(phi1) * math.sin(phi2))

    new_lon = (lon + math.degrees(delta_lambda) + 540) % 360 - 180
    return math.degrees(phi2), new_lon


def lookahead_position(lat: float, lon: float, heading: float, speed_kmh: float,
                       seconds: float) -> tuple[float, float]:
    """Estimate where the observer will be after `seconds` at the current speed and heading.

    An unknown heading (0) leaves the position unchanged.
    """
    if not heading or speed_kmh <= 0 or seconds <= 0:
        return lat, lon
    distance_m = (speed_kmh / 3.6) * seconds
    return project_position(lat, lon, heading, distance_m)


def sleep_or_cancel(delay: float, stop_event: Optional[threading.Event] = None):
    """Sleep for delay seconds, raising SearchCancelled if stop_event is set meanwhile."""
    if delay <= 0:
        if stop_event is not None and stop_event.is_set():
            raise SearchCancelled("cancelled")
        return
    if stop_event is None:
        time.sleep(delay)
        return
    if stop_event.wait(delay):
        raise SearchCancelled(f"cancelled during {delay:.1f}s wait")


def retry_with_backoff(func: Callable[[], T], retries: int = 2, initial_delay: float = 1.0,
                       max_delay: float = 30.0, retry_on: tuple = (Exception,),
                       description: str = "operation",
                       stop_event: Optional[threading.Event] = None,
                       logger: Optional["Logger"] = None) -> T:
    """Retry a function with exponential backoff.

    Args:
        func: Callable that raises one of retry_on on failure
        retries: Number of retries after the first attempt
        initial_delay: Delay before the first retry (seconds), doubled on each retry
        max_delay: Maximum delay between retries (seconds)
        retry_on: Exception types that trigger a retry; anything else propagates
        description: Description for logging
        stop_event: Event that aborts the wait with SearchCancelled when set
        logger: Optional logger for retry messages

    Returns:
        The result of func() on success. The last error is re-raised once
        retries are exhausted.
    """
    delay = initial_delay
    attempt = 1

    while True:
        try:
            return func()
        except retry_on as e:
            if attempt > retries:
                if logger:
                    logger.log(f"Failed to complete {description}", {
                        "attempts": attempt, "error": str(e)
                    })
                raise
            sleep_time = min(delay, max_delay)
            if logger:
                logger.log(f"Retrying {description}", {
                    "attempt": attempt, "delay_s": round(sleep_time, 2), "error": str(e)
                })
            sleep_or_cancel(sleep_time, stop_event)

        delay = min(delay * 2, max_delay)
        attempt += 1
