"""Location fixes: live GPS, a fixed position, and recording/playback."""

import json
import subprocess
import time
from datetime import datetime
from typing import Optional

from .models import Location

TERMUX_LOCATION = ["termux-location", "-p", "gps", "-r", "once"]


def parse_termux_fix(output: str) -> Optional[Location]:
    """Build a Location from termux-location JSON; None if the output is unusable"""
    if not output or not output.strip():
        return None
    try:
        data = json.loads(output)
        return Location(
            lat=float(data["latitude"]),
            lon=float(data["longitude"]),
            accuracy=data.get("accuracy"),
            timestamp=time.time(),
            speed=data.get("speed"),
            bearing=data.get("bearing"),
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        return None


class GPS:
    """Live fixes from the Termux API, including speed (m/s) and bearing"""

    def __init__(self):
        self.last_location: Optional[Location] = None
        self.consecutive_failures = 0

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        try:
            result = subprocess.run(TERMUX_LOCATION, capture_output=True,
                                    text=True, timeout=timeout)
        except (subprocess.TimeoutExpired, FileNotFoundError):
            result = None

        location = None
        if result is not None and result.returncode == 0:
            location = parse_termux_fix(result.stdout)

        if location is None:
            self.consecutive_failures += 1
            return None
        self.last_location = location
        self.consecutive_failures = 0
        return location

    def get_status(self) -> str:
        if self.consecutive_failures:
            return f"GPS: {self.consecutive_failures} consecutive failures"
        last = self.last_location
        if last and last.accuracy:
            return f"GPS OK, accuracy {last.accuracy:.0f}m"
        return "GPS OK"


class FixedLocation:
    """Always reports the same position (testing without GPS)"""

    def __init__(self, lat: float, lon: float, speed_kmh: float = 0.0,
                 bearing: Optional[float] = None):
        self.location = Location(lat=lat, lon=lon, accuracy=0, speed=speed_kmh / 3.6,
                                 bearing=bearing)

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        self.location.timestamp = time.time()
        return self.location

    def get_status(self) -> str:
        return f"Fixed location {self.location.lat:.5f}, {self.location.lon:.5f}"


class GPSRecorder:
    """Wraps any fix source and keeps every poll, failed ones included, for playback"""

    def __init__(self, source, record_path: str):
        self.source = source
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        location = self.source.get_location(timeout)
        now = time.time()
        self.trace.append({
            "elapsed": now - self.start_time,
            "timestamp": now,
            "location": location.to_dict() if location else None,
            "status": self.get_status(),
        })
        return location

    def get_status(self) -> str:
        return self.source.get_status()

    def save(self):
        """Write the trace as JSON readable by GPSPlayback and visualize_trace.py"""
        with open(self.record_path, "w") as f:
            json.dump({"recorded_at": datetime.now().isoformat(), "trace": self.trace}, f, indent=2)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")


class GPSPlayback:
    """Plays back GPS trace from file"""

    def __init__(self, playback_path: str, speed: float = 1.0, poll_interval: float = 5.0):
        self.playback_path = playback_path
        self.speed = speed
        self.poll_interval = poll_interval
        self.trace: list[dict] = []
        self.index = 0
        self.last_location: Optional[Location] = None
        self.consecutive_failures = 0

        with open(playback_path) as f:
            data = json.load(f)
            self.trace = data["trace"]
        print(f"Loaded GPS trace from {playback_path} ({len(self.trace)} entries)")

    def get_location(self, timeout: int = 30) -> Optional[Location]:
        """Get next location from trace sequentially"""
        if self.index >= len(self.trace):
            return None

        entry = self.trace[self.index]
        self.index += 1

        if entry["location"]:
            location = Location.from_dict(entry["location"])
            self.last_location = location
            self.consecutive_failures = 0
            return location
        else:
            self.consecutive_failures += 1
            return None

    def get_poll_interval(self) -> float:
        """Get the interval to wait between polls based on trace timing and speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return self.poll_interval / self.speed

        prev_elapsed = self.trace[self.index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[self.index].get("elapsed", 0)
        delta = curr_elapsed - prev_elapsed

        # Apply speed multiplier and clamp to reasonable range
        interval = delta / self.speed
        return max(0.1, min(interval, 5.0))

    def is_finished(self) -> bool:
        """Check if playback is complete"""
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        else:
            return f"Playback: {self.consecutive_failures} failures ({progress})"
