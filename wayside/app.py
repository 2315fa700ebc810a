"""Main Wayside application."""

import time
from typing import Optional

from .audio import Audio
from .config import ExplorerConfig
from .engine import ContentTriggerEngine
from .geo import bearing_between, bearing_to_compass
from .gps import GPS, GPSPlayback, GPSRecorder
from .history import HistoryTracker
from .logger import Logger
from .models import Location, PlaceInfo
from .ranker import PlaceRanker
from .search import GeoQueryClient
from .sources import make_source
from .summarizer import make_summarizer


class TourGuide:
    """Main application: polls fixes, feeds the trigger engine, speaks what comes back"""

    def __init__(self, config: ExplorerConfig, log_path: Optional[str] = None,
                 history_path: Optional[str] = None, speak: bool = True,
                 gps_source=None, summarizer=None, source=None):
        self.config = config
        self.logger = Logger(log_path)
        self.audio = Audio(enabled=speak)
        self.gps_source = gps_source or GPS()

        self.history = HistoryTracker(config.place_history_ttl_s, db_path=history_path)
        self.ranker = PlaceRanker(config, self.history, logger=self.logger)
        self.source = source or make_source(config, logger=self.logger)
        self.search = GeoQueryClient(self.source, self.ranker, config, logger=self.logger)
        self.summarizer = summarizer or make_summarizer(config, logger=self.logger)
        self.engine = ContentTriggerEngine(self.search, self.summarizer, config, logger=self.logger)

        self.current_location: Optional[Location] = None
        self.summaries_spoken = 0
        self.cycles = 0
        self.start_time = 0.0
        self.last_status_log = 0.0

    def set_gps_source(self, source):
        """Set GPS source (GPS, FixedLocation, GPSRecorder, or GPSPlayback)"""
        self.gps_source = source

    def set_destination(self, lat: float, lon: float, name: Optional[str] = None):
        self.engine.set_destination(Location(lat=lat, lon=lon), name)

    def get_state(self) -> dict:
        """Get current state as dict for logging"""
        state = {
            "phase": self.engine.phase,
            "fixes": self.engine.state.location_count,
            "cycles": self.cycles,
            "summaries_spoken": self.summaries_spoken,
            "remembered_places": len(self.history),
            "gps_status": self.gps_source.get_status() if hasattr(self.gps_source, "get_status") else "unknown",
        }
        if self.current_location:
            state["location"] = {
                "lat": self.current_location.lat,
                "lon": self.current_location.lon,
                "speed_kmh": self.current_location.speed_kmh,
                "bearing": self.current_location.bearing,
            }
        return state

    def preview(self, lat: float, lon: float, speed_kmh: float = 0.0) -> list[PlaceInfo]:
        """Run one search at a position and print what would be narrated"""
        places = self.search.search(lat, lon, speed_kmh=speed_kmh)
        print(f"\n{len(places)} places near {lat:.5f}, {lon:.5f}:")
        for i, place in enumerate(places, 1):
            compass = bearing_to_compass(bearing_between(lat, lon, place.lat, place.lon))
            distance = f"{place.distance_m:.0f}m {compass}" if place.distance_m is not None else compass
            print(f"  {i:2d}. {place.name} [{place.place_type}={place.category}] "
                  f"score {place.importance:.2f}, {distance}")
        return places

    def update(self) -> bool:
        """One poll: feed the latest fix to the engine and speak any new content"""
        now = time.time()
        if now - self.last_status_log >= 30:
            self.logger.log("STATE", self.get_state())
            self.last_status_log = now

        location = self.gps_source.get_location()
        if location:
            self.current_location = location
            if self.engine.handle_location(location):
                self.cycles += 1
        else:
            self.logger.log("GPS fix failed", {"status": self.gps_source.get_status() if hasattr(self.gps_source, "get_status") else "unknown"})

        response = self.engine.get_content()
        if response.ready:
            self.logger.log("New content", {"summaries": len(response.summaries)})
            self.audio.speak_all(response.summaries)
            self.summaries_spoken += len(response.summaries)
        return True

    def get_poll_interval(self) -> float:
        """Get poll interval, respecting playback speed if applicable"""
        if isinstance(self.gps_source, GPSPlayback):
            return self.gps_source.get_poll_interval()
        return self.config.gps_poll_interval_s

    def is_playback_finished(self) -> bool:
        if isinstance(self.gps_source, GPSPlayback):
            return self.gps_source.is_finished()
        return False

    def _drain(self):
        """Let the last cycle finish and speak its content"""
        self.engine.wait_idle()
        response = self.engine.get_content()
        if response.ready:
            self.audio.speak_all(response.summaries)
            self.summaries_spoken += len(response.summaries)

    def run(self):
        """Run until interrupted or playback ends"""
        print("\n=== Wayside ===")
        print(f"Provider: {self.source.name}")
        if isinstance(self.gps_source, GPSPlayback):
            print(f"Playback mode: {self.gps_source.speed}x speed")
        print("Press Ctrl+C to stop")
        print()

        self.start_time = time.time()
        self.logger.log("Starting tour", {"config": self.config.to_dict()})

        try:
            while self.update():
                if self.is_playback_finished():
                    self._drain()
                    print("\nPlayback finished")
                    self.logger.log("Playback finished")
                    break
                time.sleep(self.get_poll_interval())
        except KeyboardInterrupt:
            print("\nTour interrupted")
            self.logger.log("Tour interrupted by user")
        finally:
            self.engine.shutdown()

            if isinstance(self.gps_source, GPSRecorder):
                self.gps_source.save()

            summary = {
                "fixes": self.engine.state.location_count,
            "cycles": self.cycles,
                "summaries": self.summaries_spoken,
                "duration": time.time() - self.start_time,
            }
            self.logger.log("Tour summary", summary)

            print("\nTour summary:")
            print(f"  Content cycles: {summary['cycles']}")
            print(f"  Summaries spoken: {summary['summaries']}")
            print(f"  Duration: {summary['duration']/60:.1f} minutes")

            self.close()

    def close(self):
        self.history.close()
        self.logger.close()
