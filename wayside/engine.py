"""Movement-driven content triggering."""

import threading
from dataclasses import dataclass, field
from typing import Optional

from .config import ExplorerConfig
from .errors import ProviderError, SearchCancelled, SummarizerError
from .geo import haversine_distance, lookahead_position, relative_direction
from .logger import Logger, quiet_logger
from .models import ContentResponse, Location, PlaceInfo
from .quality import SummaryQualityFilter
from .search import GeoQueryClient
from .summarizer import Summarizer

# Fixes closer than this (degrees, both axes) to the previous one are duplicates
SAME_FIX_EPSILON = 0.000001

IDLE = "idle"
TRACKING = "tracking"
GENERATING = "generating"


def sentence_budget(total_places: int, index: int, importance: float,
                    default_max: int, min_sentences: int, threshold: float) -> int:
    """How many sentences a place deserves.

    Significant places among few results, or the top-ranked significant
    place, get the full budget. Insignificant ones in those positions lose
    two sentences; every other place loses one sentence per rank position.
    Never below min_sentences, never above default_max.
    """
    if total_places <= 2 or index == 0:
        budget = default_max if importance >= threshold else max(min_sentences, default_max - 2)
    else:
        budget = max(min_sentences, default_max - index)
    return min(budget, default_max)


@dataclass
class TriggerState:
    """Mutable state owned by the engine; only touched under its lock"""
    last_location: Optional[Location] = None
    last_content_location: Optional[Location] = None
    is_generating: bool = False
    destination: Optional[Location] = None
    destination_name: Optional[str] = None
    destination_summarized: bool = False
    heading: float = 0.0
    speed_kmh: float = 0.0
    latest_content: list[str] = field(default_factory=list)
    has_new_content: bool = False
    location_count: int = 0


class ContentTriggerEngine:
    """Decides from a stream of fixes when to discover and narrate nearby places.

    handle_location() is cheap and never blocks on the network: when enough
    movement has happened it starts one discovery+narration cycle on a worker
    thread. Only one cycle runs at a time; fixes arriving meanwhile update
    the last known position and heading only. Results are pulled with
    get_content().
    """

    def __init__(self, search: GeoQueryClient, summarizer: Summarizer, config: ExplorerConfig,
                 quality: Optional[SummaryQualityFilter] = None, logger: Optional[Logger] = None):
        self.search = search
        self.summarizer = summarizer
        self.config = config
        self.quality = quality or SummaryQualityFilter()
        self.logger = logger or quiet_logger()
        self.state = TriggerState()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None

    @property
    def phase(self) -> str:
        with self._lock:
            if self.state.is_generating:
                return GENERATING
            if self.state.last_content_location is None:
                return IDLE
            return TRACKING

    def distance_threshold(self, speed_kmh: float) -> float:
        """Movement needed before new content: scales up with speed, never below the base"""
        base = self.config.base_distance_threshold_m
        multiplier = speed_kmh / self.config.speed_reference_baseline_kmh
        return max(base * multiplier, base)

    def handle_location(self, location: Location) -> bool:
        """Process one fix. Returns True if it started a content cycle."""
        with self._lock:
            if self._stop.is_set():
                return False
            state = self.state
            state.location_count += 1

            last = state.last_location
            if (last is not None and
                    abs(last.lat - location.lat) < SAME_FIX_EPSILON and
                    abs(last.lon - location.lon) < SAME_FIX_EPSILON):
                return False

            state.last_location = location
            state.heading = location.bearing or 0.0
            if location.speed_kmh is not None:
                state.speed_kmh = location.speed_kmh
            speed = state.speed_kmh

            if state.is_generating:
                self.logger.log("Content generation in progress, fix recorded only")
                return False

            if state.last_content_location is not None:
                anchor = state.last_content_location
                distance = haversine_distance(anchor.lat, anchor.lon, location.lat, location.lon)
                threshold = self.distance_threshold(speed)
                info = {
                    "distance_m": round(distance, 1),
                    "threshold_m": round(threshold, 1),
                    "speed_kmh": round(speed, 1),
                }
                if distance < threshold:
                    self.logger.log("Distance threshold not met", info)
                    return False
                self.logger.log("Distance threshold met", info)
            else:
                self.logger.log("First location fix, generating content immediately")

            state.is_generating = True
            heading = state.heading
            worker = threading.Thread(
                target=self._run_cycle,
                args=(location, speed, heading),
                name="wayside-content-cycle",
                daemon=True,
            )
            self._worker = worker
        worker.start()
        return True

    def set_destination(self, location: Location, name: Optional[str] = None):
        with self._lock:
            self.state.destination = location
            self.state.destination_name = name
            self.state.destination_summarized = False
        self.logger.log("Destination set", {"lat": location.lat, "lon": location.lon, "name": name})

    def reset_location_state(self):
        """Forget the last fixes so the next one is handled as a first fix"""
        with self._lock:
            self.state.last_location = None
            self.state.last_content_location = None
        self.logger.log("Location state reset")

    def get_content(self) -> ContentResponse:
        """Return new summaries once; later calls return status none until the next cycle"""
        with self._lock:
            state = self.state
            if state.is_generating:
                return ContentResponse(status=ContentResponse.NONE)
            if state.has_new_content and state.latest_content:
                state.has_new_content = False
                return ContentResponse(status=ContentResponse.READY,
                                       summaries=list(state.latest_content))
            return ContentResponse(status=ContentResponse.NONE)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the in-flight cycle (if any) finishes. Returns False on timeout."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def shutdown(self, timeout: Optional[float] = 10.0):
        """Cancel any in-flight cycle and stop accepting fixes"""
        self._stop.set()
        finished = self.wait_idle(timeout)
        with self._lock:
            self.state.is_generating = False
        self.logger.log("Engine shut down", {"cycle_finished": finished})

    def _run_cycle(self, location: Location, speed_kmh: float, heading: float):
        summaries: list[str] = []
        self.logger.log("Content cycle started", {
            "lat": location.lat, "lon": location.lon,
            "speed_kmh": round(speed_kmh, 1), "heading": round(heading, 1),
        })
        try:
            summaries.extend(self._destination_summary())
            summaries.extend(self._place_summaries(location, speed_kmh, heading))
        except SearchCancelled:
            self.logger.log("Content cycle cancelled")
        except ProviderError as e:
            self.logger.log("Place search failed", {"error": str(e)})
        finally:
            with self._lock:
                self.state.latest_content = summaries
                self.state.has_new_content = bool(summaries)
                self.state.last_content_location = location
                self.state.is_generating = False
            self.logger.log("Content cycle finished", {
                "lat": location.lat, "lon": location.lon, "summaries": len(summaries)
            })

    def _destination_summary(self) -> list[str]:
        """Narrate the destination once per destination, whatever the outcome"""
        with self._lock:
            destination = self.state.destination
            name = self.state.destination_name
            if destination is None or self.state.destination_summarized:
                return []

        place = PlaceInfo(
            name=name or "Destination",
            lat=destination.lat,
            lon=destination.lon,
            place_type="destination",
            category="unknown",
            importance=1.0,
        )
        accepted = self._summarize(place, self.config.destination_max_sentences, None)

        with self._lock:
            if self.state.destination is destination:
                self.state.destination_summarized = True
        return [accepted] if accepted else []

    def _place_summaries(self, location: Location, speed_kmh: float, heading: float) -> list[str]:
        search_lat, search_lon = lookahead_position(
            location.lat, location.lon, heading, speed_kmh, self.config.lookahead_time_s
        )
        places = self.search.search(
            search_lat, search_lon,
            radius_m=self.config.default_query_radius_m,
            speed_kmh=speed_kmh,
            stop_event=self._stop,
        )
        if not places:
            self.logger.log("No places of interest found")
            return []

        self.logger.log("Found places, generating summaries", {"count": len(places)})
        summaries = []
        for index, place in enumerate(places):
            if self._stop.is_set():
                raise SearchCancelled("shutdown during summarization")
            direction = None
            # distance_m is None when the provider gave no coordinates
            if heading and place.distance_m is not None:
                direction = relative_direction(heading, location.lat, location.lon,
                                               place.lat, place.lon)
            budget = sentence_budget(
                len(places), index, place.importance,
                self.config.default_max_sentences,
                self.config.min_sentences,
                self.config.significance_threshold,
            )
            accepted = self._summarize(place, budget, direction)
            if accepted:
                summaries.append(accepted)
        return summaries

    def _summarize(self, place: PlaceInfo, max_sentences: int,
                   direction: Optional[str]) -> Optional[str]:
        """One summarizer call; hard errors and low-information text yield None"""
        try:
            text = self.summarizer.summarize(place, max_sentences, direction)
        except SummarizerError as e:
            self.logger.log("Summary failed", {"name": place.name, "error": str(e)})
            return None
        if not text:
            return None
        reason = self.quality.is_low_information(text)
        if reason:
            self.logger.log("Low information summary discarded", {
                "name": place.name, "reason": reason
            })
            return None
        return text
