"""Bounded place search with transport retries and progressive radius expansion."""

import threading
from typing import Optional

from .config import ExplorerConfig
from .errors import SearchCancelled, TransientProviderError
from .geo import retry_with_backoff, sleep_or_cancel
from .logger import Logger, quiet_logger
from .models import PlaceInfo
from .ranker import PlaceRanker
from .sources import GeoSource


class GeoQueryClient:
    """Search a GeoSource around a point, widening the radius until something survives ranking.

    Two independent retry layers:
    - transport failures retry the same radius with exponential backoff
      (config.transport_retries, base delay doubling);
    - empty or fully-filtered results grow the radius by
      config.radius_growth_factor, capped at max_radius_m, for up to
      config.max_radius_retries attempts.
    """

    def __init__(self, source: GeoSource, ranker: PlaceRanker, config: ExplorerConfig,
                 logger: Optional[Logger] = None, stop_event: Optional[threading.Event] = None):
        self.source = source
        self.ranker = ranker
        self.config = config
        self.logger = logger or quiet_logger()
        self.stop_event = stop_event

    def initial_radius(self, radius_m: float, speed_kmh: float) -> float:
        """Scale the radius with speed and clamp to [min_radius_m, max_radius_m]"""
        multiplier = max(speed_kmh, 0.0) / self.config.speed_reference_baseline_kmh
        radius = radius_m * multiplier
        return min(max(radius, self.config.min_radius_m), self.config.max_radius_m)

    def search(self, lat: float, lon: float, radius_m: Optional[float] = None,
               speed_kmh: float = 50.0,
               stop_event: Optional[threading.Event] = None) -> list[PlaceInfo]:
        """Return ranked places near (lat, lon), or [] if nothing usable was found.

        An attempt that exhausts its transport retries is treated as having
        found nothing. Raises SearchCancelled if the stop event fires during
        a wait or while the provider query is in flight, before anything is
        ranked or recorded.
        """
        stop_event = stop_event or self.stop_event
        if radius_m is None:
            radius_m = self.config.default_query_radius_m
        radius = self.initial_radius(radius_m, speed_kmh)
        attempts = self.config.max_radius_retries

        for attempt in range(attempts):
            self.logger.log("Searching places", {
                "source": self.source.name, "lat": round(lat, 6), "lon": round(lon, 6),
                "radius_m": round(radius), "attempt": attempt + 1,
            })

            try:
                raw_places = retry_with_backoff(
                    lambda: self.source.query(lat, lon, radius),
                    retries=self.config.transport_retries,
                    initial_delay=self.config.transport_retry_base_delay_s,
                    retry_on=(TransientProviderError,),
                    description=f"{self.source.name} query",
                    stop_event=stop_event,
                    logger=self.logger,
                )
            except TransientProviderError:
                # Abandoned attempt counts as an empty one
                raw_places = []

            # Ranking records history; an abandoned cycle must not
            if stop_event is not None and stop_event.is_set():
                raise SearchCancelled("cancelled after provider query")

            if raw_places:
                places = self.ranker.process(raw_places, lat, lon)
                if places:
                    return places

            self.logger.log("No usable places", {
                "raw": len(raw_places), "radius_m": round(radius), "attempt": attempt + 1
            })
            radius = min(radius * self.config.radius_growth_factor, self.config.max_radius_m)
            if attempt < attempts - 1:
                sleep_or_cancel(self.config.radius_retry_delay_s, stop_event)

        return []
