"""Wayside - Hands-free tour guide for places along the way."""

from .config import CONFIG, ExplorerConfig
from .errors import (
    WaysideError,
    ConfigError,
    ProviderError,
    TransientProviderError,
    SearchCancelled,
    SummarizerError,
)
from .models import Location, Place, RankedPlace, PlaceInfo, ContentResponse
from .logger import Logger
from .gps import GPS, FixedLocation, GPSRecorder, GPSPlayback
from .geo import (
    haversine_distance,
    bearing_between,
    bearing_to_compass,
    relative_direction,
    lookahead_position,
    retry_with_backoff,
)
from .history import HistoryTracker, place_key
from .ranker import PlaceRanker, promise_score
from .sources import GeoSource, OverpassSource, GeoapifySource
from .search import GeoQueryClient
from .quality import SummaryQualityFilter
from .summarizer import Summarizer, GeminiSummarizer, PlaceholderSummarizer
from .engine import ContentTriggerEngine
from .audio import Audio
from .app import TourGuide
from .__main__ import main

__all__ = [
    "CONFIG",
    "ExplorerConfig",
    "WaysideError",
    "ConfigError",
    "ProviderError",
    "TransientProviderError",
    "SearchCancelled",
    "SummarizerError",
    "Location",
    "Place",
    "RankedPlace",
    "PlaceInfo",
    "ContentResponse",
    "Logger",
    "GPS",
    "FixedLocation",
    "GPSRecorder",
    "GPSPlayback",
    "haversine_distance",
    "bearing_between",
    "bearing_to_compass",
    "relative_direction",
    "lookahead_position",
    "retry_with_backoff",
    "HistoryTracker",
    "place_key",
    "PlaceRanker",
    "promise_score",
    "GeoSource",
    "OverpassSource",
    "GeoapifySource",
    "GeoQueryClient",
    "SummaryQualityFilter",
    "Summarizer",
    "GeminiSummarizer",
    "PlaceholderSummarizer",
    "ContentTriggerEngine",
    "Audio",
    "TourGuide",
    "main",
]
