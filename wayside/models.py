"""Data classes for Wayside."""

from dataclasses import dataclass, asdict, field, replace
from typing import Optional

# Tag keys that classify a place, in precedence order
CATEGORY_KEYS = ("tourism", "amenity", "leisure", "historic", "place")

DEFAULT_PLACE_RANK = 30


@dataclass
class Location:
    lat: float
    lon: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None
    speed: Optional[float] = None  # m/s
    bearing: Optional[float] = None  # degrees, 0=North

    @property
    def speed_kmh(self) -> Optional[float]:
        if self.speed is None:
            return None
        return self.speed * 3.6

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Location":
        return cls(**d)


@dataclass(frozen=True)
class Place:
    """A raw candidate returned by a geodata provider"""
    kind: Optional[str]  # "node", "way", "relation"
    osm_id: Optional[int]
    lat: Optional[float]
    lon: Optional[float]
    tags: dict[str, str] = field(default_factory=dict)
    importance: Optional[float] = None  # provider-supplied, if any
    place_rank: Optional[int] = None

    @property
    def name(self) -> Optional[str]:
        return self.tags.get("name")

    def with_tags(self, tags: dict[str, str]) -> "Place":
        return replace(self, tags=dict(tags))


@dataclass(frozen=True)
class RankedPlace:
    """A candidate annotated with distance and promise score"""
    place: Place
    distance_m: float
    promise_score: float


@dataclass
class PlaceInfo:
    """Public description of a place surfaced to callers"""
    name: str
    lat: float
    lon: float
    place_type: str
    category: str
    importance: float
    rank: int = DEFAULT_PLACE_RANK
    distance_m: Optional[float] = None
    tags: dict[str, str] = field(default_factory=dict)
    osm_id: Optional[int] = None
    osm_type: Optional[str] = None

    @classmethod
    def from_ranked(cls, ranked: RankedPlace) -> "PlaceInfo":
        place = ranked.place
        tags = place.tags
        category_key = next((k for k in CATEGORY_KEYS if k in tags), None)
        return cls(
            name=tags.get("name") or "Unnamed Place",
            lat=place.lat if place.lat is not None else 0.0,
            lon=place.lon if place.lon is not None else 0.0,
            place_type=category_key or "unknown",
            category=tags[category_key] if category_key else "unknown",
            importance=place.importance if place.importance is not None else ranked.promise_score,
            rank=place.place_rank if place.place_rank is not None else DEFAULT_PLACE_RANK,
            distance_m=ranked.distance_m if ranked.distance_m != float("inf") else None,
            tags=dict(tags),
            osm_id=place.osm_id,
            osm_type=place.kind,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ContentResponse:
    """Result of polling the trigger engine for narration"""
    status: str  # "none" or "ready"
    summaries: list[str] = field(default_factory=list)

    NONE = "none"
    READY = "ready"

    @property
    def ready(self) -> bool:
        return self.status == self.READY
