"""Configuration settings for Wayside."""

from dataclasses import dataclass, field, fields, asdict
from typing import Optional

from .errors import ConfigError

CONFIG = {
    # Content triggering
    "base_distance_threshold_m": 100,  # meters moved before new content is generated
    "speed_reference_baseline_kmh": 50.0,  # km/h - speed at which thresholds/radius are unscaled
    "lookahead_time_s": 20.0,  # seconds - how far ahead to project the query point
    "gps_poll_interval_s": 5,  # seconds
    # Place search
    "default_query_radius_m": 500,  # meters
    "min_radius_m": 200,  # meters - floor after speed scaling
    "max_radius_m": 5000,  # meters - cap for progressive expansion
    "max_radius_retries": 3,  # total attempts when nothing usable is found
    "radius_retry_delay_s": 1.0,  # seconds between expansion attempts
    "radius_growth_factor": 1.5,
    "transport_retries": 2,  # retries per attempt on network/HTTP failure
    "transport_retry_base_delay_s": 1.0,  # doubles on each transport retry
    # Ranking
    "importance_threshold": 0.29,  # floor for the adaptive promise-score cutoff
    "max_results": 10,  # 0 = unlimited
    "tag_filters": [],  # e.g. ["tourism:hotel", "access:private AND fee:yes"]
    "enable_place_history": True,
    "place_history_ttl_s": 86400,  # 24 hours
    # Narration
    "default_max_sentences": 7,
    "min_sentences": 4,
    "significance_threshold": 0.32,  # places below this get shorter narration
    "destination_max_sentences": 10,
    "language": "en",
    "placeholder_summaries": False,  # skip the LLM and return test text
    # Providers
    "provider": "overpass",
    "overpass_url": "https://overpass-api.de/api/interpreter",
    "overpass_timeout_s": 25,
    "geoapify_url": "https://api.geoapify.com/v2/places",
    "geoapify_categories": [
        "entertainment",
        "tourism.attraction",
        "tourism.sights",
        "leisure.park",
        "populated_place",
    ],
    # Summarizer
    "gemini_model": "gemini-2.0-flash",
    "gemini_temperature": 0.7,
    "gemini_max_tokens": 200,
    # OSM place types to search for
    "tourism_types": [
        "attraction", "museum", "monument", "memorial", "viewpoint",
        "gallery", "theme_park", "zoo", "park",
    ],
    "leisure_types": [
        "park", "garden", "beach_resort", "water_park", "nature_reserve", "stadium",
    ],
    "historic_types": [
        "castle", "ruins", "archaeological_site", "fort", "manor",
    ],
    "place_types": [
        "city", "town", "village", "suburb", "square",
    ],
}

PROVIDERS = ("overpass", "geoapify")

PLACE_SYSTEM_PROMPT = """\
You are a knowledgeable tour guide assistant.
Write in a direct, informative style. Start directly with factual information.
Do not use exclamations, conversational phrases like 'Ah' or 'Oh', or rhetorical questions.
Vary your sentence structure and phrasing to avoid repetitive patterns.
Mention the approximate distance (rounding to the nearest multiple of a power of ten), \
but vary how and where you present it. Over 999m translate to km.
If relative_direction is provided in the place data, naturally incorporate it into your \
description using phrases like 'You can see this to your right', 'This is located ahead', \
'This is behind you', or 'This is to your left'.
Do not mention technical data like OSM ID, OSM type, etc."""

PLACE_USER_PROMPT_PARTS = [
    "Please provide me information interesting a traveller about the following place:",
    "{place_json}",
    "Limit your response to {max_sentences} sentences.",
    "Answer in the language with ISO code '{language}'.",
]

# Low-information screening keyword families
LOW_INFO_NEGATION_KEYWORDS = [
    "unavailable", "not available", "no information", "no details", "cannot", "unable",
]
LOW_INFO_CONTEXT_KEYWORDS = [
    "details", "information", "specific", "further", "characteristics",
]
LOW_INFO_GENERIC_KEYWORDS = [
    "may offer", "may reveal", "may provide", "could offer", "could reveal", "could provide",
    "further research", "consider", "hidden gems", "local favorites", "local customs",
    "local traditions",
]
LOW_INFO_SPECULATIVE_KEYWORDS = [
    "likely", "could be", "might be", "suggests", "possibly", "perhaps", "probably",
    "appears to be", "seems to be",
]
LOW_INFO_VAGUE_PATTERNS = [
    r"could be (a|an|some)\b",
    r"might be (a|an|some)\b",
    r"some other",
    r"notable feature",
    r"point of interest",
    r"warrants further",
    r"further investigation",
]
LOW_INFO_SCORE_LIMIT = 3


def parse_tag_filter(rule: str) -> list[tuple[str, str]]:
    """Split a rule like "tourism:hotel AND access:private" into (key, value) pairs.

    Conditions without a colon are ignored.
    """
    conditions = []
    for part in rule.split(" AND "):
        if ":" not in part:
            continue
        key, value = part.split(":", 1)
        conditions.append((key.strip(), value.strip()))
    return conditions


@dataclass
class ExplorerConfig:
    """Validated configuration handed to every component at construction."""

    base_distance_threshold_m: float = CONFIG["base_distance_threshold_m"]
    speed_reference_baseline_kmh: float = CONFIG["speed_reference_baseline_kmh"]
    lookahead_time_s: float = CONFIG["lookahead_time_s"]
    gps_poll_interval_s: float = CONFIG["gps_poll_interval_s"]
    default_query_radius_m: float = CONFIG["default_query_radius_m"]
    min_radius_m: float = CONFIG["min_radius_m"]
    max_radius_m: float = CONFIG["max_radius_m"]
    max_radius_retries: int = CONFIG["max_radius_retries"]
    radius_retry_delay_s: float = CONFIG["radius_retry_delay_s"]
    radius_growth_factor: float = CONFIG["radius_growth_factor"]
    transport_retries: int = CONFIG["transport_retries"]
    transport_retry_base_delay_s: float = CONFIG["transport_retry_base_delay_s"]
    importance_threshold: float = CONFIG["importance_threshold"]
    max_results: int = CONFIG["max_results"]
    tag_filters: list[str] = field(default_factory=lambda: list(CONFIG["tag_filters"]))
    enable_place_history: bool = CONFIG["enable_place_history"]
    place_history_ttl_s: float = CONFIG["place_history_ttl_s"]
    default_max_sentences: int = CONFIG["default_max_sentences"]
    min_sentences: int = CONFIG["min_sentences"]
    significance_threshold: float = CONFIG["significance_threshold"]
    destination_max_sentences: int = CONFIG["destination_max_sentences"]
    language: str = CONFIG["language"]
    placeholder_summaries: bool = CONFIG["placeholder_summaries"]
    provider: str = CONFIG["provider"]
    overpass_url: str = CONFIG["overpass_url"]
    overpass_timeout_s: float = CONFIG["overpass_timeout_s"]
    geoapify_url: str = CONFIG["geoapify_url"]
    geoapify_categories: list[str] = field(default_factory=lambda: list(CONFIG["geoapify_categories"]))
    geoapify_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = CONFIG["gemini_model"]
    gemini_temperature: float = CONFIG["gemini_temperature"]
    gemini_max_tokens: int = CONFIG["gemini_max_tokens"]
    tourism_types: list[str] = field(default_factory=lambda: list(CONFIG["tourism_types"]))
    leisure_types: list[str] = field(default_factory=lambda: list(CONFIG["leisure_types"]))
    historic_types: list[str] = field(default_factory=lambda: list(CONFIG["historic_types"]))
    place_types: list[str] = field(default_factory=lambda: list(CONFIG["place_types"]))

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, overrides: Optional[dict] = None) -> "ExplorerConfig":
        """Build a config from CONFIG defaults updated with overrides."""
        overrides = overrides or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**overrides)

    def to_dict(self) -> dict:
        data = asdict(self)
        # Never leak credentials into logs
        for key in ("geoapify_api_key", "gemini_api_key"):
            data[key] = "SET" if data[key] else "NOT SET"
        return data

    def validate(self):
        """Raise ConfigError if any setting is out of range."""
        positive = (
            "base_distance_threshold_m", "speed_reference_baseline_kmh",
            "default_query_radius_m", "min_radius_m", "max_radius_m",
            "max_radius_retries", "radius_growth_factor", "overpass_timeout_s",
            "default_max_sentences", "destination_max_sentences", "gps_poll_interval_s",
        )
        for name in positive:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")

        non_negative = (
            "lookahead_time_s", "radius_retry_delay_s", "transport_retries",
            "transport_retry_base_delay_s", "max_results", "place_history_ttl_s",
        )
        for name in non_negative:
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative, got {getattr(self, name)}")

        if self.min_radius_m > self.max_radius_m:
            raise ConfigError(
                f"min_radius_m ({self.min_radius_m}) exceeds max_radius_m ({self.max_radius_m})"
            )
        if self.radius_growth_factor < 1.0:
            raise ConfigError("radius_growth_factor must be at least 1.0")
        for name in ("importance_threshold", "significance_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value}")
        if not 1 <= self.min_sentences <= self.default_max_sentences:
            raise ConfigError(
                f"min_sentences must be between 1 and default_max_sentences "
                f"({self.default_max_sentences}), got {self.min_sentences}"
            )
        if self.provider not in PROVIDERS:
            raise ConfigError(
                f"provider must be one of {', '.join(PROVIDERS)}, got {self.provider!r}"
            )
        for rule in self.tag_filters:
            if not parse_tag_filter(rule):
                raise ConfigError(f"Tag filter has no key:value condition: {rule!r}")
