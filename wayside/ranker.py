"""Filtering, scoring and ranking of candidate places."""

import statistics
import time
from typing import Optional

from .config import ExplorerConfig, parse_tag_filter
from .geo import haversine_distance
from .history import HistoryTracker, place_key
from .logger import Logger, quiet_logger
from .models import Place, PlaceInfo, RankedPlace

# Promise score contributions
TOURISM_SCORE_HIGH = 0.25
TOURISM_SCORE_MEDIUM = 0.1
TOURISM_SCORE_LOW = 0.05
HISTORIC_SCORE = 0.1
HERITAGE_SCORE = 0.2
WEBSITE_SCORE = 0.04
WIKIPEDIA_SCORE = 0.03
MULTILINGUAL_BASE_SCORE = 0.05  # per name variant, once past the threshold
MULTILINGUAL_MIN_NAMES = 3
PLACE_SCORE_HIGH = 0.15
PLACE_SCORE_LOW = 0.05
IMAGE_SCORE = 0.03
BUILDING_SCORE = 0.05
MAX_SCORE = 1.0

TOURISM_HIGH = {"attraction", "museum", "monument", "theme_park", "zoo", "park"}
TOURISM_MEDIUM = {"gallery", "viewpoint", "memorial"}
PLACE_HIGH = {"city", "town"}
PLACE_LOW = {"village", "suburb", "square", "neighbourhood", "quarter"}
SIGNIFICANT_BUILDINGS = {
    "cathedral", "church", "chapel", "mosque", "synagogue", "temple",
    "monastery", "castle", "palace", "tower", "civic", "government",
}


def promise_score(tags: dict[str, str]) -> tuple[float, list[str]]:
    """Score how promising a place is for narration from its tags.

    Returns the score clamped to [0, 1] and a breakdown of contributions.
    Every contribution is non-negative, so adding tags never lowers a score.
    """
    score = 0.0
    details = []

    tourism = tags.get("tourism")
    if tourism is not None:
        if tourism in TOURISM_HIGH:
            score += TOURISM_SCORE_HIGH
            details.append(f"tourism (high) (+{TOURISM_SCORE_HIGH})")
        elif tourism in TOURISM_MEDIUM:
            score += TOURISM_SCORE_MEDIUM
            details.append(f"tourism (medium) (+{TOURISM_SCORE_MEDIUM})")
        else:
            score += TOURISM_SCORE_LOW
            details.append(f"tourism (low) (+{TOURISM_SCORE_LOW})")
    if "historic" in tags:
        score += HISTORIC_SCORE
        details.append(f"historic (+{HISTORIC_SCORE})")
    if "heritage" in tags:
        score += HERITAGE_SCORE
        details.append(f"heritage (+{HERITAGE_SCORE})")
    if "website" in tags:
        score += WEBSITE_SCORE
        details.append(f"website (+{WEBSITE_SCORE})")
    if "wikipedia" in tags or "wikidata" in tags:
        score += WIKIPEDIA_SCORE
        details.append(f"wiki (+{WIKIPEDIA_SCORE})")

    place = tags.get("place")
    if place in PLACE_HIGH:
        score += PLACE_SCORE_HIGH
        details.append(f"place {place} (+{PLACE_SCORE_HIGH})")
    elif place in PLACE_LOW:
        score += PLACE_SCORE_LOW
        details.append(f"place {place} (+{PLACE_SCORE_LOW})")

    name_keys = sum(1 for key in tags if key.startswith("name:"))
    if name_keys >= MULTILINGUAL_MIN_NAMES:
        multilingual = MULTILINGUAL_BASE_SCORE * name_keys
        score += multilingual
        details.append(f"{name_keys} names (+{multilingual:.2f})")

    if "image" in tags or "wikimedia_commons" in tags:
        score += IMAGE_SCORE
        details.append(f"image (+{IMAGE_SCORE})")
    if tags.get("building") in SIGNIFICANT_BUILDINGS:
        score += BUILDING_SCORE
        details.append(f"building {tags['building']} (+{BUILDING_SCORE})")

    return round(min(score, MAX_SCORE), 4), details


def median(values: list[float]) -> float:
    return statistics.median(values)


def remove_outliers(ranked: list[RankedPlace]) -> tuple[list[RankedPlace], float]:
    """Drop places scoring below median - 2*MAD (median absolute deviation).

    Only the low tail is removed. Returns the survivors and the threshold used.
    """
    if not ranked:
        return [], 0.0
    scores = [r.promise_score for r in ranked]
    mid = median(scores)
    mad = median([abs(s - mid) for s in scores])
    threshold = mid - 2 * mad
    return [r for r in ranked if r.promise_score >= threshold], threshold


class PlaceRanker:
    """Turns raw provider candidates into a short, ranked, de-duplicated list.

    Stages run in a fixed order; any stage that leaves nothing ends the
    pipeline early with an empty list:

        names -> history -> tag filter -> score + distance -> sort
              -> MAD outliers -> adaptive threshold + cap -> dedupe -> record
    """

    def __init__(self, config: ExplorerConfig, history: Optional[HistoryTracker] = None,
                 logger: Optional[Logger] = None):
        self.config = config
        self.history = history if history is not None else HistoryTracker(config.place_history_ttl_s)
        self.logger = logger or quiet_logger()
        self.tag_filters = [parse_tag_filter(rule) for rule in config.tag_filters]

    def process(self, raw_places: list[Place], center_lat: float, center_lon: float,
                now: Optional[float] = None) -> list[PlaceInfo]:
        """Filter and rank raw places around a center point. Never raises for empty input."""
        now = time.time() if now is None else now
        self.logger.log("Ranking places", {"raw": len(raw_places)})

        places = self.normalize_names(raw_places)

        places = self.filter_by_history(places, now)
        if not places:
            self.logger.log("All places filtered out by history")
            return []

        places = self.filter_by_tags(places)
        if not places:
            self.logger.log("All places filtered out by tags")
            return []

        ranked = self.rank(places, center_lat, center_lon)

        ranked = self.filter_by_score(ranked)
        if not ranked:
            self.logger.log("All places filtered out by promise score")
            return []

        ranked = self.deduplicate(ranked)
        self.record(ranked, now)

        result = [PlaceInfo.from_ranked(r) for r in ranked]
        self.logger.log("Ranking finished", {
            "returned": len(result),
            "places": [{"name": p.name, "score": p.importance,
                        "distance_m": round(p.distance_m) if p.distance_m is not None else None}
                       for p in result],
        })
        return result

    def normalize_names(self, places: list[Place]) -> list[Place]:
        """Promote localized name/description tags to the canonical keys"""
        lang = self.config.language
        normalized = []
        for place in places:
            tags = dict(place.tags)
            for base in ("name", "description"):
                localized = tags.get(f"{base}:{lang}")
                if localized:
                    tags[base] = localized
            normalized.append(place.with_tags(tags))
        return normalized

    def filter_by_history(self, places: list[Place], now: float) -> list[Place]:
        if not self.config.enable_place_history:
            return places
        self.history.purge_expired(now)
        filtered = [p for p in places if not self.history.seen(place_key(p))]
        removed = len(places) - len(filtered)
        if removed:
            self.logger.log("History filter", {"removed": removed})
        return filtered

    def filter_by_tags(self, places: list[Place]) -> list[Place]:
        if not self.tag_filters:
            return places
        filtered = [p for p in places if all(self._passes(p.tags, rule) for rule in self.tag_filters)]
        removed = len(places) - len(filtered)
        if removed:
            self.logger.log("Tag filter", {"removed": removed})
        return filtered

    @staticmethod
    def _passes(tags: dict[str, str], conditions: list[tuple[str, str]]) -> bool:
        """A place passes a rule when no condition of the rule matches it"""
        for key, value in conditions:
            actual = tags.get(key)
            if value:
                if actual == value:
                    return False
            elif actual:
                return False
        return True

    def rank(self, places: list[Place], center_lat: float, center_lon: float) -> list[RankedPlace]:
        """Score and measure each place, best score first, nearer first on ties"""
        ranked = []
        for place in places:
            if place.lat is not None and place.lon is not None:
                distance = haversine_distance(center_lat, center_lon, place.lat, place.lon)
            else:
                distance = float("inf")
            score, details = promise_score(place.tags)
            if details:
                self.logger.log("Promise score", {
                    "name": place.name or "Unnamed", "score": score, "details": details
                })
            ranked.append(RankedPlace(place=place, distance_m=distance, promise_score=score))
        ranked.sort(key=lambda r: (-r.promise_score, r.distance_m))
        return ranked

    def filter_by_score(self, ranked: list[RankedPlace]) -> list[RankedPlace]:
        """MAD outlier removal, then keep places at or above max(threshold, mean score)"""
        cleaned, outlier_threshold = remove_outliers(ranked)
        removed = len(ranked) - len(cleaned)
        if removed:
            self.logger.log("MAD outlier removal", {
                "removed": removed,
                "threshold": round(outlier_threshold, 4),
                "names": [r.place.name or "Unnamed" for r in ranked if r not in cleaned],
            })
        if not cleaned:
            return []

        avg = sum(r.promise_score for r in cleaned) / len(cleaned)
        cutoff = max(self.config.importance_threshold, avg)
        kept = [r for r in cleaned if r.promise_score >= cutoff]
        if self.config.max_results > 0:
            kept = kept[:self.config.max_results]
        self.logger.log("Promise score filter", {
            "average": round(avg, 4), "threshold": round(cutoff, 4),
            "kept": len(kept), "of": len(cleaned),
        })
        return kept

    def deduplicate(self, ranked: list[RankedPlace]) -> list[RankedPlace]:
        """Keep the best-scoring place per case-insensitive name (or per id when unnamed)"""
        best: dict[str, RankedPlace] = {}
        anonymous = []
        for item in ranked:
            name = (item.place.tags.get("name") or "").strip().lower()
            key = f"name:{name}" if name else place_key(item.place)
            if key is None:
                anonymous.append(item)
                continue
            existing = best.get(key)
            if existing is None or item.promise_score > existing.promise_score:
                best[key] = item
        result = list(best.values()) + anonymous
        result.sort(key=lambda r: (-r.promise_score, r.distance_m))
        removed = len(ranked) - len(result)
        if removed:
            self.logger.log("Deduplication", {"removed": removed})
        return result

    def record(self, ranked: list[RankedPlace], now: float):
        if not self.config.enable_place_history:
            return
        self.history.record_many([place_key(r.place) for r in ranked], now)
