"""Geodata providers: OpenStreetMap Overpass API and Geoapify Places API."""

import zlib
from abc import ABC, abstractmethod
from typing import Optional

import requests

from .config import ExplorerConfig
from .errors import ConfigError, TransientProviderError
from .logger import Logger, quiet_logger
from .models import Place

USER_AGENT = "Wayside/1.0 (roadside tour guide)"


class GeoSource(ABC):
    """A provider that lists tagged places around a point"""

    name = "source"

    @abstractmethod
    def query(self, lat: float, lon: float, radius_m: float) -> list[Place]:
        """Return raw candidates within radius_m of (lat, lon).

        Raises TransientProviderError on network, HTTP or decoding failures.
        """


class OverpassSource(GeoSource):
    """Fetch tagged places from OpenStreetMap via Overpass API"""

    name = "overpass"

    def __init__(self, config: ExplorerConfig, session: Optional[requests.Session] = None,
                 logger: Optional[Logger] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.logger = logger or quiet_logger()

    def build_query(self, lat: float, lon: float, radius_m: float) -> str:
        """Overpass QL for nodes and ways carrying one of the configured place types"""
        around = f"(around:{radius_m:.0f},{lat},{lon})"
        clauses = []
        for key, types in (
            ("tourism", self.config.tourism_types),
            ("historic", self.config.historic_types),
            ("leisure", self.config.leisure_types),
            ("place", self.config.place_types),
        ):
            if not types:
                continue
            pattern = "|".join(sorted(set(types)))
            for element in ("node", "way"):
                clauses.append(f'  {element}["{key}"~"^({pattern})$"]{around};')
        body = "\n".join(clauses)
        return (
            f"[out:json][timeout:{self.config.overpass_timeout_s:.0f}];\n"
            f"(\n{body}\n);\n"
            "out body center tags;"
        )

    def query(self, lat: float, lon: float, radius_m: float) -> list[Place]:
        query = self.build_query(lat, lon, radius_m)
        self.logger.log("Overpass query", {"lat": lat, "lon": lon, "radius_m": round(radius_m)})
        try:
            response = self.session.post(
                self.config.overpass_url,
                data={"data": query},
                timeout=self.config.overpass_timeout_s + 5,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise TransientProviderError(f"Overpass request failed: {e}") from e
        except ValueError as e:
            raise TransientProviderError(f"Overpass returned invalid JSON: {e}") from e

        return [p for p in (self.parse_element(el) for el in data.get("elements", [])) if p]

    @staticmethod
    def parse_element(element: dict) -> Optional[Place]:
        """Convert an Overpass element; ways and relations use their center point"""
        if not isinstance(element, dict) or "type" not in element:
            return None
        lat, lon = element.get("lat"), element.get("lon")
        center = element.get("center")
        if (lat is None or lon is None) and isinstance(center, dict):
            lat, lon = center.get("lat"), center.get("lon")
        try:
            tags = {str(k): str(v) for k, v in (element.get("tags") or {}).items()}
            osm_id = element.get("id")
            return Place(
                kind=element["type"],
                osm_id=int(osm_id) if osm_id is not None else None,
                lat=float(lat) if lat is not None else None,
                lon=float(lon) if lon is not None else None,
                tags=tags,
            )
        except (TypeError, ValueError, AttributeError):
            return None


class GeoapifySource(GeoSource):
    """Fetch places from the Geoapify Places API (https://apidocs.geoapify.com/docs/places/)"""

    name = "geoapify"

    def __init__(self, config: ExplorerConfig, session: Optional[requests.Session] = None,
                 logger: Optional[Logger] = None):
        if not config.geoapify_api_key:
            raise ConfigError("GEOAPIFY_API_KEY is required for the geoapify provider")
        if not config.geoapify_categories:
            raise ConfigError("geoapify_categories must not be empty")
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.logger = logger or quiet_logger()

    def query(self, lat: float, lon: float, radius_m: float) -> list[Place]:
        limit = self.config.max_results * 2 if self.config.max_results > 0 else 100
        params = {
            "categories": ",".join(self.config.geoapify_categories),
            "filter": f"circle:{lon},{lat},{radius_m:.0f}",
            "limit": str(limit),
            "apiKey": self.config.geoapify_api_key,
        }
        self.logger.log("Geoapify query", {"lat": lat, "lon": lon, "radius_m": round(radius_m)})
        try:
            response = self.session.get(self.config.geoapify_url, params=params, timeout=30)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise TransientProviderError(f"Geoapify request failed: {e}") from e
        except ValueError as e:
            raise TransientProviderError(f"Geoapify returned invalid JSON: {e}") from e

        places = []
        for feature in data.get("features", []):
            place = self.parse_feature(feature)
            if place:
                places.append(place)
            else:
                self.logger.log("Skipping unparseable Geoapify feature")
        return places

    @staticmethod
    def parse_feature(feature: dict) -> Optional[Place]:
        """Convert a GeoJSON feature; tags come from the raw OSM datasource"""
        try:
            properties = feature["properties"]
            lon, lat = feature["geometry"]["coordinates"][:2]
            lat, lon = float(lat), float(lon)

            tags = {}
            for key in ("name", "website"):
                if properties.get(key):
                    tags[key] = str(properties[key])
            raw = (properties.get("datasource") or {}).get("raw") or {}
            for key, value in raw.items():
                tags[str(key)] = str(value)
        except (KeyError, TypeError, ValueError, AttributeError):
            return None

        place_id = properties.get("place_id")
        osm_id = zlib.crc32(str(place_id).encode()) if place_id else None
        return Place(
            kind="node",
            osm_id=osm_id,
            lat=lat,
            lon=lon,
            tags=tags,
        )


def make_source(config: ExplorerConfig, logger: Optional[Logger] = None) -> GeoSource:
    """Pick the provider implementation named by config.provider"""
    if config.provider == "geoapify":
        return GeoapifySource(config, logger=logger)
    return OverpassSource(config, logger=logger)
