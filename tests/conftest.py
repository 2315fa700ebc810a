import threading

import pytest

from wayside.config import ExplorerConfig
from wayside.errors import SummarizerError
from wayside.models import Place
from wayside.sources import GeoSource
from wayside.summarizer import Summarizer

CENTER = (51.5007, -0.1246)


def make_place(osm_id, name=None, lat=None, lon=None, kind="node", **tags):
    """Raw candidate near CENTER unless coordinates are given"""
    if name is not None:
        tags["name"] = name
    return Place(
        kind=kind,
        osm_id=osm_id,
        lat=CENTER[0] + 0.001 if lat is None else lat,
        lon=CENTER[1] if lon is None else lon,
        tags=tags,
    )


class FakeSource(GeoSource):
    """Returns queued results (lists or exceptions) and records every call"""

    name = "fake"

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def query(self, lat, lon, radius_m):
        self.calls.append((lat, lon, radius_m))
        if not self.results:
            return []
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return list(result)


class FakeSummarizer(Summarizer):
    """Echoes the place name; names listed in failures raise, texts override output"""

    def __init__(self, failures=(), texts=None, gate=None):
        self.failures = set(failures)
        self.texts = texts or {}
        self.gate = gate
        self.calls = []
        self.lock = threading.Lock()

    def summarize(self, place, max_sentences, relative_direction=None):
        if self.gate is not None:
            self.gate.wait(5)
        with self.lock:
            self.calls.append((place.name, max_sentences, relative_direction))
        if place.name in self.failures:
            raise SummarizerError(f"boom: {place.name}")
        return self.texts.get(place.name, f"{place.name} is worth a look.")


@pytest.fixture
def config():
    """Defaults with every wait shortened to zero"""
    return ExplorerConfig(
        radius_retry_delay_s=0,
        transport_retry_base_delay_s=0,
        importance_threshold=0.1,
    )

