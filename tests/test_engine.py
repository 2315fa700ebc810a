import threading

import pytest

from wayside.engine import (
    GENERATING,
    IDLE,
    TRACKING,
    ContentTriggerEngine,
    sentence_budget,
)
from wayside.errors import ProviderError
from wayside.geo import project_position
from wayside.models import Location, Place
from wayside.ranker import PlaceRanker
from wayside.search import GeoQueryClient

from conftest import CENTER, FakeSource, FakeSummarizer, make_place


def _places():
    return [
        make_place(1, "Museum", tourism="museum", wikipedia="x"),
        make_place(2, "Zoo", tourism="zoo", wikidata="Q2"),
    ]


def _engine(config, summarizer=None, source=None):
    source = source or FakeSource(_places())
    search = GeoQueryClient(source, PlaceRanker(config), config)
    return ContentTriggerEngine(search, summarizer or FakeSummarizer(), config)


def _fix(distance_m=0.0, speed_kmh=0.0, bearing=None, heading_of_travel=0.0):
    lat, lon = project_position(CENTER[0], CENTER[1], heading_of_travel, distance_m)
    return Location(lat=lat, lon=lon, speed=speed_kmh / 3.6, bearing=bearing)


def _run(engine, location):
    started = engine.handle_location(location)
    assert engine.wait_idle(5)
    return started


def test_distance_threshold_scales_up_with_speed(config):
    config.base_distance_threshold_m = 500
    engine = _engine(config)
    assert engine.distance_threshold(100) == pytest.approx(1000)
    assert engine.distance_threshold(50) == pytest.approx(500)
    assert engine.distance_threshold(25) == pytest.approx(500)
    assert engine.distance_threshold(0) == pytest.approx(500)


def test_first_fix_generates_immediately(config):
    engine = _engine(config)
    assert engine.phase == IDLE
    assert _run(engine, _fix())
    assert engine.phase == TRACKING

    response = engine.get_content()
    assert response.ready
    assert response.summaries == ["Museum is worth a look.", "Zoo is worth a look."]


def test_fast_movement_needs_1000m(config):
    config.base_distance_threshold_m = 500
    engine = _engine(config)
    _run(engine, _fix(speed_kmh=100))

    assert not _run(engine, _fix(900, speed_kmh=100))
    assert _run(engine, _fix(1100, speed_kmh=100))


def test_slow_movement_keeps_500m_floor(config):
    config.base_distance_threshold_m = 500
    engine = _engine(config)
    _run(engine, _fix(speed_kmh=25))

    assert not _run(engine, _fix(300, speed_kmh=25))
    assert not _run(engine, _fix(490, speed_kmh=25))
    assert _run(engine, _fix(510, speed_kmh=25))


def test_duplicate_fix_ignored(config):
    engine = _engine(config)
    _run(engine, _fix())
    count = engine.state.location_count
    assert not engine.handle_location(_fix())
    assert engine.state.location_count == count + 1
    assert engine.state.last_location is not None


def test_missing_speed_reuses_last_known(config):
    engine = _engine(config)
    _run(engine, _fix(speed_kmh=80))
    engine.handle_location(Location(lat=CENTER[0] + 0.0001, lon=CENTER[1]))
    engine.wait_idle(5)
    assert engine.state.speed_kmh == pytest.approx(80)


def test_only_one_cycle_in_flight(config):
    gate = threading.Event()
    summarizer = FakeSummarizer(gate=gate)
    engine = _engine(config, summarizer)

    assert engine.handle_location(_fix())
    assert engine.phase == GENERATING
    # far enough to trigger, but a cycle is running
    assert not engine.handle_location(_fix(5000))
    assert engine.state.last_location.lat == pytest.approx(_fix(5000).lat)
    assert engine.get_content().status == "none"

    gate.set()
    assert engine.wait_idle(5)
    assert engine.get_content().ready


def test_content_delivered_at_most_once(config):
    engine = _engine(config)
    _run(engine, _fix())
    assert engine.get_content().ready
    second = engine.get_content()
    assert second.status == "none"
    assert second.summaries == []


def test_summarizer_error_skips_only_that_place(config):
    engine = _engine(config, FakeSummarizer(failures={"Museum"}))
    _run(engine, _fix())
    assert engine.get_content().summaries == ["Zoo is worth a look."]


def test_low_information_summary_discarded(config):
    summarizer = FakeSummarizer(texts={"Zoo": "Specific information about this place is unavailable."})
    engine = _engine(config, summarizer)
    _run(engine, _fix())
    assert engine.get_content().summaries == ["Museum is worth a look."]


def test_nothing_found_means_no_content(config):
    engine = _engine(config, source=FakeSource([]))
    _run(engine, _fix())
    assert engine.get_content().status == "none"
    assert engine.phase == TRACKING


def test_provider_failure_degrades_to_no_content(config):
    engine = _engine(config, source=FakeSource(ProviderError("bad request")))
    _run(engine, _fix())
    assert engine.get_content().status == "none"
    assert not engine.state.is_generating


def test_destination_summarized_once(config):
    summarizer = FakeSummarizer()
    engine = _engine(config, summarizer)
    engine.set_destination(Location(lat=52.0, lon=0.0), "Cambridge")

    _run(engine, _fix())
    summaries = engine.get_content().summaries
    assert summaries[0] == "Cambridge is worth a look."
    assert ("Cambridge", config.destination_max_sentences, None) in summarizer.calls

    _run(engine, _fix(2000))
    assert all(name != "Cambridge" for name, _, _ in summarizer.calls[3:])


def test_new_destination_resets_flag(config):
    summarizer = FakeSummarizer()
    engine = _engine(config, summarizer)
    engine.set_destination(Location(lat=52.0, lon=0.0), "Cambridge")
    _run(engine, _fix())
    engine.set_destination(Location(lat=51.75, lon=-1.25), "Oxford")
    _run(engine, _fix(2000))
    names = [name for name, _, _ in summarizer.calls]
    assert names.count("Cambridge") == 1
    assert names.count("Oxford") == 1


def test_relative_direction_passed_when_heading_known(config):
    summarizer = FakeSummarizer()
    engine = _engine(config, summarizer)
    # heading east, places lie to the north
    _run(engine, _fix(bearing=90.0, speed_kmh=30))
    directions = {name: direction for name, _, direction in summarizer.calls}
    assert directions == {"Museum": "to your left", "Zoo": "to your left"}


def test_no_relative_direction_without_heading(config):
    summarizer = FakeSummarizer()
    engine = _engine(config, summarizer)
    _run(engine, _fix())
    assert all(direction is None for _, _, direction in summarizer.calls)


def test_lookahead_moves_query_point(config):
    source = FakeSource(_places())
    engine = _engine(config, source=source)
    _run(engine, _fix(bearing=90.0, speed_kmh=72))
    lat, lon, _ = source.calls[0]
    assert lat == pytest.approx(CENTER[0], abs=1e-4)
    assert lon > CENTER[1]


def test_reset_location_state_makes_next_fix_first(config):
    engine = _engine(config)
    _run(engine, _fix())
    engine.reset_location_state()
    assert engine.phase == IDLE
    assert _run(engine, _fix(10))


def test_shutdown_rejects_new_fixes(config):
    engine = _engine(config)
    _run(engine, _fix())
    engine.shutdown(timeout=5)
    assert not engine.handle_location(_fix(5000))
    assert not engine.state.is_generating


def test_shutdown_cancels_waiting_cycle(config):
    config.radius_retry_delay_s = 30
    engine = _engine(config, source=FakeSource([]))
    assert engine.handle_location(_fix())
    engine.shutdown(timeout=5)
    assert engine.wait_idle(0)
    assert engine.get_content().status == "none"


@pytest.mark.parametrize("total,index,importance,expected", [
    (1, 0, 0.5, 7),
    (1, 0, 0.2, 5),
    (2, 1, 0.5, 7),
    (2, 1, 0.1, 5),
    (5, 0, 0.5, 7),
    (5, 1, 0.9, 6),
    (5, 3, 0.9, 4),
    (9, 8, 0.9, 4),
])
def test_sentence_budget(total, index, importance, expected):
    assert sentence_budget(total, index, importance, default_max=7,
                           min_sentences=4, threshold=0.32) == expected


def test_sentence_budget_applied_per_rank(config):
    summarizer = FakeSummarizer()
    engine = _engine(config, summarizer)
    _run(engine, _fix())
    # two places: both count as "few results", importance 0.28 is below significance
    assert [n for _, n, _ in summarizer.calls] == [5, 5]


def test_shutdown_during_query_leaves_history_untouched(config):
    started = threading.Event()
    release = threading.Event()

    class SlowSource(FakeSource):
        def query(self, lat, lon, radius_m):
            started.set()
            release.wait(5)
            return super().query(lat, lon, radius_m)

    summarizer = FakeSummarizer()
    engine = _engine(config, summarizer, source=SlowSource(_places()))

    assert engine.handle_location(_fix())
    assert started.wait(5)
    engine.shutdown(timeout=0)
    release.set()
    assert engine.wait_idle(5)

    assert len(engine.search.ranker.history) == 0
    assert summarizer.calls == []
    assert engine.get_content().status == "none"


def test_no_relative_direction_for_place_without_coordinates(config):
    summarizer = FakeSummarizer()
    nowhere = Place(kind="way", osm_id=5, lat=None, lon=None,
                    tags={"name": "Lost Abbey", "tourism": "attraction", "heritage": "1"})
    engine = _engine(config, summarizer, source=FakeSource([nowhere]))

    _run(engine, _fix(bearing=90.0, speed_kmh=30))

    assert summarizer.calls == [("Lost Abbey", config.default_max_sentences, None)]
