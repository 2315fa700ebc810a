import json

import pytest

from wayside.app import TourGuide
from wayside.gps import FixedLocation, GPSPlayback, GPSRecorder, parse_termux_fix
from wayside.models import Location
from wayside.summarizer import PlaceholderSummarizer

from conftest import CENTER, FakeSource, make_place


def _guide(config, gps_source, source=None):
    return TourGuide(
        config,
        speak=False,
        gps_source=gps_source,
        summarizer=PlaceholderSummarizer(),
        source=source or FakeSource([make_place(1, "Museum", tourism="museum")]),
    )


def test_update_speaks_new_content(config, capsys):
    guide = _guide(config, FixedLocation(*CENTER))
    guide.logger.quiet = True
    spoken = []
    guide.audio.callback = spoken.append

    guide.update()
    guide.engine.wait_idle(5)
    guide.update()

    assert spoken == ["[Test Mode] Summary for: Museum"]
    assert guide.cycles == 1
    assert guide.summaries_spoken == 1
    assert "[AUDIO]" in capsys.readouterr().out
    guide.close()


def test_preview_lists_places(config, capsys):
    guide = _guide(config, FixedLocation(*CENTER))
    guide.logger.quiet = True

    places = guide.preview(*CENTER, speed_kmh=0)

    assert [p.name for p in places] == ["Museum"]
    out = capsys.readouterr().out
    assert "Museum" in out
    assert "north" in out
    guide.close()


def test_state_reports_location(config):
    guide = _guide(config, FixedLocation(*CENTER, speed_kmh=36, bearing=90))
    guide.logger.quiet = True
    guide.update()
    guide.engine.wait_idle(5)

    state = guide.get_state()
    assert state["location"]["speed_kmh"] == pytest.approx(36)
    assert state["location"]["bearing"] == 90
    assert state["cycles"] == 1
    assert state["fixes"] == 1
    guide.close()


def test_playback_replays_trace(tmp_path):
    trace = {"trace": [
        {"elapsed": 0, "location": Location(lat=1.0, lon=2.0, speed=5.0).to_dict()},
        {"elapsed": 4, "location": None},
        {"elapsed": 6, "location": Location(lat=1.001, lon=2.0).to_dict()},
    ]}
    path = tmp_path / "trace.json"
    path.write_text(json.dumps(trace))

    playback = GPSPlayback(str(path), speed=2.0)

    first = playback.get_location()
    assert (first.lat, first.speed) == (1.0, 5.0)
    assert playback.get_poll_interval() == 2.0
    assert playback.get_location() is None
    assert playback.get_status().startswith("Playback: 1 failures")
    assert playback.get_location().lat == 1.001
    assert playback.is_finished()


def test_parse_termux_fix():
    fix = parse_termux_fix('{"latitude": 51.5, "longitude": -0.12, "accuracy": 8.0, '
                           '"speed": 10.0, "bearing": 45.0}')
    assert (fix.lat, fix.lon, fix.accuracy) == (51.5, -0.12, 8.0)
    assert fix.speed_kmh == pytest.approx(36)
    assert fix.bearing == 45.0


@pytest.mark.parametrize("output", ["", "not json", '{"latitude": 51.5}',
                                    '{"latitude": null, "longitude": 1}'])
def test_parse_termux_fix_rejects_unusable_output(output):
    assert parse_termux_fix(output) is None


def test_recorded_trace_plays_back(tmp_path, capsys):
    path = tmp_path / "walk.json"
    recorder = GPSRecorder(FixedLocation(*CENTER, speed_kmh=18), str(path))
    recorder.get_location()
    recorder.get_location()
    recorder.save()

    assert "2 entries" in capsys.readouterr().out
    assert recorder.trace[0]["status"].startswith("Fixed location")

    playback = GPSPlayback(str(path))
    replayed = playback.get_location()
    assert (replayed.lat, replayed.lon) == CENTER
    assert replayed.speed == pytest.approx(5.0)
