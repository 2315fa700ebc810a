from wayside.history import HistoryTracker, place_key
from wayside.models import Place


def test_place_key_prefers_provider_id():
    place = Place(kind="way", osm_id=42, lat=1.0, lon=2.0, tags={"name": "X"})
    assert place_key(place) == "way:42"


def test_place_key_falls_back_to_name_and_coordinates():
    place = Place(kind=None, osm_id=None, lat=51.123456, lon=-0.654321, tags={"name": "Pier"})
    assert place_key(place) == "Pier@51.1235,-0.6543"


def test_place_key_coordinates_only():
    place = Place(kind=None, osm_id=None, lat=51.123456, lon=-0.654321)
    assert place_key(place) == "51.1235,-0.6543"


def test_place_key_none_when_nothing_identifies_place():
    assert place_key(Place(kind=None, osm_id=None, lat=None, lon=None)) is None


def test_unidentifiable_places_never_seen():
    history = HistoryTracker(60)
    history.record(None, now=0)
    assert not history.seen(None)
    assert len(history) == 0


def test_ttl_boundaries():
    history = HistoryTracker(ttl_seconds=3600)
    t = 1_700_000_000.0
    history.record("node:1", now=t)

    assert history.purge_expired(now=t + 3599) == 0
    assert history.seen("node:1")

    # exactly TTL old is still remembered
    assert history.purge_expired(now=t + 3600) == 0
    assert history.seen("node:1")

    assert history.purge_expired(now=t + 3601) == 1
    assert not history.seen("node:1")


def test_record_refreshes_timestamp():
    history = HistoryTracker(ttl_seconds=10)
    history.record("node:1", now=0)
    history.record("node:1", now=8)
    history.purge_expired(now=15)
    assert history.seen("node:1")


def test_reset_forgets_everything():
    history = HistoryTracker(ttl_seconds=10)
    history.record_many(["node:1", "node:2"], now=0)
    history.reset()
    assert len(history) == 0


def test_sqlite_persists_across_instances(tmp_path):
    db_path = str(tmp_path / "history.db")
    history = HistoryTracker(ttl_seconds=100, db_path=db_path)
    history.record_many(["node:1", "way:2"], now=1000)
    history.close()

    reopened = HistoryTracker(ttl_seconds=100, db_path=db_path)
    assert reopened.seen("node:1")
    assert reopened.seen("way:2")

    assert reopened.purge_expired(now=1200) == 2
    reopened.close()

    again = HistoryTracker(ttl_seconds=100, db_path=db_path)
    assert len(again) == 0
    again.close()
