"""History of places already surfaced, so content is not repeated."""

import sqlite3
import time
from typing import Optional

from .models import Place


def place_key(place: Place) -> Optional[str]:
    """Derive a stable identifier for a place.

    Precedence: provider (kind, id) pair, then name plus coordinates rounded
    to 4 decimal places, then coordinates alone. Returns None when none of
    these can be formed; such places are always treated as novel.
    """
    if place.kind and place.osm_id is not None:
        return f"{place.kind}:{place.osm_id}"
    if place.lat is None or place.lon is None:
        return None
    coords = f"{place.lat:.4f},{place.lon:.4f}"
    name = (place.tags.get("name") or "").strip()
    if name:
        return f"{name}@{coords}"
    return coords


class HistoryTracker:
    """Time-windowed set of place identifiers that were already returned.

    Entries expire after ttl_seconds. Expiry is lazy: purge_expired() runs at
    the start of every filter pass rather than on a timer. With a db_path the
    entries are also written to SQLite so they survive restarts.
    """

    def __init__(self, ttl_seconds: float, db_path: Optional[str] = None):
        self.ttl_seconds = ttl_seconds
        self.entries: dict[str, float] = {}
        self.conn: Optional[sqlite3.Connection] = None
        if db_path:
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self._init_schema()
            self._load()

    def _init_schema(self):
        """Create database tables"""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS seen_places (
                place_key TEXT PRIMARY KEY,
                last_seen REAL NOT NULL
            )
        """)
        self.conn.commit()

    def _load(self):
        cursor = self.conn.execute("SELECT place_key, last_seen FROM seen_places")
        self.entries = {row[0]: row[1] for row in cursor.fetchall()}

    def seen(self, key: Optional[str]) -> bool:
        if key is None:
            return False
        return key in self.entries

    def record(self, key: Optional[str], now: Optional[float] = None):
        """Record that a place was surfaced at `now` (seconds since epoch)"""
        if key is None:
            return
        self.record_many([key], now)

    def record_many(self, keys: list[str], now: Optional[float] = None):
        """Record several places in one transaction"""
        now = time.time() if now is None else now
        keys = [k for k in keys if k is not None]
        for key in keys:
            self.entries[key] = now
        if self.conn and keys:
            with self.conn:
                self.conn.executemany("""
                    INSERT INTO seen_places (place_key, last_seen) VALUES (?, ?)
                    ON CONFLICT(place_key) DO UPDATE SET last_seen = excluded.last_seen
                """, [(key, now) for key in keys])

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop entries older than the TTL. Returns how many were removed."""
        now = time.time() if now is None else now
        expired = [k for k, ts in self.entries.items() if now - ts > self.ttl_seconds]
        for key in expired:
            del self.entries[key]
        if self.conn and expired:
            with self.conn:
                self.conn.execute(
                    "DELETE FROM seen_places WHERE last_seen < ?",
                    (now - self.ttl_seconds,)
                )
        return len(expired)

    def reset(self):
        """Forget every recorded place"""
        self.entries.clear()
        if self.conn:
            with self.conn:
                self.conn.execute("DELETE FROM seen_places")

    def __len__(self) -> int:
        return len(self.entries)

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None
