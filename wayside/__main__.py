#!/usr/bin/env python3
"""
Wayside - hands-free tour guide for places along the way

Usage:
    python -m wayside [options]

Options:
    --record FILE       Record GPS trace to JSON file for debugging
    --playback FILE     Playback GPS trace from JSON file
    --speed FACTOR      Playback speed multiplier (default: 1.0)
    --lat LAT           Fixed position latitude (for testing without GPS)
    --lon LON           Fixed position longitude (for testing without GPS)
    --kmh SPEED         Speed to report with --lat/--lon (default: 0)
    --heading DEG       Heading to report with --lat/--lon
    --dest-lat LAT      Destination latitude (narrated once)
    --dest-lon LON      Destination longitude
    --provider NAME     Place provider: overpass or geoapify
    --placeholder       Do not call the language model, narrate placeholder text
    --preview           Search once at --lat/--lon, print ranked places and exit
    --html FILE         With --preview, write a map of the places to an HTML file
    --history FILE      Remember surfaced places in this SQLite file across runs
    --quiet-audio       Print summaries instead of speaking them
"""

import argparse
import os
import sys
import webbrowser
from datetime import datetime
from pathlib import Path

import folium

from .app import TourGuide
from .config import ExplorerConfig
from .errors import ConfigError
from .gps import FixedLocation, GPSPlayback, GPSRecorder


def _places_map(places, lat: float, lon: float, output_file: str):
    """Write an interactive map of previewed places"""
    m = folium.Map(location=[lat, lon], zoom_start=15)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)

    folium.Marker(
        [lat, lon],
        popup="Search center",
        icon=folium.Icon(color="red", icon="user"),
    ).add_to(m)

    for rank, place in enumerate(places, 1):
        distance = f"{place.distance_m:.0f} m" if place.distance_m is not None else "unknown"
        popup = (
            f"<b>{rank}. {place.name}</b><br>"
            f"{place.place_type}: {place.category}<br>"
            f"Score: {place.importance:.2f}<br>"
            f"Distance: {distance}"
        )
        folium.Marker(
            [place.lat, place.lon],
            popup=folium.Popup(popup, max_width=250),
            tooltip=place.name,
            icon=folium.Icon(color="blue" if rank == 1 else "cadetblue", icon="info-sign"),
        ).add_to(m)

    folium.LayerControl().add_to(m)
    m.save(output_file)

    abs_path = os.path.abspath(output_file)
    print(f"\nPlaces map saved to: {abs_path}")
    webbrowser.open(f"file://{abs_path}")


def main():
    parser = argparse.ArgumentParser(
        description="Wayside - hands-free tour guide for places along the way"
    )
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: wayside_TIMESTAMP.log)")
    parser.add_argument("--lat", type=float, metavar="LAT",
                        help="Fixed latitude (for testing without GPS)")
    parser.add_argument("--lon", type=float, metavar="LON",
                        help="Fixed longitude (for testing without GPS)")
    parser.add_argument("--kmh", type=float, default=0.0,
                        help="Speed in km/h reported with --lat/--lon")
    parser.add_argument("--heading", type=float,
                        help="Heading in degrees reported with --lat/--lon")
    parser.add_argument("--dest-lat", type=float, metavar="LAT",
                        help="Destination latitude")
    parser.add_argument("--dest-lon", type=float, metavar="LON",
                        help="Destination longitude")
    parser.add_argument("--provider", choices=["overpass", "geoapify"], default="overpass",
                        help="Place provider (default: overpass)")
    parser.add_argument("--placeholder", action="store_true",
                        help="Skip the language model and narrate placeholder text")
    parser.add_argument("--preview", action="store_true",
                        help="Search once at --lat/--lon and print ranked places")
    parser.add_argument("--html", metavar="FILE",
                        help="Write preview places to an HTML map (with --preview)")
    parser.add_argument("--history", metavar="FILE",
                        help="SQLite file for remembering surfaced places")
    parser.add_argument("--quiet-audio", action="store_true",
                        help="Print summaries instead of speaking them")

    args = parser.parse_args()

    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be used together")
    if (args.dest_lat is None) != (args.dest_lon is None):
        parser.error("--dest-lat and --dest-lon must be used together")
    if args.preview and args.lat is None:
        parser.error("--preview requires --lat and --lon")
    if args.html and not args.preview:
        parser.error("--html requires --preview")

    try:
        config = ExplorerConfig.from_dict({
            "provider": args.provider,
            "placeholder_summaries": args.placeholder or args.preview,
            "geoapify_api_key": os.environ.get("GEOAPIFY_API_KEY"),
            "gemini_api_key": os.environ.get("GEMINI_API_KEY"),
        })
    except ConfigError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)

    log_path = args.log
    if not log_path and not args.preview:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = f"wayside_{timestamp}.log"

    try:
        guide = TourGuide(
            config,
            log_path=log_path,
            history_path=args.history,
            speak=not args.quiet_audio,
        )
    except ConfigError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)

    if args.preview:
        places = guide.preview(args.lat, args.lon, speed_kmh=args.kmh)
        if args.html and places:
            _places_map(places, args.lat, args.lon, args.html)
        guide.close()
        return

    if args.dest_lat is not None:
        guide.set_destination(args.dest_lat, args.dest_lon)

    if args.playback:
        if not Path(args.playback).exists():
            print(f"Playback file not found: {args.playback}")
            sys.exit(1)
        guide.set_gps_source(GPSPlayback(args.playback, args.speed, config.gps_poll_interval_s))
    elif args.lat is not None:
        guide.set_gps_source(FixedLocation(args.lat, args.lon, args.kmh, args.heading))

    if args.record:
        guide.set_gps_source(GPSRecorder(guide.gps_source, args.record))

    guide.run()


if __name__ == "__main__":
    main()
