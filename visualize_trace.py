#!/usr/bin/env python3
"""
Visualize a recorded GPS trace and the content cycles of a run on a map.

Usage:
    python visualize_trace.py trace.json [--log wayside.log] [--output map.html]
"""

import argparse
import json
import re
from datetime import datetime
from pathlib import Path

import folium
from folium import plugins

LOG_LINE = re.compile(r'^\[([^\]]+)\]\s*(.+?)(?:\s*\|\s*(.+))?$')


def load_trace(trace_path: str) -> list[dict]:
    """Load GPS trace from JSON file"""
    with open(trace_path) as f:
        data = json.load(f)
    return data["trace"]


def parse_log_file(log_path: str) -> list[dict]:
    """Parse a wayside log file into (elapsed, message, data) entries"""
    entries = []
    start_time = None

    with open(log_path) as f:
        for line in f:
            match = LOG_LINE.match(line.strip())
            if not match:
                continue

            try:
                timestamp = datetime.fromisoformat(match.group(1))
            except ValueError:
                continue
            if start_time is None:
                start_time = timestamp

            data = None
            if match.group(3):
                try:
                    data = json.loads(match.group(3))
                except json.JSONDecodeError:
                    pass

            entries.append({
                "elapsed": (timestamp - start_time).total_seconds(),
                "message": match.group(2).strip(),
                "data": data,
            })

    return entries


def content_cycles(log_entries: list[dict]) -> list[dict]:
    """Pair "Content cycle started" and "finished" entries into cycles"""
    cycles = []
    for entry in log_entries:
        data = entry["data"] or {}
        if entry["message"] == "Content cycle started" and "lat" in data:
            cycles.append({
                "lat": data["lat"],
                "lon": data["lon"],
                "speed_kmh": data.get("speed_kmh"),
                "heading": data.get("heading"),
                "started": entry["elapsed"],
                "finished": None,
                "summaries": None,
            })
        elif entry["message"] == "Content cycle finished" and cycles:
            cycles[-1]["finished"] = entry["elapsed"]
            cycles[-1]["summaries"] = data.get("summaries")
    return cycles


def _mmss(elapsed: float) -> str:
    return f"{int(elapsed // 60)}m {int(elapsed % 60)}s"


def accuracy_color(accuracy) -> str:
    if accuracy is None:
        return "gray"
    if accuracy < 10:
        return "green"
    if accuracy < 20:
        return "orange"
    return "red"


def create_trace_map(trace: list[dict], output_path: str, cycles: list[dict] = None):
    """Create map visualization of GPS trace and content cycles"""
    valid_entries = [e for e in trace if e.get("location")]
    if not valid_entries:
        print("No valid GPS locations in trace")
        return

    lats = [e["location"]["lat"] for e in valid_entries]
    lons = [e["location"]["lon"] for e in valid_entries]
    m = folium.Map(location=[sum(lats) / len(lats), sum(lons) / len(lons)], zoom_start=14)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)
    folium.TileLayer("CartoDB dark_matter", name="Dark").add_to(m)

    folium.PolyLine(
        [[e["location"]["lat"], e["location"]["lon"]] for e in valid_entries],
        weight=4,
        color="blue",
        opacity=0.7,
        popup="GPS Trace"
    ).add_to(m)

    points_group = folium.FeatureGroup(name="GPS Points", show=False)
    for i, entry in enumerate(valid_entries):
        loc = entry["location"]
        speed = loc.get("speed")
        speed_text = f"{speed * 3.6:.0f} km/h" if speed is not None else "unknown"
        popup = (
            f"<b>Point {i + 1}</b><br>"
            f"Time: {_mmss(entry.get('elapsed', 0))}<br>"
            f"Speed: {speed_text}<br>"
            f"Bearing: {loc.get('bearing', 'unknown')}<br>"
            f"Accuracy: {loc.get('accuracy', 'unknown')}m"
        )
        folium.CircleMarker(
            location=[loc["lat"], loc["lon"]],
            radius=4,
            color=accuracy_color(loc.get("accuracy")),
            fill=True,
            popup=folium.Popup(popup, max_width=200)
        ).add_to(points_group)
    points_group.add_to(m)

    start = valid_entries[0]["location"]
    end = valid_entries[-1]["location"]
    folium.Marker([start["lat"], start["lon"]], popup="Start",
                  icon=folium.Icon(color="green", icon="play")).add_to(m)
    folium.Marker([end["lat"], end["lon"]], popup="End",
                  icon=folium.Icon(color="red", icon="stop")).add_to(m)

    if cycles:
        cycles_group = folium.FeatureGroup(name="Content Cycles", show=True)
        for i, cycle in enumerate(cycles, 1):
            duration = ""
            if cycle["finished"] is not None:
                duration = f"Took: {cycle['finished'] - cycle['started']:.1f}s<br>"
            popup = (
                f"<b>Cycle {i}</b><br>"
                f"Started: {_mmss(cycle['started'])}<br>"
                f"{duration}"
                f"Speed: {cycle['speed_kmh']} km/h<br>"
                f"Summaries: {cycle['summaries'] if cycle['summaries'] is not None else 'unfinished'}"
            )
            folium.Marker(
                [cycle["lat"], cycle["lon"]],
                popup=folium.Popup(popup, max_width=200),
                tooltip=f"Cycle {i}",
                icon=folium.Icon(color="purple" if cycle["summaries"] else "lightgray",
                                 icon="volume-up"),
            ).add_to(cycles_group)
        cycles_group.add_to(m)

    folium.LayerControl().add_to(m)
    plugins.Fullscreen().add_to(m)

    m.save(output_path)
    failed = len(trace) - len(valid_entries)
    print(f"Trace map saved to {output_path}")
    print(f"  {len(valid_entries)} valid points, {failed} failures, {len(cycles or [])} content cycles")


def main():
    parser = argparse.ArgumentParser(description="Visualize GPS trace and content cycles on map")
    parser.add_argument("trace", help="GPS trace JSON file")
    parser.add_argument("--log", help="Wayside log file of the same run")
    parser.add_argument("-o", "--output", default="trace_map.html",
                        help="Output HTML file (default: trace_map.html)")

    args = parser.parse_args()

    if not Path(args.trace).exists():
        print(f"Trace file not found: {args.trace}")
        return 1

    cycles = None
    if args.log:
        if not Path(args.log).exists():
            print(f"Log file not found: {args.log}")
            return 1
        cycles = content_cycles(parse_log_file(args.log))

    create_trace_map(load_trace(args.trace), args.output, cycles)
    return 0


if __name__ == "__main__":
    exit(main())
