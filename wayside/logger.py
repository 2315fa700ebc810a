"""Logging module for Wayside."""

import json
import threading
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Logs timestamped messages with structured data to stdout, a file and a callback"""

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 quiet: bool = False):
        self.log_path = log_path
        self.callback = callback
        self.quiet = quiet
        self.file = None
        # Cycle threads and the fix loop share one logger
        self._lock = threading.Lock()
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        if self.file:
            self.file.write(f"\n{'='*60}\n")
            self.file.write(f"Wayside Log - {datetime.now().isoformat()}\n")
            self.file.write(f"{'='*60}\n\n")
            self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        timestamp = datetime.now().isoformat()
        line = f"[{timestamp}] {message}"
        if data:
            line += f" | {json.dumps(data, default=str)}"
        with self._lock:
            if not self.quiet:
                print(line)
            if self.file:
                self.file.write(line + "\n")
                self.file.flush()
        if self.callback:
            self.callback(message, data)

    def close(self):
        with self._lock:
            if self.file:
                self.file.close()
                self.file = None


def quiet_logger() -> Logger:
    """Logger used by components that were not handed one"""
    return Logger(quiet=True)
