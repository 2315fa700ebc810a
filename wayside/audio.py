"""Speech output for narrated content."""

import subprocess
from typing import Optional, Callable


class Audio:
    """Text-to-speech for summaries"""

    def __init__(self, enabled: bool = True, rate: int = 160,
                 callback: Optional[Callable[[str], None]] = None):
        self.enabled = enabled
        self.rate = rate
        self.callback = callback

    def speak(self, text: str):
        """Speak text using espeak (available in Termux), blocking until done"""
        if self.callback:
            self.callback(text)

        if not self.enabled:
            print(f"[AUDIO] {text}")
            return

        try:
            subprocess.run(
                ["espeak", "-s", str(self.rate), text],
                capture_output=True,
                timeout=120
            )
        except FileNotFoundError:
            print(f"[AUDIO] {text}")
        except subprocess.TimeoutExpired:
            print(f"Audio timed out: {text[:40]}...")

    def speak_all(self, texts: list[str]):
        """Speak summaries in order"""
        for text in texts:
            self.speak(text)
