"""Place narration through a large language model."""

import json
import time
from abc import ABC, abstractmethod
from typing import Optional

from .config import ExplorerConfig, PLACE_SYSTEM_PROMPT, PLACE_USER_PROMPT_PARTS
from .errors import ConfigError, SummarizerError
from .logger import Logger, quiet_logger
from .models import PlaceInfo
from .quality import fine_tune_response


class Summarizer(ABC):
    """Turns a place description into a few sentences of narration"""

    @abstractmethod
    def summarize(self, place: PlaceInfo, max_sentences: int,
                  relative_direction: Optional[str] = None) -> Optional[str]:
        """Return narration text, or None when the model produced nothing.

        Raises SummarizerError on hard failures.
        """


class PlaceholderSummarizer(Summarizer):
    """Offline stand-in that never calls a model"""

    def summarize(self, place: PlaceInfo, max_sentences: int,
                  relative_direction: Optional[str] = None) -> Optional[str]:
        return f"[Test Mode] Summary for: {place.name}"


def refine_place(place: PlaceInfo, relative_direction: Optional[str] = None) -> dict:
    """Reduce a place to the fields the model needs to identify it"""
    refined = {
        "name": place.name,
        "osm_id": place.osm_id if place.osm_id is not None else "",
        "osm_type": place.osm_type or "",
    }
    if place.category != "unknown":
        refined["category"] = f"{place.place_type}={place.category}"
    if place.tags.get("description"):
        refined["description"] = place.tags["description"]
    if place.distance_m is not None:
        refined["distance_m"] = int(place.distance_m)
    if relative_direction:
        refined["relative_direction"] = relative_direction
    return refined


def build_prompt(place: PlaceInfo, max_sentences: int, language: str = "en",
                 relative_direction: Optional[str] = None) -> str:
    place_json = json.dumps(refine_place(place, relative_direction), ensure_ascii=False)
    parts = [
        part.replace("{place_json}", place_json)
            .replace("{max_sentences}", str(max_sentences))
            .replace("{language}", language)
        for part in PLACE_USER_PROMPT_PARTS
    ]
    return "\n".join(parts)


def is_rate_limited(error: Exception) -> bool:
    if getattr(error, "code", None) == 429:
        return True
    message = str(error)
    return "429" in message or "resource exhausted" in message.lower()


class GeminiSummarizer(Summarizer):
    """Narration via the Gemini API (google-genai)"""

    MAX_RETRIES = 2
    RETRY_DELAY_S = 5.0
    RETRY_DELAY_STEP_S = 2.0

    def __init__(self, config: ExplorerConfig, client=None, logger: Optional[Logger] = None,
                 sleep=time.sleep):
        if client is None:
            if not config.gemini_api_key:
                raise ConfigError(
                    "GEMINI_API_KEY is required. "
                    "Get an API key at: https://aistudio.google.com/app/apikey"
                )
            from google import genai
            client = genai.Client(api_key=config.gemini_api_key)
        self.client = client
        self.config = config
        self.logger = logger or quiet_logger()
        self.sleep = sleep

    def _generation_config(self):
        from google.genai import types
        return types.GenerateContentConfig(
            system_instruction=PLACE_SYSTEM_PROMPT,
            temperature=self.config.gemini_temperature,
            max_output_tokens=self.config.gemini_max_tokens,
        )

    def summarize(self, place: PlaceInfo, max_sentences: int,
                  relative_direction: Optional[str] = None) -> Optional[str]:
        prompt = build_prompt(place, max_sentences, self.config.language, relative_direction)
        self.logger.log("Generating summary", {"name": place.name, "max_sentences": max_sentences})

        delay = self.RETRY_DELAY_S
        for attempt in range(self.MAX_RETRIES + 1):
            try:
                response = self.client.models.generate_content(
                    model=self.config.gemini_model,
                    contents=prompt,
                    config=self._generation_config(),
                )
                break
            except Exception as e:
                if not is_rate_limited(e):
                    raise SummarizerError(f"Gemini request failed for {place.name}: {e}") from e
                if attempt == self.MAX_RETRIES:
                    raise SummarizerError(
                        f"Gemini rate limit persisted after {attempt + 1} attempts"
                    ) from e
                self.logger.log("Gemini rate limited", {
                    "attempt": attempt + 1, "delay_s": delay
                })
                self.sleep(delay)
                delay += self.RETRY_DELAY_STEP_S

        try:
            text = response.text
        except (AttributeError, ValueError) as e:
            raise SummarizerError(f"Malformed Gemini response for {place.name}: {e}") from e
        if not text or not text.strip():
            self.logger.log("Gemini returned empty response", {"name": place.name})
            return None
        return fine_tune_response(text.strip())


def make_summarizer(config: ExplorerConfig, logger: Optional[Logger] = None) -> Summarizer:
    if config.placeholder_summaries:
        return PlaceholderSummarizer()
    return GeminiSummarizer(config, logger=logger)
