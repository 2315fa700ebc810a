"""Screening of generated summaries that carry no real information."""

import re
from typing import Optional

from .config import (
    LOW_INFO_CONTEXT_KEYWORDS,
    LOW_INFO_GENERIC_KEYWORDS,
    LOW_INFO_NEGATION_KEYWORDS,
    LOW_INFO_SCORE_LIMIT,
    LOW_INFO_SPECULATIVE_KEYWORDS,
    LOW_INFO_VAGUE_PATTERNS,
)


class SummaryQualityFilter:
    """Flags templated non-answers such as "no specific details are available".

    Two independent checks, either of which rejects a text:
    - a negation keyword together with an information-context keyword;
    - generic, speculative and vague-pattern matches adding up to score_limit.
    It is a heuristic: some low-information texts will get through.
    """

    def __init__(self, negation: Optional[list[str]] = None, context: Optional[list[str]] = None,
                 generic: Optional[list[str]] = None, speculative: Optional[list[str]] = None,
                 patterns: Optional[list[str]] = None, score_limit: int = LOW_INFO_SCORE_LIMIT):
        self.negation = [k.lower() for k in (negation or LOW_INFO_NEGATION_KEYWORDS)]
        self.context = [k.lower() for k in (context or LOW_INFO_CONTEXT_KEYWORDS)]
        self.generic = [k.lower() for k in (generic or LOW_INFO_GENERIC_KEYWORDS)]
        self.speculative = [k.lower() for k in (speculative or LOW_INFO_SPECULATIVE_KEYWORDS)]
        self.patterns = [re.compile(p) for p in (patterns or LOW_INFO_VAGUE_PATTERNS)]
        self.score_limit = score_limit

    def is_low_information(self, text: Optional[str]) -> Optional[str]:
        """Return the reason a text should be discarded, or None to keep it"""
        if not text:
            return None
        normalized = text.lower()

        negation = [k for k in self.negation if k in normalized]
        context = [k for k in self.context if k in normalized]
        if negation and context:
            return f"explicit_negation: {negation[0]} + {context[0]}"

        generic = [k for k in self.generic if k in normalized]
        speculative = [k for k in self.speculative if k in normalized]
        vague = [p.pattern for p in self.patterns if p.search(normalized)]

        score = len(generic) + len(speculative) + len(vague)
        if score >= self.score_limit:
            indicators = []
            if generic:
                indicators.append(f"{len(generic)} generic")
            if speculative:
                indicators.append(f"{len(speculative)} speculative")
            if vague:
                indicators.append(f"{len(vague)} vague patterns")
            return f"low_information_content: score={score} ({', '.join(indicators)})"
        return None


def fine_tune_response(text: str) -> str:
    """Spell out compact distance units so speech reads them naturally"""
    if not text:
        return text
    text = re.sub(r"(\d+)\s?km\b", r"\1 kilometers", text)
    return re.sub(r"(\d+)\s?m\b", r"\1 meters", text)
