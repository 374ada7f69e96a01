"""Transcript sentiment scoring.

Sentiment sits behind :class:`SentimentScorer` so a model-backed scorer can
replace the keyword heuristic without touching the aggregation jobs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

POSITIVE_WORDS = frozenset({
    "happy", "good", "great", "wonderful", "amazing", "love",
    "excited", "grateful", "thankful", "accomplished", "proud", "success",
})

NEGATIVE_WORDS = frozenset({
    "sad", "bad", "terrible", "awful", "hate", "angry",
    "frustrated", "worried", "anxious", "stressed", "depressed", "fail",
})

_WORD_SPLIT = re.compile(r"\W+")


@dataclass
class Sentiment:
    score: float        # -1 .. 1
    label: str          # 'positive' | 'negative' | 'neutral'
    magnitude: float    # share of words carrying sentiment


@runtime_checkable
class SentimentScorer(Protocol):
    """Maps transcript text to a sentiment."""

    def score(self, text: str) -> Sentiment:
        ...


class KeywordSentimentScorer:
    """Counts positive and negative keywords.

    ``score = (positive - negative) / (positive + negative)``, 0 when the text
    holds no sentiment words.
    """

    def __init__(
        self,
        positive_words: frozenset[str] = POSITIVE_WORDS,
        negative_words: frozenset[str] = NEGATIVE_WORDS,
    ) -> None:
        self._positive = positive_words
        self._negative = negative_words

    def score(self, text: str) -> Sentiment:
        words = _WORD_SPLIT.split((text or "").lower())
        positive = sum(1 for w in words if w in self._positive)
        negative = sum(1 for w in words if w in self._negative)
        total = positive + negative

        score = (positive - negative) / total if total else 0.0
        score = max(-1.0, min(1.0, score))

        if score > 0.2:
            label = "positive"
        elif score < -0.2:
            label = "negative"
        else:
            label = "neutral"

        return Sentiment(
            score=score,
            label=label,
            magnitude=total / len(words) if words else 0.0,
        )
