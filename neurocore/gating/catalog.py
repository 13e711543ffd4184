from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ContentType = Literal["podcast", "article", "book"]

DemandTier = Literal["LOW", "MEDIUM", "HIGH", "VERY_HIGH"]

READING_TYPES: frozenset[str] = frozenset({"article", "book"})


@dataclass(slots=True, frozen=True)
class ContentItem:
    id: str
    title: str
    content_type: ContentType
    demand: DemandTier

    @property
    def is_reading(self) -> bool:
        return self.content_type in READING_TYPES


DEFAULT_CATALOG: tuple[ContentItem, ...] = (
    ContentItem("pod-freakonomics", "Freakonomics Radio", "podcast", "LOW"),
    ContentItem("pod-hidden-brain", "Hidden Brain", "podcast", "LOW"),
    ContentItem("pod-philosophize", "Philosophize This!", "podcast", "MEDIUM"),
    ContentItem("pod-planet-money", "Planet Money", "podcast", "MEDIUM"),
    ContentItem("pod-in-our-time", "In Our Time", "podcast", "HIGH"),
    ContentItem("pod-intelligence-squared", "Intelligence Squared", "podcast", "HIGH"),
    ContentItem("pod-philosophy-gaps", "History of Philosophy Without Any Gaps", "podcast", "VERY_HIGH"),
    ContentItem("art-letters-stoic", "Letters from a Stoic (Selected)", "article", "LOW"),
    ContentItem("art-bounded-rationality", "Bounded Rationality in Practice", "article", "MEDIUM"),
    ContentItem("art-judgment-uncertainty", "Judgment Under Uncertainty", "article", "HIGH"),
    ContentItem("book-thinking-fast-slow", "Thinking, Fast and Slow", "book", "MEDIUM"),
    ContentItem("book-godel-escher-bach", "Godel, Escher, Bach", "book", "VERY_HIGH"),
)
