"""Local place lookup over the gazetteer data asset."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ...data.gazetteer_repository import GazetteerEntry
from .normalize import STOP_WORDS, extract_candidates, is_fuzzy_match, normalize_text, positional_similarity

MIN_COMPONENT_LENGTH = 4


@dataclass(slots=True)
class GazetteerHit:
    entry: GazetteerEntry
    method: str  # "contains", "component" or "fuzzy"
    matched: str
    score: float


class Gazetteer:
    """Looks places up by, in order: whole-key containment, name component, near match."""

    def __init__(self, entries: Iterable[GazetteerEntry], fuzzy_threshold: float = 0.8) -> None:
        # Longer keys first so "aix en provence" wins over any shorter key it contains.
        self.entries = sorted(entries, key=lambda entry: len(entry.key), reverse=True)
        self.fuzzy_threshold = fuzzy_threshold

    def __len__(self) -> int:
        return len(self.entries)

    def _components(self, entry: GazetteerEntry) -> list[str]:
        return [
            part
            for part in entry.components
            if len(part) >= MIN_COMPONENT_LENGTH and part not in STOP_WORDS
        ]

    def find_contained(self, normalized: str) -> Optional[GazetteerHit]:
        padded = f" {normalized} "
        for entry in self.entries:
            if f" {entry.key} " in padded:
                return GazetteerHit(entry, "contains", entry.key, 1.0)
        return None

    def find_component(self, candidates: list[str]) -> Optional[GazetteerHit]:
        for candidate in candidates:
            for entry in self.entries:
                if candidate in self._components(entry):
                    return GazetteerHit(entry, "component", candidate, 0.9)
        return None

    def find_fuzzy(self, candidates: list[str]) -> Optional[GazetteerHit]:
        best: Optional[GazetteerHit] = None
        for candidate in candidates:
            for entry in self.entries:
                for part in self._components(entry):
                    if not is_fuzzy_match(candidate, part, self.fuzzy_threshold):
                        continue
                    score = positional_similarity(candidate, part)
                    if best is None or score > best.score:
                        best = GazetteerHit(entry, "fuzzy", candidate, score)
        return best

    def lookup(self, text: str) -> Optional[GazetteerHit]:
        normalized = normalize_text(text)
        if not normalized:
            return None
        hit = self.find_contained(normalized)
        if hit is not None:
            return hit
        candidates = extract_candidates(text)
        return self.find_component(candidates) or self.find_fuzzy(candidates)
