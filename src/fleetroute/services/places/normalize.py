"""Text normalisation and near-match helpers for place names.

All functions are pure; the gazetteer and the resolver build on them.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

STOP_WORDS = frozenset(
    {
        "ecole", "primaire", "college", "lycee", "mairie", "centre", "ville",
        "rue", "avenue", "place", "boulevard", "chemin", "route", "voie",
        "nord", "sud", "est", "ouest", "haut", "bas", "grand", "petit",
        "nouveau", "vieux", "saint", "sainte",
    }
)

ABBREVIATIONS = {
    "st": "saint",
    "ste": "sainte",
    "av": "avenue",
    "bd": "boulevard",
    "pl": "place",
}

_NON_WORD = re.compile(r"[^a-z0-9]+")
_ALPHA_WORD = re.compile(r"^[a-z]+$")
_POSTAL_CODE = re.compile(r"\b(\d{5})\b")
_ABBREVIATION = re.compile(r"\b(" + "|".join(ABBREVIATIONS) + r")\b\.?", re.IGNORECASE)


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalize_text(text: str) -> str:
    """Lowercase, strip accents, turn apostrophes/punctuation/whitespace into single spaces."""

    lowered = strip_diacritics(text).lower()
    return _NON_WORD.sub(" ", lowered).strip()


def words(text: str) -> list[str]:
    normalized = normalize_text(text)
    return normalized.split() if normalized else []


def extract_candidates(text: str) -> list[str]:
    """Words of ``text`` that could be a place name, in input order."""

    return [
        word
        for word in words(text)
        if len(word) >= 3 and word not in STOP_WORDS and _ALPHA_WORD.match(word)
    ]


def word_combinations(tokens: list[str]) -> list[str]:
    """Adjacent two- and three-word phrases, for compound place names."""

    combos = [f"{tokens[i]} {tokens[i + 1]}" for i in range(len(tokens) - 1)]
    combos.extend(f"{tokens[i]} {tokens[i + 1]} {tokens[i + 2]}" for i in range(len(tokens) - 2))
    return combos


def positional_similarity(first: str, second: str) -> float:
    """Share of positions holding the same character, over the longer word."""

    longest = max(len(first), len(second))
    if longest == 0:
        return 1.0
    same = sum(1 for a, b in zip(first, second) if a == b)
    return same / longest


def is_fuzzy_match(first: str, second: str, threshold: float = 0.8) -> bool:
    if len(first) < 4 or len(second) < 4:
        return False
    if abs(len(first) - len(second)) > 2:
        return False
    return positional_similarity(first, second) >= threshold


def expand_abbreviations(text: str) -> str:
    """Spell out street-type and saint abbreviations ("st" -> "saint", "bd" -> "boulevard")."""

    return _ABBREVIATION.sub(lambda match: ABBREVIATIONS[match.group(1).lower()], text)


def find_postal_code(text: str) -> Optional[str]:
    match = _POSTAL_CODE.search(text)
    return match.group(1) if match else None
