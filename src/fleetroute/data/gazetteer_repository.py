"""Gazetteer loader backed by the packaged JSON data asset."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from ..config import settings
from ..models.domain import Coordinate
from ..services.places.normalize import normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GazetteerEntry:
    key: str
    name: str
    coordinate: Coordinate
    postal_code: Optional[str] = None
    population: Optional[int] = None

    @property
    def components(self) -> tuple[str, ...]:
        return tuple(self.key.split())


def _parse_entry(row: dict) -> GazetteerEntry:
    name = str(row["name"]).strip()
    return GazetteerEntry(
        key=normalize_text(row.get("key") or name),
        name=name,
        coordinate=Coordinate(float(row["latitude"]), float(row["longitude"])),
        postal_code=row.get("postal_code"),
        population=int(row["population"]) if row.get("population") is not None else None,
    )


@lru_cache(maxsize=4)
def load_gazetteer(source: Optional[Path] = None) -> tuple[GazetteerEntry, ...]:
    path = source or settings.gazetteer_file
    if not path.exists():
        raise FileNotFoundError(f"Gazetteer file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        rows = json.load(handle)
    if not isinstance(rows, list):
        raise ValueError(f"Gazetteer file '{path}' must contain a JSON list.")

    entries: list[GazetteerEntry] = []
    for row in rows:
        try:
            entries.append(_parse_entry(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping invalid gazetteer row %r: %s", row, exc)
    logger.info("Loaded %d gazetteer entries from %s", len(entries), path)
    return tuple(entries)
