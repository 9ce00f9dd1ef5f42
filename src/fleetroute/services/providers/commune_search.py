"""Adapter for the French communes API (geo.api.gouv.fr).

Communes are located by their centre, so every match is approximate.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...errors import ProviderUnavailable
from ...models.domain import Coordinate, PlaceMatch
from ..places.normalize import extract_candidates, find_postal_code, normalize_text
from ..throttle import text_key
from .base import HttpProvider

logger = logging.getLogger(__name__)

_FIELDS = "nom,code,codesPostaux,centre,population"


def commune_query(text: str) -> Optional[dict[str, str]]:
    """Query parameters for ``text``: the postal code when present, else the last candidate word."""

    postal_code = find_postal_code(text)
    if postal_code:
        return {"codePostal": postal_code}
    candidates = extract_candidates(text)
    if not candidates:
        return None
    return {"nom": candidates[-1]}


def pick_commune(communes: list[dict[str, Any]], name: Optional[str]) -> dict[str, Any]:
    """Exact name match first, then the most populated commune."""

    located = [item for item in communes if (item.get("centre") or {}).get("coordinates")]
    if not located:
        raise ProviderUnavailable("no commune with a known centre")
    if name:
        for commune in located:
            if normalize_text(commune.get("nom", "")) == name:
                return commune
    return max(located, key=lambda item: item.get("population") or 0)


class CommuneSearchProvider(HttpProvider[str, PlaceMatch]):
    name = "commune_search"

    def is_applicable(self, request: str) -> Optional[str]:
        if commune_query(request) is None:
            return "no place-name candidate in query"
        return None

    def cache_key(self, request: str) -> str:
        return text_key(request)

    async def resolve(self, request: str) -> PlaceMatch:
        query = commune_query(request)
        if query is None:
            raise ProviderUnavailable("no place-name candidate in query")
        params = {**query, "fields": _FIELDS, "format": "json", "geometry": "centre"}
        communes = await self._get_json("/communes", params=params)
        if not isinstance(communes, list) or not communes:
            raise ProviderUnavailable(f"no commune found for {request!r}")

        commune = pick_commune(communes, query.get("nom"))
        try:
            lon, lat = commune["centre"]["coordinates"][:2]
            coordinate = Coordinate(float(lat), float(lon))
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderUnavailable(f"commune payload malformed: {exc}") from exc

        postal_codes = commune.get("codesPostaux") or []
        postal_code = query.get("codePostal") or (postal_codes[0] if postal_codes else None)
        label = commune.get("nom", "")
        if postal_code:
            label = f"{label} ({postal_code})"
        return PlaceMatch(
            label=label,
            coordinate=coordinate,
            is_approximate=True,
            population=commune.get("population"),
            postal_code=postal_code,
            source=self.name,
        )
