"""Adapter for the French national address API (api-adresse.data.gouv.fr)."""

from __future__ import annotations

import logging
from typing import Any

from ...errors import ProviderUnavailable
from ...models.domain import Coordinate, PlaceMatch
from ..throttle import coordinate_key, text_key
from .base import HttpProvider

logger = logging.getLogger(__name__)

MAX_LIMIT = 15


def feature_to_match(feature: dict[str, Any], source: str) -> PlaceMatch:
    properties = feature["properties"]
    lon, lat = feature["geometry"]["coordinates"][:2]
    return PlaceMatch(
        label=properties.get("label") or properties.get("name") or "",
        coordinate=Coordinate(float(lat), float(lon)),
        is_approximate=False,
        population=properties.get("population"),
        postal_code=properties.get("postcode"),
        score=properties.get("score"),
        source=source,
    )


class AddressSearchProvider(HttpProvider[str, PlaceMatch]):
    """Structured address search. Its matches are never flagged approximate."""

    name = "address_search"

    def __init__(self, client, base_url: str, limit: int = 8) -> None:
        super().__init__(client, base_url)
        self.limit = min(limit, MAX_LIMIT)

    def cache_key(self, request: str) -> str:
        return text_key(request)

    def _parse_features(self, data: Any) -> list[PlaceMatch]:
        if not isinstance(data, dict):
            raise ProviderUnavailable("address search payload is not an object")
        matches = []
        for feature in data.get("features") or []:
            try:
                matches.append(feature_to_match(feature, self.name))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping malformed address feature: %s", exc)
        return matches

    async def suggest(self, text: str, limit: int | None = None) -> list[PlaceMatch]:
        params = {"q": text, "limit": min(limit or self.limit, MAX_LIMIT), "autocomplete": 1}
        data = await self._get_json("/search/", params=params)
        return self._parse_features(data)

    async def resolve(self, request: str) -> PlaceMatch:
        matches = await self.suggest(request, limit=1)
        if not matches:
            raise ProviderUnavailable(f"no address found for {request!r}")
        return matches[0]

    def reverse_key(self, coordinate: Coordinate) -> str:
        return coordinate_key((coordinate,), "reverse")

    async def reverse(self, coordinate: Coordinate) -> PlaceMatch:
        params = {"lat": f"{coordinate.latitude:.6f}", "lon": f"{coordinate.longitude:.6f}"}
        matches = self._parse_features(await self._get_json("/reverse/", params=params))
        if not matches:
            raise ProviderUnavailable(f"no address near {coordinate}")
        return matches[0]
