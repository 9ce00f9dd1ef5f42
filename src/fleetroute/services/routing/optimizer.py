"""Nearest-neighbour ordering of intermediate stops.

This is a heuristic: it usually shortens the straight-line path but gives
no guarantee of reaching the shortest order. Results are deterministic,
ties go to the stop that came first in the input.
"""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Coordinate
from ..geospatial import haversine_m, path_length_m


def order_indices(start: Coordinate, stops: Sequence[Coordinate]) -> list[int]:
    remaining = list(range(len(stops)))
    order: list[int] = []
    current = start
    while remaining:
        # min() keeps the first of equal keys, which gives input-order tie breaking.
        nearest = min(remaining, key=lambda index: haversine_m(current, stops[index]))
        remaining.remove(nearest)
        order.append(nearest)
        current = stops[nearest]
    return order


def optimize_order(start: Coordinate, stops: Sequence[Coordinate], end: Coordinate) -> list[Coordinate]:
    """Reorder ``stops`` between a fixed ``start`` and ``end``.

    The end does not influence the choice; it is only the last hop of the path.
    """

    if len(stops) <= 1:
        return list(stops)
    return [stops[index] for index in order_indices(start, stops)]


def total_path_length_m(start: Coordinate, stops: Sequence[Coordinate], end: Coordinate) -> float:
    return path_length_m([start, *stops, end])
