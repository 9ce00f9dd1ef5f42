"""Exception types shared across the engine."""

from __future__ import annotations


class ProviderUnavailable(Exception):
    """A provider failed, answered with an error status or sent an unusable payload."""


class InvalidCoordinate(ValueError):
    """Latitude or longitude outside of the valid range."""


class InvalidRouteRequest(ValueError):
    """A route request that violates the caller contract (fewer than two waypoints, ...)."""


class InvalidPlaceQuery(ValueError):
    """A place query too short to be resolved."""
