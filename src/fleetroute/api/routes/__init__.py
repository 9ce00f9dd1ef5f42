"""Route group exports."""

from . import health, places, routes, vehicles

__all__ = ["health", "places", "routes", "vehicles"]
