"""Routing and place provider adapters."""

from .address_search import AddressSearchProvider
from .base import HttpProvider, Provider
from .commune_search import CommuneSearchProvider
from .here import HereTruckProvider
from .local import LocalEstimateProvider
from .ors import OpenRouteServiceProvider
from .osrm import OsrmProvider

__all__ = [
    "AddressSearchProvider",
    "CommuneSearchProvider",
    "HereTruckProvider",
    "HttpProvider",
    "LocalEstimateProvider",
    "OpenRouteServiceProvider",
    "OsrmProvider",
    "Provider",
]
