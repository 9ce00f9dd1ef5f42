"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Route Engine API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the service.")
    user_agent: str = "fleetroute/0.1"

    # Provider ordering
    route_provider_order: tuple[str, ...] = Field(
        default=("here", "openrouteservice", "osrm"),
        description="Routing providers tried in order before the local straight-line estimate.",
    )
    place_provider_order: tuple[str, ...] = Field(
        default=("address_search", "commune_search"),
        description="Remote place providers tried after the local gazetteer.",
    )
    provider_min_interval_ms: dict[str, int] = Field(
        default={
            "here": 200,
            "openrouteservice": 1000,
            "osrm": 1000,
            "address_search": 300,
            "commune_search": 100,
        },
        description="Minimum spacing between two dispatched calls to the same provider.",
    )

    # Credentials and endpoints
    here_api_key: Optional[str] = Field(default=None, description="HERE Routing v8 API key.")
    ors_api_key: Optional[str] = Field(default=None, description="OpenRouteService API key.")
    here_base_url: str = "https://router.hereapi.com/v8"
    ors_base_url: str = "https://api.openrouteservice.org/v2"
    osrm_base_url: str = "https://router.project-osrm.org"
    address_api_base_url: str = "https://api-adresse.data.gouv.fr"
    commune_api_base_url: str = "https://geo.api.gouv.fr"

    # Timeouts
    request_timeout_seconds: float = Field(
        default=20.0, gt=0.0, description="Wall-clock bound for a whole provider fallback chain."
    )
    provider_attempt_timeout_seconds: float = Field(
        default=8.0, gt=0.0, description="Bound for a single provider attempt."
    )
    http_connect_timeout_seconds: float = Field(default=5.0, gt=0.0)

    # Cache bounds (None keeps entries until an explicit clear)
    cache_ttl_seconds: Optional[float] = Field(default=None, gt=0.0)
    cache_max_entries: Optional[int] = Field(default=None, ge=1)

    # Local straight-line estimate
    local_estimate_detour_factor: float = Field(default=1.3, ge=1.0)
    local_estimate_speed_kmh: float = Field(default=60.0, gt=0.0)

    # Places
    gazetteer_file: Path = Field(
        default=_PACKAGE_ROOT / "data" / "gazetteer.json",
        description="JSON data asset listing known places.",
    )
    min_query_length: int = Field(default=3, ge=2)
    default_location_label: str = "Paris"
    default_location_latitude: float = Field(default=48.8566, ge=-90.0, le=90.0)
    default_location_longitude: float = Field(default=2.3522, ge=-180.0, le=180.0)
    address_search_limit: int = Field(default=8, ge=1, le=15)

    # Route summary
    fuel_consumption_l_per_100km: float = Field(default=8.0, ge=0.0)
    fuel_price_per_litre: float = Field(default=1.5, ge=0.0)

    @field_validator("gazetteer_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("route_provider_order", "place_provider_order", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()

    def min_interval_seconds(self, provider: str) -> float:
        return self.provider_min_interval_ms.get(provider, 0) / 1000.0


settings = Settings()
