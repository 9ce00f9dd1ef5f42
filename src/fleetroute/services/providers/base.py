"""Provider contract and the HTTP plumbing shared by remote adapters."""

from __future__ import annotations

import logging
import time
from typing import Any, Generic, Optional, Protocol, TypeVar

import httpx

from ...errors import ProviderUnavailable

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", contravariant=True)
ResultT = TypeVar("ResultT", covariant=True)


class Provider(Protocol[RequestT, ResultT]):
    """Capability shared by every routing and place adapter."""

    name: str

    def is_applicable(self, request: RequestT) -> Optional[str]:
        """Return a skip reason, or None when the provider should be tried."""

    def cache_key(self, request: RequestT) -> str:
        """Normalised request signature used by the shared cache."""

    async def resolve(self, request: RequestT) -> ResultT:
        """Return a normalised result or raise on any failure."""


def _error_excerpt(response: httpx.Response, limit: int = 200) -> str:
    try:
        return (response.text or "")[:limit]
    except Exception:
        return "<no-text>"


class HttpProvider(Generic[RequestT, ResultT]):
    """Base for adapters speaking JSON over HTTP.

    Non-success statuses and undecodable bodies are raised as
    ``ProviderUnavailable``; transport errors surface as ``httpx.HTTPError``.
    Both are treated the same way by the orchestrator.
    """

    name = "http"

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")

    def is_applicable(self, request: RequestT) -> Optional[str]:
        return None

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        started = time.perf_counter()
        response = await self._client.request(method, url, params=params, json=json, headers=headers)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if not response.is_success:
            logger.warning(
                "HTTP %s %s -> %s (%.0f ms): %s",
                method,
                path,
                response.status_code,
                elapsed_ms,
                _error_excerpt(response),
            )
            raise ProviderUnavailable(f"HTTP {response.status_code} from {self.name}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderUnavailable(f"{self.name} returned invalid JSON") from exc
        logger.debug("HTTP %s %s -> %s (%.0f ms)", method, path, response.status_code, elapsed_ms)
        return data

    async def _get_json(self, path: str, params: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        return await self._request_json("GET", path, params=params, **kwargs)

    async def _post_json(self, path: str, json: dict[str, Any], **kwargs: Any) -> Any:
        return await self._request_json("POST", path, json=json, **kwargs)
