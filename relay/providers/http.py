"""Common httpx plumbing for the JSON-over-HTTP backends."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from relay.personas import PersonaRegistry
from relay.providers.base import ProviderError


class HttpProvider:
    """Base for adapters that talk to a model API through httpx.

    Owns one AsyncClient. Every non-2xx status, timeout, transport error
    or malformed body surfaces as ProviderError so the router can move on.
    No retries here; fallback is the router's job.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        personas: PersonaRegistry,
        allowed_signals: Sequence[str],
        timeout_connect: float = 10.0,
        timeout_read: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._personas = personas
        self._allowed_signals = tuple(allowed_signals)
        self._http = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(connect=timeout_connect, read=timeout_read, write=10.0, pool=10.0),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    async def _post_json(self, path: str, payload: dict[str, Any], params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            response = await self._http.post(path, json=payload, params=params)
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"HTTP error: {e}") from e

        if response.status_code != 200:
            raise ProviderError(self.name, f"API error ({response.status_code}): {response.text[:500]}")
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.name, f"response body is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError(self.name, "response body is not a JSON object")
        return data

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._http.aclose()
