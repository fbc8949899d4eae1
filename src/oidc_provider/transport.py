"""Default Transport implementation backed by ``httpx.AsyncClient``.

The engine only ever needs "GET a URL and give me JSON". Everything else
(timeouts, proxies, TLS settings, retries via ``httpx.AsyncHTTPTransport``)
is configured on the client, so callers that need custom behaviour pass their
own ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

import httpx

from .errors import MalformedDocument, TransportError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT: Final[float] = 10.0
"""Default request timeout in seconds."""


class HttpxTransport:
    """Transport that fetches JSON documents with httpx.

    Example:
        ```python
        async with HttpxTransport(timeout=5.0) as transport:
            provider = await ProviderFactory(transport).create(options)
        ```

    Attributes:
        _client: The underlying ``httpx.AsyncClient``.
        _owns_client: Whether ``aclose`` should close the client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers=dict(headers or {}),
            follow_redirects=True,
        )

    async def get_json(self, url: str) -> Any:
        try:
            response = await self._client.get(url, headers={"Accept": "application/json"})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "http_get_failed",
                extra={"url": url, "error_type": e.__class__.__name__},
            )
            raise TransportError(f"GET {url} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedDocument(f"GET {url} did not return JSON") from e

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
