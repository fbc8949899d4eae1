"""OpenID Connect discovery document fetching and parsing.

The resolver turns a provider site into a ``DiscoveryMetadata`` record with a
single GET. It does not cache: the factory resolves once per provider build
and callers that want to reuse metadata keep the ``Provider`` around.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final

from .errors import DiscoveryInvalid, DiscoveryUnavailable, MalformedDocument, TransportError
from .models import DiscoveryMetadata

if TYPE_CHECKING:
    from .protocols import Transport

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH: Final[str] = "/.well-known/openid-configuration"
"""Standard discovery path appended to a provider site."""

_REQUIRED_FIELDS: Final[tuple[str, ...]] = (
    "issuer",
    "authorization_endpoint",
    "token_endpoint",
)


def discovery_url(site: str, well_known_path: str = WELL_KNOWN_PATH) -> str:
    """Return the discovery URL for ``site``.

    The well-known path is appended unless ``site`` already ends with it, so
    both ``https://idp.example`` and
    ``https://idp.example/.well-known/openid-configuration`` are accepted.
    """
    base = site.rstrip("/")
    if base.endswith(well_known_path.rstrip("/")):
        return base
    return base + well_known_path


def strip_well_known(site: str, well_known_path: str = WELL_KNOWN_PATH) -> str:
    """Return ``site`` without a trailing well-known discovery path."""
    base = site.rstrip("/")
    suffix = well_known_path.rstrip("/")
    if base.endswith(suffix):
        return base[: -len(suffix)]
    return site


def _optional_str(document: Mapping[str, Any], name: str) -> str | None:
    value = document.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DiscoveryInvalid(f"Discovery field '{name}' must be a string")
    return value


def parse_metadata(document: Any) -> DiscoveryMetadata:
    """Validate a decoded discovery document and normalize it.

    Raises:
        DiscoveryInvalid: The document is not an object, a required field is
            missing or empty, or a field has the wrong type.
    """
    if not isinstance(document, Mapping):
        raise DiscoveryInvalid("Discovery document is not a JSON object")

    missing = [
        name
        for name in _REQUIRED_FIELDS
        if not isinstance(document.get(name), str) or not document[name]
    ]
    if missing:
        raise DiscoveryInvalid(f"Discovery document missing required fields: {', '.join(missing)}")

    scopes = document.get("scopes_supported")
    if scopes is not None:
        if not isinstance(scopes, list) or not all(isinstance(s, str) for s in scopes):
            raise DiscoveryInvalid("Discovery field 'scopes_supported' must be a list of strings")
        scopes = frozenset(scopes)

    return DiscoveryMetadata(
        issuer=document["issuer"],
        authorization_endpoint=document["authorization_endpoint"],
        token_endpoint=document["token_endpoint"],
        jwks_uri=_optional_str(document, "jwks_uri"),
        scopes_supported=scopes,
        userinfo_endpoint=_optional_str(document, "userinfo_endpoint"),
        end_session_endpoint=_optional_str(document, "end_session_endpoint"),
    )


class DiscoveryResolver:
    """Fetches and parses a provider's discovery document.

    Example:
        ```python
        resolver = DiscoveryResolver(HttpxTransport())
        metadata = await resolver.resolve("https://login.windows.net/common")
        metadata.jwks_uri
        ```
    """

    def __init__(self, transport: Transport, well_known_path: str = WELL_KNOWN_PATH) -> None:
        self._transport = transport
        self._well_known_path = well_known_path

    async def resolve(self, site: str) -> DiscoveryMetadata:
        """Fetch the discovery document for ``site``.

        Raises:
            DiscoveryUnavailable: The transport call failed.
            DiscoveryInvalid: The body is not JSON or is missing required fields.
        """
        url = discovery_url(site, self._well_known_path)
        try:
            document = await self._transport.get_json(url)
        except TransportError as e:
            raise DiscoveryUnavailable(f"Discovery request to {url} failed") from e
        except MalformedDocument as e:
            raise DiscoveryInvalid(f"Discovery response from {url} was not JSON") from e

        metadata = parse_metadata(document)
        logger.info(
            "oidc_discovery_success",
            extra={"url": url, "issuer": metadata.issuer, "jwks_uri": metadata.jwks_uri},
        )
        return metadata
