"""Protocol definitions for the provider configuration engine.

This module defines structural interfaces using Protocol (PEP 544) for:
- HTTP transport (discovery and JWKS fetches)
- Key resolution for token verification

Any class that implements the required methods satisfies the protocol, so tests
and applications can plug in their own transport without inheriting anything.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

if TYPE_CHECKING:
    from jwt import PyJWK

    from .models import CallerOptions

# ============================================================================
# Type Aliases
# ============================================================================

Claims: TypeAlias = Mapping[str, Any]
"""Represents the decoded JWT payload as an immutable mapping."""

Overlay: TypeAlias = Callable[["CallerOptions"], "CallerOptions"]
"""A vendor preset applied as a fixed-field overlay on caller options."""


# ============================================================================
# Core Protocols
# ============================================================================


class Transport(Protocol):
    """Protocol for the HTTP collaborator used for discovery and JWKS fetches.

    Timeouts, retries and connection pooling are the transport's concern. The
    engine issues exactly one call per fetch and fails fast.
    """

    async def get_json(self, url: str) -> Any:
        """GET ``url`` and return the decoded JSON body.

        Raises:
            TransportError: Connection failure, timeout or non-2xx status.
            MalformedDocument: The body is not valid JSON.
        """
        ...


class KeyLookup(Protocol):
    """Protocol for resolving a verification key by its id."""

    async def get(self, kid: str) -> PyJWK:
        """Return the key for ``kid``, refreshing once on a miss.

        Raises:
            KeyNotFound: The kid is unknown after a refresh.
            KeySetUnavailable: The refresh itself failed.
        """
        ...
