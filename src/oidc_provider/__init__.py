"""
OpenID Connect discovery and OAuth2 provider configuration.

High-level flow (per provider)
------------------------------
1. `ProviderFactory.create(options, preset)` runs.
2. A vendor preset (e.g. `AZURE_AD`) overlays its fixed fields on the options.
3. `DiscoveryResolver.resolve(site)` fetches `/.well-known/openid-configuration`
   when discovery was requested.
4. `build_config(...)` merges caller options > preset > discovery > defaults
   into an immutable `ProviderConfig`, substituting `{tenant}`.
5. If a JWKS URI is known, a `KeySetCache` is filled with the provider's keys.
6. The resulting `Provider` is shared read-only by token operations;
   `JWTVerifier` verifies tokens against it.

Notes
-----
- Nothing is retried automatically. Failures raise a `ProviderError`
  subclass and no partial provider is returned.
- Key refreshes are single-flight: concurrent misses share one fetch.
- The client secret is never logged or included in `repr`.

Example usage
-------------

.. code-block:: python

    from oidc_provider import (
        AZURE_AD,
        HttpxTransport,
        JWTVerifier,
        ProviderFactory,
        azure_ad_options,
    )

    async with HttpxTransport(timeout=5.0) as transport:
        factory = ProviderFactory(transport, key_ttl=3600)
        provider = await factory.create(
            azure_ad_options("client-id", "secret", "tenant-guid", discovery=True),
            AZURE_AD,
        )
        claims = await JWTVerifier.from_provider(provider).verify(raw_token)
"""

import logging

# Builder
from .builder import build_config, substitute_tenant

# Configuration
from .config import load_options

# Discovery
from .discovery import DiscoveryResolver, discovery_url, strip_well_known

# Errors
from .errors import (
    Cancelled,
    DiscoveryInvalid,
    DiscoveryUnavailable,
    ExpiredToken,
    InvalidToken,
    KeyNotFound,
    KeySetUnavailable,
    MalformedDocument,
    MissingTenant,
    ProviderError,
    TransportError,
)

# Factory
from .factory import BuildState, Provider, ProviderBuild, ProviderFactory

# Key cache
from .keyset import KeySet, KeySetCache

# Models
from .models import CallerOptions, DiscoveryMetadata, FlowType, ProviderConfig

# Presets
from .presets import VendorPreset

# Protocols
from .protocols import Claims, KeyLookup, Overlay, Transport

# Refresh gate
from .refresh_gate import RefreshGate

# Transport
from .transport import HttpxTransport

# Vendors
from .vendors import AZURE_AD, azure_ad_options, create_azure_ad, discover_azure_ad

# Verifier
from .verifier import JWTVerifier, JWTVerifyOptions

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Errors
    "Cancelled",
    "DiscoveryInvalid",
    "DiscoveryUnavailable",
    "ExpiredToken",
    "InvalidToken",
    "KeyNotFound",
    "KeySetUnavailable",
    "MalformedDocument",
    "MissingTenant",
    "ProviderError",
    "TransportError",
    # Protocols
    "Claims",
    "KeyLookup",
    "Overlay",
    "Transport",
    # Models
    "CallerOptions",
    "DiscoveryMetadata",
    "FlowType",
    "ProviderConfig",
    # Discovery
    "DiscoveryResolver",
    "discovery_url",
    "strip_well_known",
    # Builder
    "build_config",
    "substitute_tenant",
    # Presets
    "VendorPreset",
    # Key cache
    "KeySet",
    "KeySetCache",
    # Refresh gate
    "RefreshGate",
    # Factory
    "BuildState",
    "Provider",
    "ProviderBuild",
    "ProviderFactory",
    # Transport
    "HttpxTransport",
    # Configuration
    "load_options",
    # Vendors
    "AZURE_AD",
    "azure_ad_options",
    "create_azure_ad",
    "discover_azure_ad",
    # Verifier
    "JWTVerifier",
    "JWTVerifyOptions",
]
