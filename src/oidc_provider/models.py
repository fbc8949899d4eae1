"""Value types shared by the resolver, builder, key cache and factory.

Every type here is a frozen dataclass. Options are never mutated in place:
``CallerOptions.with_overrides`` returns a new snapshot, which is how presets
and callers layer settings on top of each other.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class FlowType(Enum):
    """OAuth2 grant flavour the provider will be used for."""

    AUTH_CODE = "auth_code"
    AUTH_JWT = "auth_jwt"
    CLIENT = "client"
    PASSWORD = "password"
    IMPLICIT = "implicit"


def _frozen_params(params: Mapping[str, str] | None) -> Mapping[str, str] | None:
    if params is None:
        return None
    return MappingProxyType(dict(params))


@dataclass(frozen=True, slots=True)
class CallerOptions:
    """Options supplied by the caller (or produced by a vendor preset overlay).

    ``None`` means "not supplied", which lets the builder tell an explicit
    caller choice apart from a library default.

    Attributes:
        client_id: OAuth2 client id. Required by the time a config is built.
        client_secret: OAuth2 client secret. Excluded from ``repr``.
        site: Provider base URL, may contain a ``{tenant}`` placeholder.
        tenant: Value substituted for ``{tenant}``.
        flow: Grant flow. Defaults to ``FlowType.AUTH_CODE`` at build time.
        discovery: Fetch the OpenID Connect discovery document before building.
    """

    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    site: str | None = None
    tenant: str | None = None
    flow: FlowType | None = None
    scope_separator: str | None = None
    extra_parameters: Mapping[str, str] | None = field(default=None, hash=False)
    validate_issuer: bool | None = None
    authorization_path: str | None = None
    token_path: str | None = None
    userinfo_path: str | None = None
    logout_path: str | None = None
    jwks_path: str | None = None
    discovery: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_parameters", _frozen_params(self.extra_parameters))

    def with_overrides(self, **changes: Any) -> CallerOptions:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def with_extra_parameters(self, **params: str) -> CallerOptions:
        """Return a copy whose extra parameters are merged with ``params``."""
        merged = dict(self.extra_parameters or {})
        merged.update(params)
        return dataclasses.replace(self, extra_parameters=merged)


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Immutable, validated configuration for one OAuth2 / OIDC provider.

    Created once by the factory and shared read-only by token operations.
    ``authorization_path`` and ``token_path`` are either paths relative to
    ``site`` or absolute endpoints taken from a discovery document; use
    ``authorization_url`` / ``token_url`` to get a usable URL either way.
    """

    site: str
    authorization_path: str
    token_path: str
    client_id: str
    client_secret: str | None = field(default=None, repr=False)
    scope_separator: str = " "
    extra_parameters: Mapping[str, str] = field(default_factory=dict, hash=False)
    validate_issuer: bool = True
    flow: FlowType = FlowType.AUTH_CODE
    issuer: str | None = None
    userinfo_path: str | None = None
    logout_path: str | None = None
    jwks_path: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_parameters", MappingProxyType(dict(self.extra_parameters)))

    def _resolve(self, path: str) -> str:
        if "://" in path:
            return path
        return f"{self.site.rstrip('/')}/{path.lstrip('/')}"

    @property
    def authorization_url(self) -> str:
        return self._resolve(self.authorization_path)

    @property
    def token_url(self) -> str:
        return self._resolve(self.token_path)

    @property
    def jwks_url(self) -> str | None:
        return self._resolve(self.jwks_path) if self.jwks_path is not None else None


@dataclass(frozen=True, slots=True)
class DiscoveryMetadata:
    """Normalized subset of an OpenID Connect discovery document."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str | None = None
    scopes_supported: frozenset[str] | None = None
    userinfo_endpoint: str | None = None
    end_session_endpoint: str | None = None
