"""Merge caller options, vendor presets and discovery metadata into a config.

Precedence, highest first:

1. fields the caller set explicitly
2. fixed fields of the vendor preset
3. fields from the discovery document
4. library defaults

``build_config`` is a pure function: no I/O, inputs are never mutated, and the
same inputs always give an equal ``ProviderConfig``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Final, TypeVar

from .discovery import strip_well_known
from .errors import DiscoveryInvalid, MissingTenant
from .models import CallerOptions, FlowType, ProviderConfig

if TYPE_CHECKING:
    from .models import DiscoveryMetadata
    from .protocols import Overlay

TENANT_PLACEHOLDER: Final[str] = "{tenant}"

DEFAULT_SCOPE_SEPARATOR: Final[str] = " "
DEFAULT_AUTHORIZATION_PATH: Final[str] = "/oauth/authorize"
DEFAULT_TOKEN_PATH: Final[str] = "/oauth/token"

ON_BEHALF_OF_PARAMETERS: Final[Mapping[str, str]] = {"requested_token_use": "on_behalf_of"}
"""Added to every AUTH_JWT config; the JWT bearer exchange is an on-behalf-of request."""


T = TypeVar("T")


def _first(*values: T | None) -> T | None:
    for value in values:
        if value is not None:
            return value
    return None


def substitute_tenant(value: str, tenant: str | None) -> str:
    """Replace ``{tenant}`` in ``value`` in a single, non-recursive pass.

    Raises:
        MissingTenant: ``value`` contains the placeholder and ``tenant`` is
            None or empty.
    """
    if TENANT_PLACEHOLDER not in value:
        return value
    if not tenant:
        raise MissingTenant(f"No tenant given for placeholder in {value!r}")
    return value.replace(TENANT_PLACEHOLDER, tenant)


def apply_preset(options: CallerOptions, preset: Overlay | None) -> CallerOptions:
    return preset(options) if preset is not None else options


def resolve_site(options: CallerOptions) -> str:
    """Return the options' site with the tenant substituted.

    A trailing well-known discovery path is removed, so the result is the
    provider base URL that issuer validation and relative paths rely on.

    Raises:
        ValueError: No site was configured.
        MissingTenant: The site needs a tenant and none was given.
    """
    if not options.site:
        raise ValueError("A provider site is required")
    return strip_well_known(substitute_tenant(options.site, options.tenant))


def build_config(
    base: CallerOptions,
    metadata: DiscoveryMetadata | None = None,
    preset: Overlay | None = None,
) -> ProviderConfig:
    """Build an immutable ProviderConfig.

    Args:
        base: Options supplied by the caller.
        metadata: Discovery metadata, when the provider was discovered.
        preset: Vendor overlay applied to ``base`` before merging.

    Returns:
        The merged, tenant-substituted configuration.

    Raises:
        ValueError: ``client_id`` or ``site`` is missing.
        MissingTenant: A ``{tenant}`` placeholder cannot be substituted.
        DiscoveryInvalid: Issuer validation is on and the discovered issuer
            does not match the site.
    """
    if metadata is not None and not base.discovery:
        base = base.with_overrides(discovery=True)
    options = apply_preset(base, preset)

    if not options.client_id:
        raise ValueError("client_id is required")

    site = resolve_site(options)
    params = {
        name: substitute_tenant(value, options.tenant)
        for name, value in (options.extra_parameters or {}).items()
    }

    flow = options.flow or FlowType.AUTH_CODE
    if flow is FlowType.AUTH_JWT:
        params.update(ON_BEHALF_OF_PARAMETERS)

    validate_issuer = _first(options.validate_issuer, True)
    issuer = None
    authorization_endpoint = token_endpoint = None
    userinfo_endpoint = end_session_endpoint = jwks_uri = None
    if metadata is not None:
        if validate_issuer and metadata.issuer.rstrip("/") != site.rstrip("/"):
            raise DiscoveryInvalid(
                f"Issuer validation failed: discovered {metadata.issuer!r}, expected {site!r}"
            )
        issuer = metadata.issuer
        authorization_endpoint = metadata.authorization_endpoint
        token_endpoint = metadata.token_endpoint
        userinfo_endpoint = metadata.userinfo_endpoint
        end_session_endpoint = metadata.end_session_endpoint
        jwks_uri = metadata.jwks_uri

    return ProviderConfig(
        site=site,
        authorization_path=_first(
            options.authorization_path, authorization_endpoint, DEFAULT_AUTHORIZATION_PATH
        ),
        token_path=_first(options.token_path, token_endpoint, DEFAULT_TOKEN_PATH),
        client_id=options.client_id,
        client_secret=options.client_secret,
        scope_separator=_first(options.scope_separator, DEFAULT_SCOPE_SEPARATOR),
        extra_parameters=params,
        validate_issuer=validate_issuer,
        flow=flow,
        issuer=issuer,
        userinfo_path=_first(options.userinfo_path, userinfo_endpoint),
        logout_path=_first(options.logout_path, end_session_endpoint),
        jwks_path=_first(options.jwks_path, jwks_uri),
    )
