"""
Microsoft Azure Active Directory preset.

Static configuration uses the tenant-scoped v1 endpoints under
``https://login.windows.net/{tenant}``. Discovery starts from the ``common``
tenant, whose discovery document reports a tenant-templated issuer that never
equals the request site, so issuer validation is turned off for discovered
Azure providers unless the caller asks for it explicitly.

With ``FlowType.AUTH_JWT`` the built config carries
``requested_token_use=on_behalf_of``, as the Azure on-behalf-of flow requires.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..factory import ProviderFactory
from ..models import CallerOptions, FlowType
from ..presets import VendorPreset

if TYPE_CHECKING:
    from ..factory import Provider
    from ..protocols import Transport

AZURE_AD = VendorPreset(
    name="azure-ad",
    site="https://login.windows.net/{tenant}",
    discovery_site="https://login.windows.net/common",
    authorization_path="/oauth2/authorize",
    token_path="/oauth2/token",
    scope_separator=",",
    extra_parameters={"resource": "{tenant}"},
    discovery_validate_issuer=False,
)


def azure_ad_options(
    client_id: str,
    client_secret: str | None,
    guid: str,
    **overrides: Any,
) -> CallerOptions:
    """Caller options for an Azure AD application.

    Args:
        client_id: The client id given to you by Azure.
        client_secret: The client secret given to you by Azure.
        guid: The guid (tenant) of your application given to you by Azure.
        **overrides: Any other CallerOptions field.
    """
    fields: dict[str, Any] = {"flow": FlowType.AUTH_CODE}
    fields.update(overrides)
    return CallerOptions(client_id=client_id, client_secret=client_secret, tenant=guid, **fields)


async def create_azure_ad(
    transport: Transport,
    client_id: str,
    client_secret: str | None,
    guid: str,
    **overrides: Any,
) -> Provider:
    """Build an Azure AD provider from the static endpoint layout."""
    options = azure_ad_options(client_id, client_secret, guid, **overrides)
    return await ProviderFactory(transport).create(options, AZURE_AD)


async def discover_azure_ad(
    transport: Transport,
    options: CallerOptions,
    **factory_options: Any,
) -> Provider:
    """Build an Azure AD provider through OpenID Connect discovery.

    The caller's site is kept if set; otherwise the ``common`` endpoint is
    used. If the discovery document includes a ``jwks_uri`` its keys are
    loaded so tokens can be verified.

    Args:
        transport: Used for the discovery and JWKS fetches.
        options: Caller options, usually from ``azure_ad_options``.
        **factory_options: ``ProviderFactory`` keyword arguments such as
            ``key_ttl`` or ``refresh_interval``.
    """
    factory = ProviderFactory(transport, **factory_options)
    return await factory.create(options.with_overrides(discovery=True), AZURE_AD)
