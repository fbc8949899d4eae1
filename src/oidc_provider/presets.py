"""Vendor presets as declarative overlays.

A preset is a record of the fixed fields a vendor needs (site template,
endpoint paths, scope separator, extra parameters, discovery quirks). Calling
it on ``CallerOptions`` fills in whatever the caller left unset and returns a
new snapshot, so presets compose before the generic builder runs and adding a
vendor means writing a new record, not a subclass.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import CallerOptions


@dataclass(frozen=True, slots=True)
class VendorPreset:
    """Fixed parameters for one identity vendor.

    Attributes:
        name: Human readable vendor name, used in logs.
        site: Site template used when endpoints are configured statically.
        discovery_site: Site used when discovery is requested and the caller
            gave none. Falls back to ``site``.
        authorization_path: Static authorization path. Not applied when
            discovering, so discovered endpoints can fill it.
        token_path: Static token path. Not applied when discovering.
        scope_separator: Separator used to join scopes.
        extra_parameters: Parameters added to token requests. Caller-supplied
            keys win.
        discovery_validate_issuer: Value forced on ``validate_issuer`` when the
            provider is built from discovery and the caller did not set it.
    """

    name: str
    site: str | None = None
    discovery_site: str | None = None
    authorization_path: str | None = None
    token_path: str | None = None
    scope_separator: str | None = None
    extra_parameters: Mapping[str, str] = field(default_factory=dict, hash=False)
    discovery_validate_issuer: bool | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra_parameters", MappingProxyType(dict(self.extra_parameters)))

    def __call__(self, options: CallerOptions) -> CallerOptions:
        """Overlay this preset on ``options``. Caller-supplied fields win."""
        fixed: dict[str, Any] = {"scope_separator": self.scope_separator}
        if options.discovery:
            fixed["site"] = self.discovery_site or self.site
            fixed["validate_issuer"] = self.discovery_validate_issuer
        else:
            fixed["site"] = self.site
            fixed["authorization_path"] = self.authorization_path
            fixed["token_path"] = self.token_path

        changes = {
            name: value
            for name, value in fixed.items()
            if value is not None and getattr(options, name) is None
        }

        if self.extra_parameters:
            params = dict(self.extra_parameters)
            params.update(options.extra_parameters or {})
            changes["extra_parameters"] = params

        return options.with_overrides(**changes)
