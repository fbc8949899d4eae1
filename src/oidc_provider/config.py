"""Load CallerOptions from environment variables and ``.env`` files.

Variables (with the default ``OIDC_`` prefix):

    OIDC_CLIENT_ID         required
    OIDC_CLIENT_SECRET
    OIDC_SITE
    OIDC_TENANT
    OIDC_FLOW              auth_code | auth_jwt | client | password | implicit
    OIDC_SCOPE_SEPARATOR
    OIDC_VALIDATE_ISSUER   true/false
    OIDC_DISCOVERY         true/false
    OIDC_JWKS_PATH

Unset variables stay None so presets and discovery can still fill them.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Final

from dotenv import load_dotenv

from .models import CallerOptions, FlowType

if TYPE_CHECKING:
    from pathlib import Path

_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


def _parse_bool(name: str, raw: str | None) -> bool | None:
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_flow(name: str, raw: str | None) -> FlowType | None:
    if not raw:
        return None
    try:
        return FlowType(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(flow.value for flow in FlowType)
        raise ValueError(f"{name} must be one of {allowed}, got {raw!r}") from None


def load_options(prefix: str = "OIDC_", dotenv_path: str | Path | None = None) -> CallerOptions:
    """Read CallerOptions from the environment.

    ``.env`` values are loaded first (without overriding variables that are
    already set), then the prefixed variables are read.

    Raises:
        ValueError: The client id is missing, or a flow/boolean value is invalid.
    """
    load_dotenv(dotenv_path)

    def env(name: str) -> str | None:
        return os.environ.get(prefix + name) or None

    client_id = env("CLIENT_ID")
    if not client_id:
        raise ValueError(f"Missing required environment variable {prefix}CLIENT_ID")

    return CallerOptions(
        client_id=client_id,
        client_secret=env("CLIENT_SECRET"),
        site=env("SITE"),
        tenant=env("TENANT"),
        flow=_parse_flow(prefix + "FLOW", env("FLOW")),
        scope_separator=env("SCOPE_SEPARATOR"),
        validate_issuer=_parse_bool(prefix + "VALIDATE_ISSUER", env("VALIDATE_ISSUER")),
        discovery=bool(_parse_bool(prefix + "DISCOVERY", env("DISCOVERY"))),
        jwks_path=env("JWKS_PATH"),
    )
