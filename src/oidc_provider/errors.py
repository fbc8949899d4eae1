"""Provider configuration and key resolution errors.

This module defines the exception hierarchy raised while building an OAuth2 /
OpenID Connect provider. All errors except ``Cancelled`` inherit from
ProviderError to allow catch-all error handling.

Security Note:
    Error messages never include the client secret. Transport errors carry the
    URL that failed, which is public provider metadata.
"""

from __future__ import annotations

import asyncio


class ProviderError(Exception):
    """Base exception for all provider construction and key failures.

    Application code can catch this single exception type to handle any
    failure of ``ProviderFactory.create`` generically and decide whether to
    retry. Nothing in this package retries on its own.
    """


class TransportError(ProviderError):
    """Raised by a Transport when a request cannot be completed.

    This covers connection errors, timeouts and non-2xx responses. The
    resolver and key cache translate it into DiscoveryUnavailable and
    KeySetUnavailable respectively.
    """


class MalformedDocument(ProviderError):
    """Raised by a Transport when the response body is not valid JSON."""


class DiscoveryUnavailable(ProviderError):  # noqa: N818
    """Raised when the discovery document cannot be fetched."""


class DiscoveryInvalid(ProviderError):  # noqa: N818
    """Raised when the discovery document is malformed or incomplete.

    This occurs when:
    - The body is not JSON, or not a JSON object
    - ``issuer``, ``authorization_endpoint`` or ``token_endpoint`` is missing
    - Issuer validation is on and the discovered issuer does not match the site
    """


class MissingTenant(ProviderError):  # noqa: N818
    """Raised when a ``{tenant}`` placeholder is present but no tenant was given."""


class KeySetUnavailable(ProviderError):  # noqa: N818
    """Raised when the JWKS document cannot be fetched or parsed at all.

    Individual malformed keys never raise this; they are logged and skipped.
    """


class KeyNotFound(ProviderError):  # noqa: N818
    """Raised when a key id is still unknown after a refresh (or refresh is throttled)."""


class InvalidToken(ProviderError):  # noqa: N818
    """Raised when a token is present but cannot be verified.

    This occurs when:
    - Token is malformed (not a valid JWT structure)
    - Signature verification fails (wrong key or tampered token)
    - Issuer (iss) or audience (aud) doesn't match
    - Algorithm (alg) is not in the allowed list
    - Signing key (kid) cannot be resolved
    """


class ExpiredToken(ProviderError):  # noqa: N818
    """Raised when a token's expiration time (exp claim) has passed.

    Note:
        Treat identically to InvalidToken from a security perspective. The
        distinction helps with metrics and debugging.
    """


class Cancelled(asyncio.CancelledError):  # noqa: N818
    """Raised when provider construction is cancelled.

    Derives from ``asyncio.CancelledError`` rather than ProviderError so that a
    cancelled task is still reported as cancelled by asyncio.
    """
