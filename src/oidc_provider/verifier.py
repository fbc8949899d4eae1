"""JWT verification against a built Provider using PyJWT.

The verifier:
- Extracts the key ID (kid) from token headers
- Resolves signing keys through a KeyLookup (normally the provider's KeySetCache)
- Validates signatures and claims using PyJWT
- Maps PyJWT exceptions to InvalidToken / ExpiredToken

Issuer checking follows the provider config: the discovered issuer is only
enforced when ``validate_issuer`` is on, which is why presets whose discovery
document reports a different issuer turn it off.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import jwt

from .errors import ExpiredToken, InvalidToken, ProviderError

if TYPE_CHECKING:
    from .factory import Provider
    from .models import ProviderConfig
    from .protocols import Claims, KeyLookup


@dataclass(frozen=True, slots=True)
class JWTVerifyOptions:
    """Configuration for JWT validation rules.

    Attributes:
        audience: Expected ``aud`` claim. Defaults to the provider's client id.
        verify_audience: Set to False for tokens minted without an audience.
        algorithms: Explicit allowlist of signing algorithms. Never include 'none'.
        leeway: Clock skew tolerance in seconds for exp/nbf/iat validation.
    """

    audience: str | None = None
    verify_audience: bool = True
    algorithms: tuple[str, ...] = ("RS256",)
    leeway: int = 0


class JWTVerifier:
    """Verifies JWTs against a provider config using keys from a KeyLookup.

    Any object with an async ``get(kid)`` returning a ``PyJWK`` can serve as
    ``keys``. ``from_provider`` wires in the key cache of a built ``Provider``.

    Example:
        ```python
        provider = await factory.create(options)
        verifier = JWTVerifier.from_provider(provider)
        try:
            claims = await verifier.verify(raw_token)
        except ExpiredToken:
            ...  # prompt re-authentication
        except InvalidToken:
            ...  # reject request
        ```
    """

    def __init__(
        self,
        config: ProviderConfig,
        keys: KeyLookup,
        options: JWTVerifyOptions | None = None,
    ) -> None:
        self._config = config
        self._keys = keys
        self._opt = options or JWTVerifyOptions()

    @classmethod
    def from_provider(cls, provider: Provider, options: JWTVerifyOptions | None = None) -> JWTVerifier:
        """Build a verifier from a provider's config and key cache.

        Raises:
            ValueError: The provider has no key cache (no JWKS URI was known).
        """
        if provider.keys is None:
            raise ValueError("Provider has no JWKS key cache to verify tokens with")
        return cls(provider.config, provider.keys, options)

    async def verify(self, token: str) -> Claims:
        """Verify a JWT and return its decoded claims.

        Raises:
            InvalidToken: Token is malformed, signature or claims invalid, or
                the kid cannot be resolved.
            ExpiredToken: Token's exp claim has passed (accounting for leeway).
        """
        # The header is untrusted; it only tells us which key to try.
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Malformed token: {e}") from e

        kid = header.get("kid")
        if not kid or not isinstance(kid, str):
            raise InvalidToken("Token header missing required 'kid' or 'kid' is not a string")

        try:
            key = await self._keys.get(kid)
        except ProviderError as e:
            raise InvalidToken(f"Key resolution failed: {e}") from e

        issuer = self._config.issuer if self._config.validate_issuer else None
        audience = self._opt.audience or self._config.client_id
        try:
            return jwt.decode(
                token,
                key.key,
                algorithms=list(self._opt.algorithms),
                audience=audience if self._opt.verify_audience else None,
                issuer=issuer,
                leeway=self._opt.leeway,
                options={"verify_aud": self._opt.verify_audience},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredToken("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Token validation failed: {e}") from e
