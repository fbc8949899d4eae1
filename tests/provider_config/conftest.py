import asyncio
from typing import Any

import pytest
from jwt.utils import base64url_encode

from oidc_provider import TransportError

SITE = "https://idp.example.com"
JWKS_URI = "https://idp.example.com/keys"


class FakeTransport:
    """
    Minimal transport stub.
    Maps URLs to decoded JSON (or an exception to raise) and records every call.
    Set `release` to an asyncio.Event to hold responses until the test sets it.
    """

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[str] = []
        self.release: asyncio.Event | None = None

    async def get_json(self, url: str) -> Any:
        self.calls.append(url)
        if self.release is not None:
            await self.release.wait()
        if url not in self.responses:
            raise TransportError(f"no route for {url}")
        response = self.responses[url]
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_oct_jwk():
    """
    Factory fixture that returns a JWK dict for an HMAC key.

    Usage in tests:
        entry = make_oct_jwk(kid="k1")
    """

    def _make(*, kid: str = "kid1", secret: bytes = b"0123456789abcdef0123456789abcdef") -> dict[str, str]:
        return {
            "kty": "oct",
            "kid": kid,
            "k": base64url_encode(secret).decode("ascii"),
            "alg": "HS256",
            "use": "sig",
        }

    return _make


@pytest.fixture
def make_discovery_doc():
    def _make(*, issuer: str = SITE, jwks_uri: str | None = JWKS_URI, **extra: Any) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "issuer": issuer,
            "authorization_endpoint": f"{issuer}/authorize",
            "token_endpoint": f"{issuer}/token",
        }
        if jwks_uri is not None:
            doc["jwks_uri"] = jwks_uri
        doc.update(extra)
        return doc

    return _make
