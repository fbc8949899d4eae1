"""JWKS key set snapshots and the single-flight key cache.

Resolution Strategy
-------------------
For each requested ``kid``:

1) Snapshot lookup (fast path)
    - If the current KeySet holds the key, return it without suspending.

2) Refresh on miss
    - Exactly one refresh runs at a time. Concurrent callers that miss while
      a refresh is in flight await that refresh instead of starting their own.
    - An optional RefreshGate throttles miss-triggered refreshes once a key
      set has been loaded, so random ``kid`` values cannot force a fetch each.

3) Failure
    - ``KeyNotFound`` if the kid is unknown after the refresh.
    - ``KeySetUnavailable`` if the refresh itself failed.

The snapshot is replaced with a single assignment, so readers never see a
partially updated key set. There is no periodic refresh; callers check
``is_stale(ttl)`` and call ``refresh()`` on their own cadence.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from jwt import PyJWK
from jwt.exceptions import PyJWTError

from .errors import KeyNotFound, KeySetUnavailable, MalformedDocument, TransportError

if TYPE_CHECKING:
    from .protocols import Transport
    from .refresh_gate import RefreshGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeySet:
    """Immutable snapshot of the verification keys published by a JWKS endpoint.

    Attributes:
        keys: Mapping of key id to parsed ``PyJWK``.
        fetched_at: Unix timestamp of the fetch that produced this snapshot.
        ttl: Default lifetime in seconds used by ``is_stale``. None = never stale.
    """

    keys: Mapping[str, PyJWK] = field(hash=False)
    fetched_at: float
    ttl: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "keys", MappingProxyType(dict(self.keys)))

    def is_stale(self, ttl: float | None = None, now: float | None = None) -> bool:
        """Return True once ``ttl`` (or the snapshot's own ttl) has elapsed."""
        limit = ttl if ttl is not None else self.ttl
        if limit is None:
            return False
        current = now if now is not None else time.time()
        return current - self.fetched_at >= limit


def _skip(index: int, reason: str, kid: Any = None) -> None:
    logger.warning("jwks_entry_skipped", extra={"index": index, "kid": kid, "reason": reason})


def parse_key_set(document: Any, fetched_at: float, ttl: float | None = None) -> KeySet:
    """Parse a decoded JWKS document into a KeySet.

    Entries that are not objects, have no ``kid``, are published for
    encryption, or are rejected by PyJWT are logged and skipped. The first
    entry wins when a ``kid`` repeats.

    Raises:
        KeySetUnavailable: The document is not an object with a ``keys`` list.
    """
    if not isinstance(document, Mapping) or not isinstance(document.get("keys"), list):
        raise KeySetUnavailable("JWKS document has no 'keys' list")

    keys: dict[str, PyJWK] = {}
    for index, entry in enumerate(document["keys"]):
        if not isinstance(entry, Mapping):
            _skip(index, "not an object")
            continue

        kid = entry.get("kid")
        if not isinstance(kid, str) or not kid:
            _skip(index, "missing kid")
            continue
        if entry.get("use") not in (None, "sig"):
            _skip(index, "not a signing key", kid)
            continue
        if kid in keys:
            _skip(index, "duplicate kid", kid)
            continue

        try:
            keys[kid] = PyJWK.from_dict(dict(entry))
        except (PyJWTError, ValueError, TypeError, KeyError) as e:
            _skip(index, f"unusable key: {e}", kid)

    return KeySet(keys=keys, fetched_at=fetched_at, ttl=ttl)


class KeySetCache:
    """Single-flight cache of the keys published at one JWKS URI.

    Example:
        ```python
        cache = KeySetCache("https://idp.example/keys", HttpxTransport(), ttl=3600)
        key = await cache.get(kid)
        if cache.is_stale():
            await cache.refresh()
        ```

    Attributes:
        _key_set: Current snapshot, None until the first successful refresh.
        _inflight: The refresh task shared by all current waiters.
        _attempted: A refresh has been started at least once, so later
            misses go through the gate even if that refresh failed.
    """

    def __init__(
        self,
        jwks_uri: str,
        transport: Transport,
        *,
        ttl: float | None = None,
        gate: RefreshGate | None = None,
    ) -> None:
        self._jwks_uri = jwks_uri
        self._transport = transport
        self._ttl = ttl
        self._gate = gate
        self._key_set: KeySet | None = None
        self._inflight: asyncio.Task[KeySet] | None = None
        self._attempted = False

    @property
    def jwks_uri(self) -> str:
        return self._jwks_uri

    @property
    def key_set(self) -> KeySet | None:
        return self._key_set

    def is_stale(self, ttl: float | None = None) -> bool:
        """True if nothing has been fetched yet or the snapshot outlived ``ttl``."""
        if self._key_set is None:
            return True
        return self._key_set.is_stale(ttl)

    async def get(self, kid: str) -> PyJWK:
        """Return the key for ``kid``, refreshing once on a miss.

        Raises:
            KeyNotFound: The kid is unknown after refresh, or refresh was throttled.
            KeySetUnavailable: The refresh failed, or a retry after a failed
                first refresh was throttled.
        """
        key_set = self._key_set
        if key_set is not None:
            key = key_set.keys.get(kid)
            if key is not None:
                return key
        if self._attempted and self._inflight is None and self._gate is not None:
            if not self._gate.allow():
                if key_set is None:
                    raise KeySetUnavailable(
                        f"JWKS refresh for {self._jwks_uri} throttled after a failed fetch"
                    )
                raise KeyNotFound(f"Unknown key id {kid!r} (refresh throttled)")

        key_set = await self.refresh()
        try:
            return key_set.keys[kid]
        except KeyError:
            raise KeyNotFound(f"Unknown key id {kid!r}") from None

    async def refresh(self) -> KeySet:
        """Fetch the key set, joining a refresh that is already in flight.

        Cancelling the caller does not cancel the shared fetch; other waiters
        still receive its outcome.

        Raises:
            KeySetUnavailable: Transport failure or an unparseable document.
        """
        task = self._inflight
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch())
            self._inflight = task
            self._attempted = True
            task.add_done_callback(self._refresh_done)
        return await asyncio.shield(task)

    def _refresh_done(self, task: asyncio.Task[KeySet]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the exception retrieved when every waiter has gone away.
            task.exception()

    async def _fetch(self) -> KeySet:
        try:
            document = await self._transport.get_json(self._jwks_uri)
        except (TransportError, MalformedDocument) as e:
            logger.error("jwks_refresh_failed", extra={"jwks_uri": self._jwks_uri, "error": str(e)})
            raise KeySetUnavailable(f"JWKS request to {self._jwks_uri} failed") from e

        key_set = parse_key_set(document, fetched_at=time.time(), ttl=self._ttl)
        self._key_set = key_set
        logger.info(
            "jwks_refreshed",
            extra={"jwks_uri": self._jwks_uri, "keys_count": len(key_set.keys)},
        )
        return key_set
