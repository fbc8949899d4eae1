"""Provider construction: discovery, config build and key fetch in sequence.

High-level flow (per ``create`` call)
-------------------------------------
1. The vendor preset (if any) is overlaid on the caller options.
2. If discovery was requested, the discovery document is fetched for the
   tenant-substituted site.                           (RESOLVING_DISCOVERY)
3. ``build_config`` merges options, preset and metadata. (BUILDING_CONFIG)
4. If a JWKS URI is known, a KeySetCache is created and filled. (FETCHING_KEYS)
5. A ``Provider`` is returned.                                 (READY)

Any failure moves the build to FAILED, records the error and re-raises it; no
partially built provider is ever returned. Each step suspends only on the
transport, so many builds can run concurrently on one event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .builder import apply_preset, build_config, resolve_site
from .discovery import DiscoveryResolver
from .errors import Cancelled, ProviderError
from .keyset import KeySetCache
from .refresh_gate import RefreshGate

if TYPE_CHECKING:
    from .models import CallerOptions, DiscoveryMetadata, ProviderConfig
    from .protocols import Overlay, Transport

logger = logging.getLogger(__name__)


class BuildState(Enum):
    START = "start"
    RESOLVING_DISCOVERY = "resolving_discovery"
    BUILDING_CONFIG = "building_config"
    FETCHING_KEYS = "fetching_keys"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Provider:
    """A ready-to-use provider: config, discovered metadata and key cache.

    ``keys`` is None when no JWKS URI was configured or discovered.
    """

    config: ProviderConfig
    metadata: DiscoveryMetadata | None = None
    keys: KeySetCache | None = None


class ProviderBuild:
    """One run of the construction state machine.

    Obtained from ``ProviderFactory.prepare``; ``run`` may be awaited once.
    ``state`` and ``error`` stay readable afterwards, which is how callers tell
    at which step a build failed.
    """

    def __init__(
        self,
        factory: ProviderFactory,
        options: CallerOptions,
        preset: Overlay | None = None,
    ) -> None:
        self._factory = factory
        self._options = options
        self._preset = preset
        self._state = BuildState.START
        self._error: BaseException | None = None

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        """The failure that moved the build to FAILED, if any."""
        return self._error

    def _transition(self, state: BuildState) -> None:
        logger.debug(
            "provider_build_state",
            extra={"from_state": self._state.value, "to_state": state.value},
        )
        self._state = state

    def _fail(self, error: BaseException) -> None:
        logger.warning(
            "provider_build_failed",
            extra={"failed_state": self._state.value, "error_type": type(error).__name__},
        )
        self._error = error
        self._state = BuildState.FAILED

    async def run(self) -> Provider:
        """Execute the build.

        Raises:
            DiscoveryUnavailable, DiscoveryInvalid, MissingTenant,
            KeySetUnavailable: The failing step's error, unchanged.
            ValueError: Required options (client id, site) are missing.
            Cancelled: The build was cancelled while suspended.
            RuntimeError: ``run`` was already awaited.
        """
        if self._state is not BuildState.START:
            raise RuntimeError(f"Provider build already {self._state.value}")

        try:
            metadata = None
            options = apply_preset(self._options, self._preset)
            if options.discovery:
                self._transition(BuildState.RESOLVING_DISCOVERY)
                metadata = await self._factory.resolver.resolve(resolve_site(options))

            self._transition(BuildState.BUILDING_CONFIG)
            config = build_config(self._options, metadata, self._preset)

            keys = None
            if config.jwks_url is not None:
                self._transition(BuildState.FETCHING_KEYS)
                keys = self._factory.key_cache(config.jwks_url)
                await keys.refresh()

        except asyncio.CancelledError as e:
            cancelled = Cancelled("Provider construction was cancelled")
            self._fail(cancelled)
            raise cancelled from e
        except (ProviderError, ValueError) as e:
            self._fail(e)
            raise

        self._transition(BuildState.READY)
        logger.info(
            "provider_ready",
            extra={"site": config.site, "flow": config.flow.value, "discovered": metadata is not None},
        )
        return Provider(config=config, metadata=metadata, keys=keys)


class ProviderFactory:
    """Top-level entry point that turns caller options into a Provider.

    Example:
        ```python
        async with HttpxTransport() as transport:
            factory = ProviderFactory(transport, key_ttl=3600)
            provider = await factory.create(
                CallerOptions(client_id="id", site="https://accounts.example", discovery=True)
            )
        ```

    Args:
        transport: HTTP collaborator shared by discovery and key fetches.
        resolver: Discovery resolver; defaults to one using ``transport``.
        key_ttl: Default ttl for the key sets of built providers.
        refresh_interval: When set, each key cache gets a RefreshGate with
            this minimum interval between miss-triggered refreshes.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        resolver: DiscoveryResolver | None = None,
        key_ttl: float | None = None,
        refresh_interval: float | None = None,
    ) -> None:
        self._transport = transport
        self.resolver = resolver or DiscoveryResolver(transport)
        self._key_ttl = key_ttl
        self._refresh_interval = refresh_interval

    def key_cache(self, jwks_uri: str) -> KeySetCache:
        gate = RefreshGate(min_interval=self._refresh_interval) if self._refresh_interval else None
        return KeySetCache(jwks_uri, self._transport, ttl=self._key_ttl, gate=gate)

    def prepare(self, options: CallerOptions, preset: Overlay | None = None) -> ProviderBuild:
        return ProviderBuild(self, options, preset)

    async def create(self, options: CallerOptions, preset: Overlay | None = None) -> Provider:
        """Build a provider from ``options`` and an optional vendor preset."""
        return await self.prepare(options, preset).run()
