import asyncio

import pytest

import oidc_provider as m

SITE = "https://idp.example.com"
WELL_KNOWN = f"{SITE}/.well-known/openid-configuration"
JWKS_URI = f"{SITE}/keys"


@pytest.mark.asyncio
async def test_static_options_skip_discovery(transport):
    build = m.ProviderFactory(transport).prepare(m.CallerOptions(client_id="id", site=SITE))

    provider = await build.run()

    assert build.state is m.BuildState.READY
    assert transport.calls == []
    assert provider.metadata is None
    assert provider.keys is None
    assert provider.config.token_url == f"{SITE}/oauth/token"


@pytest.mark.asyncio
async def test_discovery_then_key_fetch(transport, make_discovery_doc, make_oct_jwk):
    transport.responses[WELL_KNOWN] = make_discovery_doc()
    transport.responses[JWKS_URI] = {"keys": [make_oct_jwk(kid="k1")]}

    provider = await m.ProviderFactory(transport).create(
        m.CallerOptions(client_id="id", site=SITE, discovery=True)
    )

    assert transport.calls == [WELL_KNOWN, JWKS_URI]
    assert provider.config.validate_issuer is True
    assert provider.config.issuer == SITE
    assert provider.config.token_path == f"{SITE}/token"
    assert provider.metadata.jwks_uri == JWKS_URI
    assert list(provider.keys.key_set.keys) == ["k1"]


@pytest.mark.asyncio
async def test_site_given_as_discovery_url_is_normalized(transport, make_discovery_doc):
    transport.responses[WELL_KNOWN] = make_discovery_doc(jwks_uri=None)
    build = m.ProviderFactory(transport).prepare(
        m.CallerOptions(client_id="id", site=WELL_KNOWN, discovery=True)
    )

    provider = await build.run()

    assert build.state is m.BuildState.READY
    assert transport.calls == [WELL_KNOWN]
    assert provider.config.site == SITE
    assert provider.config.issuer == SITE


@pytest.mark.asyncio
async def test_discovery_without_jwks_uri_has_no_key_cache(transport, make_discovery_doc):
    transport.responses[WELL_KNOWN] = make_discovery_doc(jwks_uri=None)

    provider = await m.ProviderFactory(transport).create(
        m.CallerOptions(client_id="id", site=SITE, discovery=True)
    )

    assert transport.calls == [WELL_KNOWN]
    assert provider.keys is None


@pytest.mark.asyncio
async def test_explicit_jwks_path_fetches_keys_without_discovery(transport, make_oct_jwk):
    transport.responses[JWKS_URI] = {"keys": [make_oct_jwk(kid="k1")]}

    provider = await m.ProviderFactory(transport, key_ttl=60).create(
        m.CallerOptions(client_id="id", site=SITE, jwks_path="/keys")
    )

    assert transport.calls == [JWKS_URI]
    assert provider.keys.key_set.ttl == 60


@pytest.mark.asyncio
async def test_refresh_interval_installs_gate(transport, make_oct_jwk):
    transport.responses[JWKS_URI] = {"keys": [make_oct_jwk(kid="k1")]}

    provider = await m.ProviderFactory(transport, refresh_interval=60).create(
        m.CallerOptions(client_id="id", site=SITE, jwks_path=JWKS_URI)
    )

    with pytest.raises(m.KeyNotFound):
        await provider.keys.get("unknown-1")
    with pytest.raises(m.KeyNotFound):
        await provider.keys.get("unknown-2")
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_invalid_discovery_fails_before_key_fetch(transport, make_discovery_doc):
    doc = make_discovery_doc()
    del doc["token_endpoint"]
    transport.responses[WELL_KNOWN] = doc
    build = m.ProviderFactory(transport).prepare(m.CallerOptions(client_id="id", site=SITE, discovery=True))

    with pytest.raises(m.DiscoveryInvalid):
        await build.run()

    assert build.state is m.BuildState.FAILED
    assert isinstance(build.error, m.DiscoveryInvalid)
    assert transport.calls == [WELL_KNOWN]


@pytest.mark.asyncio
async def test_discovery_unavailable_fails_build(transport):
    build = m.ProviderFactory(transport).prepare(m.CallerOptions(client_id="id", site=SITE, discovery=True))

    with pytest.raises(m.DiscoveryUnavailable):
        await build.run()
    assert build.state is m.BuildState.FAILED


@pytest.mark.asyncio
async def test_keyset_unavailable_fails_build(transport, make_discovery_doc):
    transport.responses[WELL_KNOWN] = make_discovery_doc()
    build = m.ProviderFactory(transport).prepare(m.CallerOptions(client_id="id", site=SITE, discovery=True))

    with pytest.raises(m.KeySetUnavailable):
        await build.run()
    assert build.state is m.BuildState.FAILED


@pytest.mark.asyncio
async def test_missing_tenant_fails_build(transport):
    build = m.ProviderFactory(transport).prepare(
        m.CallerOptions(client_id="id", site="https://login.windows.net/{tenant}")
    )

    with pytest.raises(m.MissingTenant):
        await build.run()
    assert build.state is m.BuildState.FAILED


@pytest.mark.asyncio
async def test_missing_tenant_fails_before_discovery_fetch(transport):
    build = m.ProviderFactory(transport).prepare(
        m.CallerOptions(client_id="id", site="https://login.windows.net/{tenant}", discovery=True)
    )

    with pytest.raises(m.MissingTenant):
        await build.run()
    assert transport.calls == []


@pytest.mark.asyncio
async def test_cancellation_marks_build_failed(transport):
    transport.release = asyncio.Event()
    build = m.ProviderFactory(transport).prepare(m.CallerOptions(client_id="id", site=SITE, discovery=True))

    task = asyncio.ensure_future(build.run())
    await asyncio.sleep(0)
    assert build.state is m.BuildState.RESOLVING_DISCOVERY
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert build.state is m.BuildState.FAILED
    assert isinstance(build.error, m.Cancelled)


@pytest.mark.asyncio
async def test_build_runs_only_once(transport):
    build = m.ProviderFactory(transport).prepare(m.CallerOptions(client_id="id", site=SITE))
    await build.run()

    with pytest.raises(RuntimeError):
        await build.run()


@pytest.mark.asyncio
async def test_concurrent_builds_are_independent(transport, make_discovery_doc):
    other = "https://other.example.com"
    transport.responses[WELL_KNOWN] = make_discovery_doc(jwks_uri=None)
    transport.responses[f"{other}/.well-known/openid-configuration"] = make_discovery_doc(
        issuer=other, jwks_uri=None
    )
    factory = m.ProviderFactory(transport)

    first, second = await asyncio.gather(
        factory.create(m.CallerOptions(client_id="a", site=SITE, discovery=True)),
        factory.create(m.CallerOptions(client_id="b", site=other, discovery=True)),
    )

    assert first.config.issuer == SITE
    assert second.config.issuer == other
    assert first.config.client_id == "a"
