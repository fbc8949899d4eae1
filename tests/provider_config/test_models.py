import dataclasses

import pytest

import oidc_provider as m


def test_caller_options_are_frozen():
    options = m.CallerOptions(client_id="id")

    with pytest.raises(dataclasses.FrozenInstanceError):
        options.client_id = "other"  # type: ignore[misc]


def test_with_overrides_returns_new_snapshot():
    options = m.CallerOptions(client_id="id")

    changed = options.with_overrides(site="https://idp.example.com")

    assert changed is not options
    assert options.site is None
    assert changed.site == "https://idp.example.com"


def test_with_extra_parameters_merges_without_mutating():
    options = m.CallerOptions(extra_parameters={"a": "1"})

    changed = options.with_extra_parameters(b="2")

    assert dict(options.extra_parameters) == {"a": "1"}
    assert dict(changed.extra_parameters) == {"a": "1", "b": "2"}


def test_extra_parameters_are_read_only():
    source = {"a": "1"}
    config = m.ProviderConfig(
        site="https://idp", authorization_path="/a", token_path="/t", client_id="id", extra_parameters=source
    )

    source["a"] = "changed"
    assert config.extra_parameters["a"] == "1"
    with pytest.raises(TypeError):
        config.extra_parameters["a"] = "2"  # type: ignore[index]


def test_config_equality_ignores_parameter_order():
    common = {"site": "https://idp", "authorization_path": "/a", "token_path": "/t", "client_id": "id"}

    first = m.ProviderConfig(**common, extra_parameters={"a": "1", "b": "2"})
    second = m.ProviderConfig(**common, extra_parameters={"b": "2", "a": "1"})

    assert first == second


def test_client_secret_is_not_in_repr():
    options = m.CallerOptions(client_id="id", client_secret="s3cr3t")
    config = m.ProviderConfig(
        site="https://idp", authorization_path="/a", token_path="/t", client_id="id", client_secret="s3cr3t"
    )

    assert "s3cr3t" not in repr(options)
    assert "s3cr3t" not in repr(config)


def test_urls_resolve_relative_paths_against_site():
    config = m.ProviderConfig(
        site="https://idp/tenant/",
        authorization_path="/oauth2/authorize",
        token_path="https://elsewhere/token",
        client_id="id",
    )

    assert config.authorization_url == "https://idp/tenant/oauth2/authorize"
    assert config.token_url == "https://elsewhere/token"
    assert config.jwks_url is None
