import logging

import pytest

import oidc_provider as m
from oidc_provider import refresh_gate


def test_refresh_gate_allows_first(monkeypatch: pytest.MonkeyPatch):
    """First call to allow() returns True, subsequent calls return False."""
    gate = m.RefreshGate(min_interval=10.0)

    t = 1000.0
    monkeypatch.setattr(refresh_gate.time, "time", lambda: t)

    assert gate.allow() is True
    assert gate.allow() is False  # same time -> blocked


def test_refresh_gate_allows_after_interval(monkeypatch: pytest.MonkeyPatch):
    """After min_interval passes, allow() returns True again."""
    gate = m.RefreshGate(min_interval=10.0)

    time_val = [1000.0]  # use list to allow modification
    monkeypatch.setattr(refresh_gate.time, "time", lambda: time_val[0])

    assert gate.allow() is True

    time_val[0] = 1009.0
    assert gate.allow() is False

    time_val[0] = 1010.0
    assert gate.allow() is True
    assert gate.denied == 0


def test_refresh_gate_logs_at_alert_threshold(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
):
    gate = m.RefreshGate(min_interval=10.0, alert_threshold=3)
    monkeypatch.setattr(refresh_gate.time, "time", lambda: 1000.0)

    assert gate.allow() is True
    with caplog.at_level(logging.WARNING, logger="oidc_provider.refresh_gate"):
        for _ in range(5):
            assert gate.allow() is False

    assert gate.denied == 5
    throttled = [r for r in caplog.records if r.getMessage() == "jwks_refresh_throttled"]
    assert len(throttled) == 1


@pytest.mark.parametrize(
    "kwargs",
    [{"min_interval": 0}, {"min_interval": -1}, {"alert_threshold": 0}],
)
def test_refresh_gate_rejects_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        m.RefreshGate(**kwargs)
