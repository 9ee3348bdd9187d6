"""Tests for probe settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from onvif_probe.settings import ProbeSettings, TerminationPolicy


def test_probe_settings_defaults_target_ws_discovery_group() -> None:
    """ProbeSettings should default to the WS-Discovery multicast endpoint."""
    # Given/When: Default settings
    settings = ProbeSettings()

    # Then: Standard group, port and ONVIF device types are used
    assert settings.multicast_address == ("239.255.255.250", 3702)
    assert settings.device_types == ("NetworkVideoTransmitter", "Device", "NetworkVideoDisplay")
    assert settings.termination is TerminationPolicy.IDLE
    assert settings.max_matches is None


def test_probe_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """ProbeSettings should read ONVIF_PROBE_* environment overrides."""
    # Given: Environment overrides for rounds, termination and max matches
    monkeypatch.setenv("ONVIF_PROBE_ROUNDS", "2")
    monkeypatch.setenv("ONVIF_PROBE_TERMINATION", "FULL_DURATION")
    monkeypatch.setenv("ONVIF_PROBE_MAX_MATCHES", "5")

    # When: Loading settings
    settings = ProbeSettings()

    # Then: Overrides are applied and normalized
    assert settings.rounds == 2
    assert settings.termination is TerminationPolicy.FULL_DURATION
    assert settings.max_matches == 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"rounds": 0},
        {"read_timeout_s": 0},
        {"max_matches": 0},
        {"ttl": 0},
        {"termination": "forever"},
        {"device_types": ()},
    ],
)
def test_probe_settings_rejects_invalid_values(overrides: dict[str, object]) -> None:
    """ProbeSettings should reject values that would stall or break a session."""
    with pytest.raises(ValidationError):
        ProbeSettings(**overrides)  # type: ignore[arg-type]
