"""Shared pytest fixtures for onvif_probe tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from onvif_probe.settings import ProbeSettings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def probe_match_xml() -> str:
    """Probe-match response advertised by a typical IP camera."""
    return (FIXTURES_DIR / "probe-discovery-response.xml").read_text(encoding="utf-8")


@pytest.fixture
def fast_settings() -> ProbeSettings:
    """Probe settings with short delays for in-memory sessions."""
    return ProbeSettings(
        rounds=2,
        message_delay_s=0.0,
        read_timeout_s=0.05,
        listener_join_timeout_s=1.0,
    )
