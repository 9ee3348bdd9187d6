"""Mock implementations for testing."""

from tests.onvif_probe.mocks.udp import MockUdpSocket

__all__ = ["MockUdpSocket"]
