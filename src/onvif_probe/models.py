"""Records produced by WS-Discovery probing."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ProbeMatch:
    """One device advertisement parsed from a ProbeMatch response.

    Equality and hashing cover every field, so identical replies to repeated
    probes collapse into a single entry of a set.
    """

    urn: str = ""
    name: str = ""
    hardware: str = ""
    location: str = ""
    types: tuple[str, ...] = ()
    xaddrs: tuple[str, ...] = ()
    scopes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DeviceCredentials:
    """Endpoint plus login for follow-up ONVIF calls against a discovered device."""

    xaddr: str
    user: str
    password: str = field(repr=False)

    @classmethod
    def for_match(
        cls, match: ProbeMatch, user: str, password: str, *, index: int = 0
    ) -> DeviceCredentials:
        """Build credentials for the ``index``-th x-address advertised by ``match``."""
        if not 0 <= index < len(match.xaddrs):
            raise ValueError(
                f"Device {match.urn or '<unknown>'} has no x-address at index {index}"
            )
        return cls(xaddr=match.xaddrs[index], user=user, password=password)


__all__ = ["DeviceCredentials", "ProbeMatch"]
