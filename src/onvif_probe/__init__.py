"""WS-Discovery probing for ONVIF network video devices."""

__version__ = "0.1.0"

from onvif_probe.errors import (
    BindError,
    ChannelError,
    MalformedXmlError,
    MissingHeaderError,
    ProbeError,
    ProbeParseError,
    ReadError,
    SendError,
)
from onvif_probe.extractor import parse_probe_match
from onvif_probe.models import DeviceCredentials, ProbeMatch
from onvif_probe.probe import probe
from onvif_probe.settings import ProbeSettings, TerminationPolicy

__all__ = [
    "BindError",
    "ChannelError",
    "DeviceCredentials",
    "MalformedXmlError",
    "MissingHeaderError",
    "ProbeError",
    "ProbeMatch",
    "ProbeParseError",
    "ProbeSettings",
    "ReadError",
    "SendError",
    "TerminationPolicy",
    "__version__",
    "parse_probe_match",
    "probe",
]
