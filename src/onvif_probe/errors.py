"""Error hierarchy for WS-Discovery probe sessions."""

from __future__ import annotations


class ProbeError(Exception):
    """Base exception for all probe engine errors.

    Compatible with error-as-value pattern: instances can be returned as values
    instead of raised. Preserves stack traces via exception chaining.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        self.__cause__ = cause


class BindError(ProbeError):
    """Local UDP endpoint could not be acquired."""

    def __init__(self, host: str, cause: Exception) -> None:
        super().__init__(f"Could not bind UDP socket on {host}: {cause}", cause=cause)
        self.host = host


class SendError(ProbeError):
    """Multicast send of a probe message failed."""

    def __init__(self, message: str, device_type: str | None, cause: Exception | None) -> None:
        super().__init__(message, cause=cause)
        self.device_type = device_type


class ReadError(ProbeError):
    """Socket receive failed for a reason other than the read timeout."""


class ChannelError(ProbeError):
    """Listener channel closed before any response was delivered."""


class ProbeParseError(ProbeError):
    """A single probe-match datagram could not be parsed."""


class MissingHeaderError(ProbeParseError):
    """Document ended before the SOAP header was closed."""

    def __init__(self) -> None:
        super().__init__("Document ended before the SOAP header was closed")


class MalformedXmlError(ProbeParseError):
    """Datagram is not well-formed UTF-8 XML."""

    def __init__(self, detail: str, cause: Exception | None = None) -> None:
        super().__init__(f"Malformed probe-match document: {detail}", cause=cause)
