"""Tests for the responder listener loop."""

from __future__ import annotations

import errno
import queue
import socket

import pytest

from onvif_probe.errors import MalformedXmlError, MissingHeaderError, ReadError
from onvif_probe.listener import ListenerClosed, ListenerItem, ResponderListener, parse_datagram
from onvif_probe.models import ProbeMatch
from tests.onvif_probe.mocks import MockUdpSocket


def _drain_until_closed(channel: queue.Queue[ListenerItem], timeout: float = 2.0) -> list[ListenerItem]:
    items: list[ListenerItem] = []
    while True:
        item = channel.get(timeout=timeout)
        items.append(item)
        if isinstance(item, ListenerClosed):
            return items


def test_parse_datagram_returns_error_for_invalid_utf8() -> None:
    """parse_datagram should turn undecodable bytes into a MalformedXmlError value."""
    # Given: A datagram that is not valid UTF-8
    data = b"<Envelope>\xff\xfe</Envelope>"

    # When: Parsing the datagram
    result = parse_datagram(data)

    # Then: The failure is returned, not raised
    assert isinstance(result, MalformedXmlError)


def test_parse_datagram_returns_error_for_missing_header() -> None:
    """parse_datagram should return extractor failures as values."""
    # Given: A datagram without a SOAP header
    data = b"<Envelope><Body/></Envelope>"

    # When: Parsing the datagram
    result = parse_datagram(data)

    # Then: The missing-header error is returned
    assert isinstance(result, MissingHeaderError)


def test_listener_forwards_matches_and_failures_until_stopped(probe_match_xml: str) -> None:
    """ResponderListener should forward each datagram's parse result in receipt order."""
    # Given: A socket holding one garbage datagram followed by a valid reply
    sock = MockUdpSocket()
    sock.inject(b"not xml at all <<<")
    sock.inject(probe_match_xml.encode("utf-8"))
    channel: queue.Queue[ListenerItem] = queue.Queue()
    listener = ResponderListener(sock, channel, read_timeout_s=0.05)

    # When: The listener runs until both datagrams are forwarded, then is stopped
    listener.start()
    first = channel.get(timeout=2.0)
    second = channel.get(timeout=2.0)
    listener.stop()
    rest = _drain_until_closed(channel)
    listener.join(timeout=2.0)

    # Then: The failure comes first, the match second, then a clean closure
    assert isinstance(first, MalformedXmlError)
    assert isinstance(second, ProbeMatch)
    assert second.name == "NVT"
    assert rest == [ListenerClosed()]
    assert not listener.is_alive()
    assert sock.close_count == 1


def test_listener_continues_after_transient_read_error(probe_match_xml: str) -> None:
    """ResponderListener should keep reading after a connection-reset receive error."""
    # Given: A receive error that does not invalidate the socket, then a valid reply
    sock = MockUdpSocket()
    sock.inject(ConnectionResetError(errno.ECONNRESET, "Connection reset by peer"))
    sock.inject(probe_match_xml.encode("utf-8"))
    channel: queue.Queue[ListenerItem] = queue.Queue()
    listener = ResponderListener(sock, channel, read_timeout_s=0.05)

    # When: Running the listener
    listener.start()
    item = channel.get(timeout=2.0)
    listener.stop()
    listener.join(timeout=2.0)

    # Then: The reply after the error is still delivered
    assert isinstance(item, ProbeMatch)


def test_listener_closes_channel_on_fatal_read_error() -> None:
    """ResponderListener should exit and report a ReadError when the socket dies."""
    # Given: A socket whose next receive fails with a bad descriptor
    sock = MockUdpSocket()
    sock.inject(OSError(errno.EBADF, "Bad file descriptor"))
    channel: queue.Queue[ListenerItem] = queue.Queue()
    listener = ResponderListener(sock, channel, read_timeout_s=0.05)

    # When: Running the listener without stopping it
    listener.start()
    items = _drain_until_closed(channel)
    listener.join(timeout=2.0)

    # Then: The only item is a closure carrying the read error
    assert len(items) == 1
    closed = items[0]
    assert isinstance(closed, ListenerClosed)
    assert isinstance(closed.error, ReadError)
    assert not listener.is_alive()


def test_listener_reads_from_real_udp_socket(probe_match_xml: str) -> None:
    """ResponderListener should parse a reply received on a loopback UDP socket."""
    # Given: A listener bound to loopback and a sender socket
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        receiver.bind(("127.0.0.1", 0))
    except OSError as exc:
        receiver.close()
        pytest.skip(f"loopback UDP unavailable: {exc}")
    address = receiver.getsockname()
    channel: queue.Queue[ListenerItem] = queue.Queue()
    listener = ResponderListener(receiver, channel, read_timeout_s=0.05)
    listener.start()

    # When: A camera reply is sent to the listener's port
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
        sender.sendto(probe_match_xml.encode("utf-8"), address)
    item = channel.get(timeout=2.0)
    listener.stop()
    listener.join(timeout=2.0)

    # Then: The parsed match arrives and the socket is closed on exit
    assert isinstance(item, ProbeMatch)
    assert item.xaddrs == ("http://192.168.1.70:8899/onvif/device_service",)
    assert receiver.fileno() == -1
