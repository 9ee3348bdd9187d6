"""Probe orchestration: one WS-Discovery session from bind to result set."""

from __future__ import annotations

import logging
import queue
import socket
import time
import uuid
from collections.abc import Callable

from onvif_probe.broadcaster import BroadcastFinished, ProbeBroadcaster
from onvif_probe.errors import BindError, ChannelError, ProbeParseError, SendError
from onvif_probe.listener import ListenerClosed, ListenerItem, ResponderListener
from onvif_probe.logging_setup import set_probe_id
from onvif_probe.models import ProbeMatch
from onvif_probe.settings import ProbeSettings, TerminationPolicy

logger = logging.getLogger(__name__)

SocketFactory = Callable[[ProbeSettings], socket.socket]

# Listener results and broadcaster status share one channel to the orchestrator.
SessionItem = ListenerItem | BroadcastFinished


def probe(
    timeout_s: float = 3.0,
    *,
    settings: ProbeSettings | None = None,
    socket_factory: SocketFactory | None = None,
) -> set[ProbeMatch]:
    """Discover ONVIF devices on the local network.

    Args:
        timeout_s: How long to wait for further replies. With the ``idle``
                   termination policy the window restarts on every received
                   datagram; with ``full_duration`` it is measured from start.
        settings: Probe tuning; read from the environment when omitted.
        socket_factory: Returns a bound UDP socket. Defaults to
                        ``open_probe_socket``.

    Returns:
        Distinct ProbeMatch records. An empty set means nothing answered.

    Raises:
        BindError: No local UDP endpoint could be acquired.
        ChannelError: The listener shut down before delivering anything.
        SendError: Every probe send failed and nothing was discovered.
    """
    if timeout_s < 0:
        raise ValueError("timeout_s must be >= 0")

    settings = settings if settings is not None else ProbeSettings()
    message_id = f"uuid:{uuid.uuid4()}"
    set_probe_id(message_id)

    send_socket = (socket_factory or open_probe_socket)(settings)
    try:
        recv_socket = send_socket.dup()
    except OSError as exc:
        send_socket.close()
        raise BindError(settings.bind_host, exc) from exc

    channel: queue.Queue[SessionItem] = queue.Queue()
    listener = ResponderListener(
        recv_socket,
        channel,
        read_timeout_s=settings.read_timeout_s,
        buffer_size=settings.recv_buffer_size,
    )
    broadcaster = ProbeBroadcaster(send_socket, channel, settings, message_id)

    logger.info(
        "Starting ONVIF probe",
        extra={
            "timeout_s": timeout_s,
            "termination": str(settings.termination),
            "max_matches": settings.max_matches,
        },
    )
    try:
        listener.start()
        try:
            broadcaster.start()
        except Exception:
            send_socket.close()
            raise
        found = _collect(channel, settings, timeout_s)
    finally:
        listener.stop()
        listener.join(timeout=settings.listener_join_timeout_s)
        if listener.is_alive():
            logger.warning("Listener did not stop within %.1fs", settings.listener_join_timeout_s)
        set_probe_id(None)

    logger.info("ONVIF probe finished: %d device(s)", len(found))
    return found


def open_probe_socket(settings: ProbeSettings) -> socket.socket:
    """Bind a UDP socket on an ephemeral port for multicast probing."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    except OSError as exc:
        raise BindError(settings.bind_host, exc) from exc

    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, settings.ttl)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
        sock.bind((settings.bind_host, 0))
    except OSError as exc:
        sock.close()
        raise BindError(settings.bind_host, exc) from exc

    logger.debug("Probe socket bound to %s:%d", *sock.getsockname()[:2])
    return sock


def _collect(
    channel: queue.Queue[SessionItem],
    settings: ProbeSettings,
    timeout_s: float,
) -> set[ProbeMatch]:
    found: set[ProbeMatch] = set()
    broadcast_failure: SendError | None = None
    received = 0
    deadline = time.monotonic() + timeout_s

    while settings.max_matches is None or len(found) < settings.max_matches:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        try:
            item = channel.get(timeout=min(remaining, settings.read_timeout_s))
        except queue.Empty:
            continue

        if isinstance(item, BroadcastFinished):
            if item.failure is not None and item.sent == 0:
                raise item.failure
            broadcast_failure = item.failure
            logger.debug("Broadcast finished: %d probe(s) sent", item.sent)
            continue

        if isinstance(item, ListenerClosed):
            if received == 0:
                raise ChannelError("Listener closed before delivering any reply", cause=item.error)
            logger.warning("Listener closed early, returning %d device(s)", len(found))
            break

        received += 1
        if settings.termination is TerminationPolicy.IDLE:
            deadline = time.monotonic() + timeout_s
        if isinstance(item, ProbeParseError):
            continue
        if item not in found:
            logger.debug("Discovered %s at %s", item.urn or "<no urn>", ", ".join(item.xaddrs))
        found.add(item)

    if not found and broadcast_failure is not None:
        raise broadcast_failure
    return found


__all__ = ["SessionItem", "SocketFactory", "open_probe_socket", "probe"]
