"""Receive loop turning ProbeMatch datagrams into parsed results."""

from __future__ import annotations

import logging
import queue
import socket
from dataclasses import dataclass
from threading import Event, Thread
from typing import Any

from onvif_probe.errors import MalformedXmlError, ProbeParseError, ReadError
from onvif_probe.extractor import parse_probe_match
from onvif_probe.models import ProbeMatch

logger = logging.getLogger(__name__)

# Receive failures that do not make the socket unusable (e.g. ICMP port
# unreachable surfacing as ECONNRESET on some platforms).
_TRANSIENT_READ_ERRORS = (ConnectionResetError, InterruptedError)


@dataclass(frozen=True, slots=True)
class ListenerClosed:
    """Final item a listener puts on its channel before exiting."""

    error: ReadError | None = None


ListenerItem = ProbeMatch | ProbeParseError | ListenerClosed


def parse_datagram(data: bytes) -> ProbeMatch | ProbeParseError:
    """Decode and parse one datagram, returning parse failures as values."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        return MalformedXmlError(f"invalid UTF-8: {exc}", cause=exc)
    try:
        return parse_probe_match(text)
    except ProbeParseError as exc:
        return exc


class ResponderListener:
    """Reads probe replies in a background thread until stopped.

    Every datagram yields one item on ``channel``. When the loop ends, for a
    stop request or a fatal socket error, a ``ListenerClosed`` item is posted
    and the socket handle is closed.
    """

    def __init__(
        self,
        sock: socket.socket,
        channel: queue.Queue[Any],
        *,
        read_timeout_s: float = 1.0,
        buffer_size: int = 65535,
    ) -> None:
        self._socket = sock
        self._channel = channel
        self._read_timeout_s = read_timeout_s
        self._buffer_size = buffer_size
        self._stop_event = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            logger.warning("%s already started", self.__class__.__name__)
            return
        self._socket.settimeout(self._read_timeout_s)
        self._thread = Thread(target=self._run_wrapper, name="onvif-probe-listen", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Ask the loop to exit; does not wait for it."""
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_wrapper(self) -> None:
        closed = ListenerClosed()
        try:
            closed = self._run()
        except Exception as exc:
            logger.exception("%s stopped unexpectedly", self.__class__.__name__)
            closed = ListenerClosed(ReadError(f"Listener failed: {exc}", cause=exc))
        finally:
            self._socket.close()
            self._channel.put(closed)

    def _run(self) -> ListenerClosed:
        while not self._stop_event.is_set():
            try:
                data, address = self._socket.recvfrom(self._buffer_size)
            except TimeoutError:
                continue
            except _TRANSIENT_READ_ERRORS as exc:
                logger.warning("Probe receive failed, continuing: %s", exc)
                continue
            except OSError as exc:
                if self._stop_event.is_set():
                    break
                logger.error("Probe socket unusable, stopping listener: %s", exc)
                return ListenerClosed(ReadError(f"Probe receive failed: {exc}", cause=exc))

            result = parse_datagram(data)
            if isinstance(result, ProbeParseError):
                logger.debug("Dropping unparsable reply from %s: %s", address[0], result)
            self._channel.put(result)
        logger.debug("Listener stopped")
        return ListenerClosed()


__all__ = ["ListenerClosed", "ListenerItem", "ResponderListener", "parse_datagram"]
