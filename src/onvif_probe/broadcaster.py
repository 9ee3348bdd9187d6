"""Multicast sender for WS-Discovery Probe messages."""

from __future__ import annotations

import errno
import logging
import queue
import socket
import time
from dataclasses import dataclass
from threading import Thread
from typing import Any

from onvif_probe.errors import SendError
from onvif_probe.settings import ProbeSettings

logger = logging.getLogger(__name__)

# WS-Discovery Probe type matching is AND, so each device type is probed with
# its own message and the replies are merged by the orchestrator.
_DEVICE_TYPE_NAMESPACES = {
    "NetworkVideoTransmitter": "http://www.onvif.org/ver10/network/wsdl",
    "NetworkVideoDisplay": "http://www.onvif.org/ver10/network/wsdl",
    "Device": "http://www.onvif.org/ver10/device/wsdl",
}
_DEFAULT_TYPE_NAMESPACE = "http://www.onvif.org/ver10/network/wsdl"

# Errors meaning the socket itself is gone; nothing else will send either.
_FATAL_SEND_ERRNOS = frozenset({errno.EBADF, errno.ENOTSOCK})

_PROBE_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope"'
    ' xmlns:a="http://schemas.xmlsoap.org/ws/2004/08/addressing">'
    "<s:Header>"
    '<a:Action s:mustUnderstand="1">'
    "http://schemas.xmlsoap.org/ws/2005/04/discovery/Probe</a:Action>"
    "<a:MessageID>{message_id}</a:MessageID>"
    "<a:ReplyTo><a:Address>"
    "http://schemas.xmlsoap.org/ws/2004/08/addressing/role/anonymous"
    "</a:Address></a:ReplyTo>"
    '<a:To s:mustUnderstand="1">urn:schemas-xmlsoap-org:ws:2005:04:discovery</a:To>'
    "</s:Header>"
    "<s:Body>"
    '<Probe xmlns="http://schemas.xmlsoap.org/ws/2005/04/discovery">'
    '<d:Types xmlns:d="http://schemas.xmlsoap.org/ws/2005/04/discovery"'
    ' xmlns:dp0="{type_namespace}">dp0:{device_type}</d:Types>'
    "</Probe>"
    "</s:Body>"
    "</s:Envelope>"
)


def build_probe_message(device_type: str, message_id: str) -> bytes:
    """Render a SOAP 1.2 Probe envelope for one ONVIF device type."""
    return _PROBE_TEMPLATE.format(
        message_id=message_id,
        device_type=device_type,
        type_namespace=_DEVICE_TYPE_NAMESPACES.get(device_type, _DEFAULT_TYPE_NAMESPACE),
    ).encode("utf-8")


@dataclass(frozen=True, slots=True)
class BroadcastFinished:
    """Final item a broadcaster puts on its channel once it stops sending."""

    sent: int
    errors: tuple[SendError, ...] = ()
    failure: SendError | None = None


class ProbeBroadcaster:
    """Sends rounds of Probe messages from a background thread.

    The broadcaster owns its socket handle and closes it once all rounds are
    sent, then posts a ``BroadcastFinished`` item on ``channel``. It has no
    stop path; it always runs its configured rounds.
    """

    def __init__(
        self,
        sock: socket.socket,
        channel: queue.Queue[Any],
        settings: ProbeSettings,
        message_id: str,
    ) -> None:
        self._socket = sock
        self._channel = channel
        self._settings = settings
        self._messages = [
            (device_type, build_probe_message(device_type, message_id))
            for device_type in settings.device_types
        ]
        self._thread: Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            logger.warning("%s already started", self.__class__.__name__)
            return
        self._thread = Thread(target=self._run_wrapper, name="onvif-probe-broadcast", daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_wrapper(self) -> None:
        finished = BroadcastFinished(sent=0)
        try:
            finished = self._run()
        except Exception as exc:
            logger.exception("%s stopped unexpectedly", self.__class__.__name__)
            finished = BroadcastFinished(
                sent=0, failure=SendError("Probe broadcast aborted", None, cause=exc)
            )
        finally:
            self._socket.close()
            self._channel.put(finished)

    def _run(self) -> BroadcastFinished:
        target = self._settings.multicast_address
        sent = 0
        errors: list[SendError] = []
        for round_index in range(self._settings.rounds):
            for device_type, payload in self._messages:
                try:
                    self._socket.sendto(payload, target)
                except OSError as exc:
                    error = SendError(
                        f"Probe send for {device_type} to {target[0]}:{target[1]} failed: {exc}",
                        device_type,
                        cause=exc,
                    )
                    errors.append(error)
                    if exc.errno in _FATAL_SEND_ERRNOS:
                        logger.error("Probe socket unusable, aborting broadcast: %s", exc)
                        return BroadcastFinished(sent=sent, errors=tuple(errors), failure=error)
                    logger.warning("%s", error)
                else:
                    sent += 1
                time.sleep(self._settings.message_delay_s)
            logger.debug("Probe round %d/%d sent", round_index + 1, self._settings.rounds)

        failure = None
        if sent == 0 and errors:
            failure = SendError(
                f"All {len(errors)} probe sends failed", None, cause=errors[-1].cause
            )
        return BroadcastFinished(sent=sent, errors=tuple(errors), failure=failure)


__all__ = ["BroadcastFinished", "ProbeBroadcaster", "build_probe_message"]
