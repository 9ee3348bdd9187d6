"""Extraction of device metadata from WS-Discovery ProbeMatch responses.

The response is walked as an event stream rather than loaded as a tree: the
SOAP header is skipped, then the body is scanned with a stack of open element
names and the text of a handful of well-known WS-Discovery tags is captured.
Tags are matched by local name so vendor namespace prefixes (``SOAP-ENV``,
``s``, ``env``, ``d``, ``wsdd`` ...) do not matter. Unknown tags are ignored.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterator

from onvif_probe.errors import MalformedXmlError, MissingHeaderError
from onvif_probe.models import ProbeMatch

_HEADER_TAG = "Header"
_BODY_TAG = "Body"

# Local element name -> ProbeMatch field.
_TEXT_FIELDS = {
    "Address": "urn",
}
_LIST_FIELDS = {
    "Types": "types",
    "Scopes": "scopes",
    "XAddrs": "xaddrs",
}

# Scope URN prefix -> ProbeMatch field holding its last path segment.
_SCOPE_FIELDS = (
    ("onvif://www.onvif.org/hardware/", "hardware"),
    ("onvif://www.onvif.org/location/", "location"),
    ("onvif://www.onvif.org/name/", "name"),
)


def parse_probe_match(text: str) -> ProbeMatch:
    """Parse one SOAP ProbeMatch document.

    Raises:
        MissingHeaderError: The document ends before ``</Header>``.
        MalformedXmlError: The document contains a malformed XML token.
    """
    events = _iter_events(text)

    for event, element in events:
        if event == "end" and _local_name(element.tag) == _HEADER_TAG:
            break
    else:
        raise MissingHeaderError()

    text_values: dict[str, str] = {}
    list_values: dict[str, tuple[str, ...]] = {}
    stack: list[str] = []
    for event, element in events:
        name = _local_name(element.tag)
        if event == "start":
            stack.append(name)
            continue

        if not stack:
            # Envelope closed without a body.
            break
        ended = stack.pop()
        if ended == _BODY_TAG:
            break

        content = (element.text or "").strip()
        if not content:
            continue
        if ended in _TEXT_FIELDS:
            text_values[_TEXT_FIELDS[ended]] = content
        elif ended in _LIST_FIELDS:
            list_values[_LIST_FIELDS[ended]] = tuple(content.split())

    text_values.update(scope_attributes(list_values.get("scopes", ())))
    return ProbeMatch(**text_values, **list_values)


def scope_attributes(scopes: tuple[str, ...]) -> dict[str, str]:
    """Map well-known ONVIF scope URNs to name/hardware/location values.

    When several scopes share a prefix the last one wins.
    """
    attributes: dict[str, str] = {}
    for scope in scopes:
        for prefix, field_name in _SCOPE_FIELDS:
            if scope.startswith(prefix):
                attributes[field_name] = scope.rsplit("/", 1)[-1]
                break
    return attributes


def _iter_events(text: str) -> Iterator[tuple[str, ET.Element]]:
    # close() is never called: a truncated document reads as end-of-input
    # instead of a parse error.
    parser = ET.XMLPullParser(events=("start", "end"))
    try:
        parser.feed(text)
        yield from parser.read_events()
    except ET.ParseError as exc:
        raise MalformedXmlError(str(exc), cause=exc) from exc


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


__all__ = ["parse_probe_match", "scope_attributes"]
