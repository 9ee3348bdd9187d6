from __future__ import annotations

import json
import logging
import logging.config
import os

_NO_PROBE = "-"
_current_probe_id = _NO_PROBE

# Attributes every LogRecord has; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}
_CONTEXT_ATTRS = frozenset({"probe_id"})


class _ProbeContextFilter(logging.Filter):
    """Stamps records with the probe session they were logged under."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "probe_id", None):
            record.probe_id = _current_probe_id
        return True


class _InlineExtrasFormatter(logging.Formatter):
    """Appends `extra=` fields to the line as compact, key-sorted JSON."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in _CONTEXT_ATTRS
        }
        if extras:
            line = f"{line} {json.dumps(extras, default=str, sort_keys=True)}"
        return line


def current_probe_id() -> str:
    return _current_probe_id


def set_probe_id(probe_id: str | None) -> None:
    """Set the `probe_id` stamped on log records; None clears it."""
    global _current_probe_id
    _current_probe_id = probe_id or _NO_PROBE


def configure_logging(*, log_level: str = "INFO") -> None:
    """Send logs to stderr, tagged with the active probe session.

    `CONSOLE_LOG_FORMAT` overrides the line format; `%(probe_id)s` is
    always available to it.
    """
    console_fmt = os.getenv(
        "CONSOLE_LOG_FORMAT",
        "%(asctime)s %(levelname)s [%(probe_id)s] %(threadName)s %(module)s:%(lineno)d %(message)s",
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "probe_context": {"()": "onvif_probe.logging_setup._ProbeContextFilter"},
            },
            "formatters": {
                "inline": {
                    "()": "onvif_probe.logging_setup._InlineExtrasFormatter",
                    "format": console_fmt,
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": str(log_level).upper(),
                    "formatter": "inline",
                    "filters": ["probe_context"],
                    "stream": "ext://sys.stderr",
                }
            },
            "root": {"level": "DEBUG", "handlers": ["console"]},
        }
    )
    logging.captureWarnings(True)
