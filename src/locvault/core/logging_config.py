"""Lightweight logging setup with redaction of location data."""

import logging
import re
import sys

_REDACTIONS = (
    # envelope bodies: keep the version tag only
    (re.compile(r"\b(v\d+):[A-Za-z0-9+/]{8,}={0,2}"), r"\1:***"),
    # latitude/longitude pairs such as "37.5665, 126.978"
    (re.compile(r"-?\d{1,3}\.\d+\s*,\s*-?\d{1,3}\.\d+"), "<coords>"),
    # long opaque identifiers (user ids, tokens): keep a 4-char hint
    (re.compile(r"\b([A-Za-z0-9]{4})[A-Za-z0-9]{16,}\b"), r"***[\1...]"),
)


def redact(message: str) -> str:
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


class RedactingFilter(logging.Filter):
    # rewrites the rendered message so handlers never see raw location data
    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(level: int = logging.INFO) -> None:
    # Configure root logger once; keep output simple for terminals.
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
