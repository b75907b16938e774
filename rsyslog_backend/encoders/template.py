"""
Message templates for the body of each syslog packet.

A template is a string with $-prefixed placeholders, compiled once per
configuration. Supported placeholders:

    $message   the log message
    $level     severity name (e.g. "error")
    $levelpad  spaces that right-pad $level to a fixed width
    $metadata  "key=value " for each configured metadata key
    $time      HH:MM:SS.mmm
    $date      YYYY-MM-DD
    $node      local hostname
"""

import re
import socket
from typing import Any, Callable, Dict, List, Sequence, Tuple, Union

from rsyslog_backend.encoders.structured_data import metadata_pairs
from rsyslog_backend.encoders.timestamp import TimestampFields
from rsyslog_backend.exceptions import ConfigurationError
from rsyslog_backend.models.severity import Severity

DEFAULT_FORMAT = "$message\n"

PLACEHOLDERS = ("message", "level", "levelpad", "metadata", "time", "date", "node")

_TOKEN_RE = re.compile(r"\$([A-Za-z_]+)")
_LEVEL_WIDTH = max(len(severity.label) for severity in Severity)

FormatCallable = Callable[[Severity, str, TimestampFields, Dict[str, Any]], str]


class MessageTemplate:
    """A compiled message template."""

    def __init__(self, source: Union[str, FormatCallable], parts: List[Tuple[bool, str]]):
        self.source = source
        self._parts = parts

    @classmethod
    def compile(cls, source: Union[str, FormatCallable]) -> "MessageTemplate":
        """
        Compile a template string, or wrap a callable formatter.

        Args:
            source: Template string or callable taking
                (severity, message, timestamp, metadata)

        Returns:
            Compiled template

        Raises:
            ConfigurationError: On unknown placeholders or a non-string source
        """
        if callable(source):
            return cls(source, [])
        if not isinstance(source, str):
            raise ConfigurationError(f"Invalid format option: {source!r}")

        parts: List[Tuple[bool, str]] = []
        position = 0
        for match in _TOKEN_RE.finditer(source):
            name = match.group(1)
            if name not in PLACEHOLDERS:
                raise ConfigurationError(f"Unknown placeholder ${name} in format {source!r}")
            if match.start() > position:
                parts.append((False, source[position:match.start()]))
            parts.append((True, name))
            position = match.end()
        if position < len(source):
            parts.append((False, source[position:]))
        return cls(source, parts)

    def render(
        self,
        severity: Severity,
        message: str,
        timestamp: TimestampFields,
        metadata: Dict[str, Any],
        metadata_keys: Sequence[str] = ()
    ) -> str:
        """Render the template for one event."""
        if callable(self.source):
            return self.source(severity, message, timestamp, metadata)

        out = []
        for is_placeholder, text in self._parts:
            if not is_placeholder:
                out.append(text)
            elif text == "message":
                out.append(message)
            elif text == "level":
                out.append(severity.label)
            elif text == "levelpad":
                out.append(" " * (_LEVEL_WIDTH - len(severity.label)))
            elif text == "metadata":
                out.extend(f"{key}={value} " for key, value in metadata_pairs(metadata_keys, metadata))
            elif text == "time":
                hour, minute, second, millisecond = timestamp[3:]
                out.append(f"{hour:02d}:{minute:02d}:{second:02d}.{millisecond:03d}")
            elif text == "date":
                year, month, day = timestamp[:3]
                out.append(f"{year:04d}-{month:02d}-{day:02d}")
            elif text == "node":
                out.append(socket.gethostname())
        return "".join(out)
