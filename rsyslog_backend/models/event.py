"""
Log event model built from standard library log records.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from rsyslog_backend.encoders.timestamp import TimestampFields, timestamp_fields
from rsyslog_backend.models.severity import Severity, severity_from_levelno, to_severity

# Attributes every LogRecord carries; anything else on a record came from extra=
RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_formatter = logging.Formatter()


@dataclass
class LogEvent:
    """
    A single log event on its way to the wire.

    Attributes:
        severity: Resolved syslog severity
        message: Rendered message body
        timestamp: (year, month, day, hour, minute, second, millisecond) in UTC
        metadata: Metadata keys mapped to arbitrary values
    """
    severity: Severity
    message: str
    timestamp: TimestampFields
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEvent":
        """
        Build an event from a LogRecord.

        A ``syslog_severity`` attribute (passed through ``extra=``) overrides the
        severity derived from the record's level, which allows notice, alert and
        emergency to be sent from plain Python loggers.
        """
        override = getattr(record, "syslog_severity", None)
        if override is not None:
            severity = to_severity(override)
        else:
            severity = severity_from_levelno(record.levelno)

        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{_formatter.formatException(record.exc_info)}"
        elif record.exc_text:
            message = f"{message}\n{record.exc_text}"

        return cls(
            severity=severity,
            message=message,
            timestamp=timestamp_fields(record.created),
            metadata=record_metadata(record),
        )


def record_metadata(record: logging.LogRecord) -> Dict[str, Any]:
    """Collect the standard metadata keys of a record plus its extra attributes."""
    metadata: Dict[str, Any] = {
        "logger": record.name,
        "module": record.module,
        "function": record.funcName,
        "file": record.pathname,
        "line": record.lineno,
        "pid": record.process,
        "thread": record.threadName,
        "process_name": record.processName,
    }
    for key, value in record.__dict__.items():
        if key not in RECORD_ATTRIBUTES and key != "syslog_severity":
            metadata[key] = value
    return metadata
