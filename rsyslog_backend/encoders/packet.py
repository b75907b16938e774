"""
RFC5424 packet assembly.

Layout of one datagram:

    <PRI>1 YYYY-MM-DDTHH:MM:SS.mmmZ HOSTNAME APP-NAME PROCID - [SD...] MSG

The "Z HOSTNAME APP-NAME PROCID - " part is the identity prefix cached in the
handler configuration.
"""

from typing import Any, Sequence

from rsyslog_backend.config import HandlerConfig
from rsyslog_backend.encoders.structured_data import encode_structured_data
from rsyslog_backend.encoders.timestamp import TimestampFields, encode_timestamp
from rsyslog_backend.models.event import LogEvent
from rsyslog_backend.models.severity import facility_code, severity_code

VERSION = "1"


def compute_pri(severity: Any, facility: Any) -> int:
    """PRI value: severity in the low three bits, facility above them."""
    return severity_code(severity) | facility_code(facility)


def assemble(
    severity: Any,
    facility: Any,
    timestamp: TimestampFields,
    identity: str,
    sd_block: Sequence[str],
    body: str
) -> bytes:
    """
    Assemble one datagram.

    Args:
        severity: Event severity (anything severity_code accepts)
        facility: Configured facility
        timestamp: Calendar fields of the event
        identity: Cached identity prefix
        sd_block: Formatted SD elements, concatenated without separator
        body: Rendered message body

    Returns:
        UTF-8 encoded packet
    """
    fragments = [
        "<", str(compute_pri(severity, facility)), ">", VERSION, " ",
        encode_timestamp(*timestamp),
        identity,
    ]
    fragments.extend(sd_block)
    if sd_block:
        fragments.append(" ")
    fragments.append(body)
    return "".join(fragments).encode("utf-8", errors="replace")


def encode_event(event: LogEvent, config: HandlerConfig) -> bytes:
    """Encode an event with a configuration snapshot."""
    sd_block = encode_structured_data(config.structured_data, event.metadata, config.escape_sd)
    body = config.template.render(
        event.severity,
        event.message,
        event.timestamp,
        event.metadata,
        config.metadata,
    )
    return assemble(
        event.severity,
        config.facility,
        event.timestamp,
        config.identity,
        sd_block,
        body,
    )
