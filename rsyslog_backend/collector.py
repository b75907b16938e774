"""
Local UDP collector for RFC5424 datagrams.

Used by the ``listen`` command to inspect what a handler sends, and by the
end-to-end tests.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# <PRI>VERSION TIMESTAMP HOSTNAME APP-NAME PROCID MSGID [SD] MSG
RFC5424_REGEX = re.compile(
    r'<(\d{1,3})>(\d{1,2}) (\S+) (\S+) (\S+) (\S+) (\S+) ?'
    r'((?:\[(?:[^\]\\"]|\\.|"(?:[^"\\]|\\.)*")*\])+|-(?= |$))?\s?(.*)',
    re.DOTALL
)

SD_ELEMENT_REGEX = re.compile(r'\[([^\s\]]+)((?:\s+[^=\s\]]+="(?:[^"\\]|\\.)*")*)\s*\]')
SD_PARAM_REGEX = re.compile(r'([^=\s\]]+)="((?:[^"\\]|\\.)*)"')
_UNESCAPE_REGEX = re.compile(r'\\(["\\\]])')


@dataclass
class ReceivedMessage:
    """
    A parsed RFC5424 datagram.

    Attributes:
        source: (host, port) of the sender
        pri: Raw PRI value
        facility: Facility number (PRI >> 3)
        severity: Severity code (PRI & 7)
        version: Protocol version
        timestamp: TIMESTAMP field as sent
        hostname: HOSTNAME field
        app_name: APP-NAME field
        procid: PROCID field
        msgid: MSGID field
        structured_data: SD-ID mapped to its unescaped parameters
        message: Message text
    """
    source: Tuple[str, int]
    pri: int
    facility: int
    severity: int
    version: int
    timestamp: str
    hostname: str
    app_name: str
    procid: str
    msgid: str
    message: str
    structured_data: Dict[str, Dict[str, str]] = field(default_factory=dict)


def parse_structured_data(text: str) -> Dict[str, Dict[str, str]]:
    """Parse concatenated SD elements into a dict of dicts."""
    elements: Dict[str, Dict[str, str]] = {}
    for match in SD_ELEMENT_REGEX.finditer(text):
        sd_id, params = match.groups()
        elements[sd_id] = {
            key: _UNESCAPE_REGEX.sub(r"\1", value)
            for key, value in SD_PARAM_REGEX.findall(params)
        }
    return elements


def parse_packet(data: bytes, source: Tuple[str, int] = ("", 0)) -> Optional[ReceivedMessage]:
    """
    Parse one datagram.

    Args:
        data: Raw UDP payload
        source: Sender address

    Returns:
        ReceivedMessage, or None if the payload is not RFC5424
    """
    text = data.decode('utf-8', errors='replace')
    match = RFC5424_REGEX.match(text)
    if not match:
        return None

    pri_str, version, timestamp, hostname, app_name, procid, msgid, sd, message = match.groups()
    pri = int(pri_str)
    return ReceivedMessage(
        source=source,
        pri=pri,
        facility=pri >> 3,
        severity=pri & 7,
        version=int(version),
        timestamp=timestamp,
        hostname=hostname,
        app_name=app_name,
        procid=procid,
        msgid=msgid,
        message=message,
        structured_data=parse_structured_data(sd) if sd and sd != "-" else {},
    )


class CollectorProtocol(asyncio.DatagramProtocol):
    """Protocol handler for syslog UDP datagrams."""

    def __init__(self, collector: 'SyslogCollector'):
        self.collector = collector

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.collector.process_data(data, addr)


class SyslogCollector:
    """
    Receives RFC5424 datagrams and pushes parsed messages to a queue.
    """

    def __init__(
        self,
        queue: asyncio.Queue,
        port: int = 5514,
        host: str = "127.0.0.1"
    ):
        """
        Initialize the collector.

        Args:
            queue: Queue to put parsed messages into
            port: UDP port to listen on; 0 picks a free port
            host: Interface to bind to
        """
        self.queue = queue
        self.port = port
        self.host = host
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.invalid = 0

    @property
    def is_running(self) -> bool:
        return self.transport is not None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); only meaningful while running."""
        return self.transport.get_extra_info('sockname')[:2]

    async def start(self) -> None:
        """Start listening for datagrams."""
        loop = asyncio.get_running_loop()
        self.transport, _ = await loop.create_datagram_endpoint(
            lambda: CollectorProtocol(self),
            local_addr=(self.host, self.port)
        )
        host, port = self.address
        logger.info(f"Syslog collector listening on {host}:{port}")

    async def stop(self) -> None:
        """Stop the collector and release the socket."""
        if self.transport:
            self.transport.close()
            self.transport = None
            logger.info("Syslog collector stopped")

    def process_data(self, data: bytes, addr: Tuple[str, int]) -> None:
        message = parse_packet(data, addr)
        if message is None:
            self.invalid += 1
            logger.warning(f"Discarded non-RFC5424 datagram from {addr[0]}:{addr[1]}")
            return
        self.queue.put_nowait(message)
