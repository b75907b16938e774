"""
Logging handler that ships records to a syslog collector over UDP.
"""

import logging
import socket
from typing import Any, Dict, Mapping, Optional

from rsyslog_backend.config import HandlerConfig, configure, merge_options
from rsyslog_backend.encoders.packet import encode_event
from rsyslog_backend.models.event import LogEvent
from rsyslog_backend.models.severity import severity_code

logger = logging.getLogger(__name__)


def should_emit(event_severity: Any, minimum: Any) -> bool:
    """True when the event is at least as urgent as the configured minimum."""
    return severity_code(event_severity) <= severity_code(minimum)


class RsyslogHandler(logging.Handler):
    """
    RFC5424 syslog handler sending one UDP datagram per record.

    Delivery is best effort: send failures are counted in ``dropped`` and never
    raised to the code that logged. Records are processed one at a time under
    the handler lock, and ``configure`` takes the same lock, so a new
    configuration is only seen by records handled after it completes.
    """

    def __init__(
        self,
        name: str = "rsyslog",
        env: Optional[Mapping[str, Any]] = None,
        **options: Any
    ):
        """
        Initialize the handler and open its socket.

        Args:
            name: Handler name, also the section name in YAML configuration
            env: Persisted options (e.g. loaded from YAML) merged under ``options``
            **options: Handler options, see rsyslog_backend.config.OPTIONS

        Raises:
            ConfigurationError: If the options are invalid
        """
        super().__init__(logging.NOTSET)
        self.name = name
        self._env: Dict[str, Any] = dict(env or {})
        self._socket_closed = False
        self.dropped = 0
        self.config: HandlerConfig = configure(HandlerConfig(), options, self._env)
        self._env = merge_options(self._env, options)
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def configure(self, **options: Any) -> HandlerConfig:
        """
        Apply new options on top of the current configuration.

        The previous configuration stays in effect when this raises.

        Raises:
            ConfigurationError: If an option is invalid or the host cannot be resolved
        """
        with self.lock:
            self.config = configure(self.config, options, self._env)
            self._env = merge_options(self._env, options)
        logger.info(f"Handler {self.name} now sending to {self.config.address}:{self.config.port}")
        return self.config

    def emit(self, record: logging.LogRecord) -> None:
        """Filter, encode and send one record."""
        if self._socket_closed:
            return
        config = self.config
        try:
            event = LogEvent.from_record(record)
            if not should_emit(event.severity, config.level):
                return
            packet = encode_event(event, config)
        except Exception:
            self.handleError(record)
            return
        self._send(packet, config)

    def _send(self, packet: bytes, config: HandlerConfig) -> None:
        try:
            self._sock.sendto(packet, config.destination)
        except OSError:
            self.dropped += 1

    def close(self) -> None:
        """Close the socket once; later records are ignored."""
        with self.lock:
            if not self._socket_closed:
                self._socket_closed = True
                self._sock.close()
        super().close()
