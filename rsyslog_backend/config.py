"""
Handler configuration snapshots and YAML loading for rsyslog_backend.

A HandlerConfig is immutable. Reconfiguration builds a new snapshot from the
previous one, so an event that is already being encoded keeps the snapshot it
started with.
"""

import ipaddress
import logging
import os
import socket
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from rsyslog_backend.encoders.structured_data import SDSpec, normalize_sd_spec
from rsyslog_backend.encoders.template import DEFAULT_FORMAT, MessageTemplate
from rsyslog_backend.exceptions import ConfigurationError
from rsyslog_backend.models.severity import Facility, Severity, to_facility, to_severity

logger = logging.getLogger(__name__)

OPTIONS = (
    "level",
    "metadata",
    "format",
    "structured_data",
    "host",
    "port",
    "facility",
    "app_name",
    "escape_sd",
)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 514
DEFAULT_APP_NAME = "python"
NILVALUE = "-"


@dataclass(frozen=True)
class HandlerConfig:
    """
    Configuration snapshot for one RsyslogHandler.

    Attributes:
        host: Destination as configured (hostname or address)
        address: Resolved IPv4 address packets are sent to
        port: Destination UDP port
        facility: Local facility for every packet
        level: Minimum severity that is sent
        metadata: Metadata keys rendered by the $metadata placeholder
        format: Template source
        template: Compiled template
        structured_data: Ordered (SD-ID, allowed keys) pairs
        app_name: APP-NAME header field
        identity: Cached "Z <hostname> <app_name> <pid> - " prefix
        escape_sd: Escape backslash, quote and ] in SD values
    """
    host: Any = DEFAULT_HOST
    address: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    facility: Facility = Facility.LOCAL1
    level: Severity = Severity.DEBUG
    metadata: Tuple[str, ...] = ()
    format: Any = DEFAULT_FORMAT
    template: MessageTemplate = field(default_factory=lambda: MessageTemplate.compile(DEFAULT_FORMAT))
    structured_data: SDSpec = ()
    app_name: str = DEFAULT_APP_NAME
    identity: str = ""
    escape_sd: bool = True

    @property
    def destination(self) -> Tuple[str, int]:
        return (self.address, self.port)


def configure(
    current: HandlerConfig,
    overrides: Mapping[str, Any],
    env: Optional[Mapping[str, Any]] = None
) -> HandlerConfig:
    """
    Build a new snapshot from the current one.

    Persisted options in ``env`` are applied first, then ``overrides``. Any
    option present in neither keeps its value from ``current``. The host is
    resolved again and the identity prefix rebuilt on every call.

    Args:
        current: Snapshot to start from
        overrides: Explicit options; unrecognized names are ignored
        env: Persisted options for this handler, if any

    Returns:
        The new snapshot

    Raises:
        ConfigurationError: If an option is invalid or the host cannot be resolved
    """
    opts = merge_options(env or {}, overrides)

    def get(name: str) -> Any:
        return opts.get(name, getattr(current, name))

    host = get("host")
    port = _validate_port(get("port"))
    fmt = get("format")
    template = current.template if fmt is current.format else MessageTemplate.compile(fmt)
    app_name = str(get("app_name"))
    metadata = get("metadata")
    if isinstance(metadata, str) or not isinstance(metadata, (list, tuple)):
        raise ConfigurationError(f"Invalid metadata option: {metadata!r}")

    config = HandlerConfig(
        host=host,
        address=resolve_host(host),
        port=port,
        facility=to_facility(get("facility")),
        level=to_severity(get("level")),
        metadata=tuple(str(key) for key in metadata),
        format=fmt,
        template=template,
        structured_data=normalize_sd_spec(get("structured_data")),
        app_name=app_name,
        identity=build_identity(app_name),
        escape_sd=_parse_bool("escape_sd", get("escape_sd")),
    )
    logger.debug(
        f"Configured destination {config.address}:{config.port} "
        f"facility={config.facility.name.lower()} level={config.level.label}"
    )
    return config


def merge_options(env: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge recognized options, later mappings taking precedence."""
    merged = {key: value for key, value in env.items() if key in OPTIONS}
    merged.update((key, value) for key, value in overrides.items() if key in OPTIONS)
    return merged


def _parse_bool(name: str, value: Any) -> bool:
    """Accept real booleans or the strings "true"/"false" (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigurationError(f"Invalid {name} option: {value!r}, expected true or false")


def _validate_port(port: Any) -> int:
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port: {port!r}")
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range: {port}")
    return port


def resolve_host(host: Any) -> str:
    """
    Resolve a destination to an IPv4 address string.

    Addresses (strings, ipaddress objects or 4-tuples of octets) pass through
    unchanged. Hostnames are resolved with a blocking lookup and the first
    address is used.

    Raises:
        ConfigurationError: If the name does not resolve or is not IPv4
    """
    if isinstance(host, tuple) and len(host) == 4:
        host = ".".join(str(octet) for octet in host)
    if isinstance(host, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        host = str(host)
    if not isinstance(host, str) or not host:
        raise ConfigurationError(f"Invalid host: {host!r}")

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        address = None
    if address is not None:
        if address.version != 4:
            raise ConfigurationError(f"Only IPv4 destinations are supported: {host}")
        return str(address)

    try:
        return socket.gethostbyname(host)
    except OSError as e:
        raise ConfigurationError(f"Cannot resolve host {host!r}: {e}") from e


def header_field(value: Any, max_length: int) -> str:
    """Sanitize a header field to printable US-ASCII, or NILVALUE when empty."""
    text = "".join(c for c in str(value) if 33 <= ord(c) <= 126)[:max_length]
    return text or NILVALUE


def build_identity(
    app_name: str,
    hostname: Optional[str] = None,
    pid: Optional[int] = None
) -> str:
    """
    Build the cached prefix that follows the timestamp in every packet.

    The result is "Z <hostname> <app_name> <pid> - ": the UTC designator,
    HOSTNAME, APP-NAME, PROCID and a nil MSGID.
    """
    if hostname is None:
        hostname = socket.gethostname()
    if pid is None:
        pid = os.getpid()
    return (
        f"Z {header_field(hostname, 255)} {header_field(app_name, 48)} "
        f"{header_field(pid, 128)} {NILVALUE} "
    )


def load_config(path: str) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    The file holds one section per handler name (options as accepted by
    ``configure``) and an optional ``logging`` section for the CLI.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Dictionary containing the configuration data

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        yaml.YAMLError: If the YAML file is malformed
    """
    try:
        with open(path, 'r', encoding='utf-8') as file:
            config_data = yaml.safe_load(file)
            return config_data if config_data is not None else {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {path}")
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing YAML file {path}: {e}")
