"""
rsyslog_backend - RFC5424 syslog over UDP for the standard logging package.
"""

from .config import HandlerConfig, configure, load_config
from .exceptions import ConfigurationError
from .handler import RsyslogHandler, should_emit

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "HandlerConfig",
    "RsyslogHandler",
    "configure",
    "load_config",
    "should_emit",
]
