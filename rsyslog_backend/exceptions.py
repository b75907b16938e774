"""
Exceptions raised by rsyslog_backend.
"""


class ConfigurationError(ValueError):
    """Raised when handler options are invalid or the destination cannot be resolved."""
