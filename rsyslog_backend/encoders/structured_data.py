"""
Structured-data (SD) element encoding.

Each configured SD-ID declares which metadata keys it carries. Values are
coerced to strings by type; a value that cannot be represented is left out of
the element instead of being guessed at.
"""

import asyncio
import os
import threading
import types
import uuid
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from rsyslog_backend.exceptions import ConfigurationError

SDSpec = Tuple[Tuple[str, Tuple[str, ...]], ...]

_CONTAINER_TYPES = (list, tuple, set, frozenset, dict)
_MFA_KEYS = ("mfa", "initial_call")
_SD_NAME_MAX = 32
_SD_NAME_FORBIDDEN = frozenset(' =]"')


def coerce_value(key: str, value: Any) -> Optional[str]:
    """
    Convert a metadata value to its SD-PARAM text.

    Args:
        key: Metadata key; "file", "domain", "mfa" and "initial_call" get
            special handling
        value: Arbitrary metadata value

    Returns:
        The string form, or None when the value has no representation
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return int.__repr__(value)
    if isinstance(value, float):
        return float.__repr__(value)

    handle = _handle_name(value)
    if handle is not None:
        return handle

    symbol = _symbol_name(value)
    if symbol is not None:
        return symbol

    if key == "file" and isinstance(value, os.PathLike):
        return os.fspath(value)
    if key == "domain" and isinstance(value, (list, tuple)) and value:
        if all(isinstance(segment, (str, Enum)) for segment in value):
            return ".".join(
                segment.name if isinstance(segment, Enum) else segment
                for segment in value
            )
    if key in _MFA_KEYS and isinstance(value, tuple) and len(value) == 3:
        formatted = _format_mfa(*value)
        if formatted is not None:
            return formatted

    if isinstance(value, _CONTAINER_TYPES):
        return None

    if type(value).__str__ is object.__str__:
        return None
    try:
        return str(value)
    except Exception:
        return None


def _handle_name(value: Any) -> Optional[str]:
    """Textual form of runtime identifiers (UUIDs, threads, tasks)."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, threading.Thread):
        return value.name
    if isinstance(value, asyncio.Task):
        return value.get_name()
    return None


def _symbol_name(value: Any) -> Optional[str]:
    """Bare name of symbolic values: enum members, classes, modules and Ellipsis."""
    if value is Ellipsis:
        return ""
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, type):
        return value.__qualname__
    if isinstance(value, types.ModuleType):
        return value.__name__
    return None


def _name_of(part: Any) -> Optional[str]:
    if isinstance(part, str):
        return part
    if isinstance(part, types.ModuleType):
        return part.__name__
    if isinstance(part, type):
        return f"{part.__module__}.{part.__qualname__}"
    if callable(part):
        return getattr(part, "__name__", None)
    return None


def _format_mfa(module: Any, function: Any, arity: Any) -> Optional[str]:
    """Render a (module, function, arity) triple as module.function/arity."""
    if not isinstance(arity, int) or isinstance(arity, bool):
        return None
    module_name = _name_of(module)
    function_name = _name_of(function)
    if module_name is None or function_name is None:
        return None
    return f"{module_name}.{function_name}/{arity}"


def escape_param_value(value: str) -> str:
    """Escape PARAM-VALUE characters per RFC5424 section 6.3.3."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("]", "\\]")


def encode_element(
    sd_id: str,
    keys: Sequence[str],
    metadata: Mapping[str, Any],
    escape: bool = True
) -> str:
    """Format one SD element from the allowed keys present in metadata."""
    parts = ["[", sd_id]
    for key, formatted in metadata_pairs(keys, metadata):
        if escape:
            formatted = escape_param_value(formatted)
        parts.append(f' {key}="{formatted}"')
    parts.append("]")
    return "".join(parts)


def encode_structured_data(
    sd_spec: SDSpec,
    metadata: Mapping[str, Any],
    escape: bool = True
) -> List[str]:
    """
    Encode every configured SD element for one event.

    Args:
        sd_spec: Ordered (SD-ID, allowed keys) pairs
        metadata: Event metadata
        escape: Escape backslash, quote and closing bracket in values

    Returns:
        Formatted elements in configuration order. Entries whose key list is
        empty produce nothing; entries with no matching metadata produce an
        element without parameters.
    """
    return [
        encode_element(sd_id, keys, metadata, escape)
        for sd_id, keys in sd_spec
        if keys
    ]


def is_sd_name(name: str) -> bool:
    """True for 1-32 printable US-ASCII characters without space, =, ] or '"'."""
    return (
        0 < len(name) <= _SD_NAME_MAX
        and all(33 <= ord(c) <= 126 and c not in _SD_NAME_FORBIDDEN for c in name)
    )


def normalize_sd_spec(value: Any) -> SDSpec:
    """
    Normalize a structured_data option into (SD-ID, keys) tuples.

    Accepted shapes:
        - a mapping of SD-ID to a list of keys
        - a list of [SD-ID, keys] pairs
        - a list of {"id": SD-ID, "keys": [...]} mappings

    Raises:
        ConfigurationError: If the value has none of these shapes, or an
            SD-ID or key is not a valid RFC5424 SD-NAME
    """
    if value is None:
        return ()
    if isinstance(value, Mapping):
        entries: Iterable[Any] = list(value.items())
    elif isinstance(value, (list, tuple)):
        entries = value
    else:
        raise ConfigurationError(f"Invalid structured_data option: {value!r}")

    normalized = []
    for entry in entries:
        if isinstance(entry, Mapping):
            sd_id, keys = entry.get("id"), entry.get("keys", [])
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            sd_id, keys = entry
        else:
            raise ConfigurationError(f"Invalid structured_data entry: {entry!r}")
        if not sd_id or not isinstance(keys, (list, tuple)):
            raise ConfigurationError(f"Invalid structured_data entry: {entry!r}")
        keys = tuple(str(key) for key in keys)
        for name in (str(sd_id),) + keys:
            if not is_sd_name(name):
                raise ConfigurationError(f"Invalid SD-ID or PARAM-NAME {name!r} in structured_data")
        normalized.append((str(sd_id), keys))
    return tuple(normalized)


def metadata_pairs(keys: Sequence[str], metadata: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Coerced (key, value) pairs for the keys present in metadata, in key order."""
    pairs = []
    for key in keys:
        if key in metadata:
            formatted = coerce_value(key, metadata[key])
            if formatted is not None:
                pairs.append((key, formatted))
    return pairs
