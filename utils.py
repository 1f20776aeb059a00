"""Utility helpers for configuration, MAC handling and NetBox responses."""

from __future__ import annotations

import re
from typing import Any, Iterator, Sequence, TypeVar
from urllib.parse import urlsplit, urlunsplit

import requests

from exceptions import RequestContext

T = TypeVar("T")

_API_SUFFIX = "/api"
_MAC_SEPARATORS = re.compile(r"[:\-.]")
_MAC_HEX = re.compile(r"^[0-9a-f]{12}$")


def normalize_netbox_url(base_url: str) -> str:
    """Normalize URL and strip a trailing /api if present."""
    if not base_url or not base_url.strip():
        raise ValueError("NetBox URL is required")

    parsed = urlsplit(base_url.strip())
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("NetBox URL must start with http:// or https://")
    if not parsed.netloc:
        raise ValueError("NetBox URL must include a hostname")

    path = parsed.path.rstrip("/")
    if path.endswith(_API_SUFFIX):
        path = path[: -len(_API_SUFFIX)]

    normalized = urlunsplit((parsed.scheme, parsed.netloc, path, "", ""))
    return normalized.rstrip("/")


def normalize_mac(mac: str) -> str:
    """Return MAC as 12 lowercase hex chars without separators."""
    if not mac or not str(mac).strip():
        raise ValueError("MAC address is required")
    stripped = _MAC_SEPARATORS.sub("", str(mac).strip().lower())
    if not _MAC_HEX.match(stripped):
        raise ValueError(f"invalid MAC address: {mac!r}")
    return stripped


def format_mac(mac: str) -> str:
    """Return MAC in NetBox form: AA:BB:CC:DD:EE:FF."""
    normalized = normalize_mac(mac).upper()
    return ":".join(normalized[i : i + 2] for i in range(0, 12, 2))


def is_valid_mac(mac: str | None) -> bool:
    if not mac:
        return False
    try:
        normalize_mac(mac)
    except ValueError:
        return False
    return True


def parse_bool(value: str | bool | None, default: bool) -> bool:
    """Parse booleans from env-style strings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def parse_int(value: str | int | None, default: int, field_name: str) -> int:
    """Parse int values with field-specific error context."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be an integer") from exc
    return parsed


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError("size must be > 0")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def safe_json(response: requests.Response | None) -> Any | None:
    """Safely parse JSON without throwing."""
    if response is None:
        return None
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def parse_request_context(
    response: requests.Response | None,
    method: str,
    url: str | None,
) -> RequestContext:
    """Extract NetBox error details for logging/exceptions.

    NetBox reports errors either as ``{"detail": "..."}`` or as a mapping
    of field name to a list of messages.
    """
    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int):
        status_code = None

    payload = safe_json(response)
    message: str | None = None
    if isinstance(payload, dict):
        if "detail" in payload:
            message = str(payload["detail"])
        elif payload:
            parts = []
            for key, value in payload.items():
                if isinstance(value, list):
                    value = "; ".join(str(item) for item in value)
                parts.append(f"{key}: {value}")
            message = ", ".join(parts)
    elif isinstance(payload, list) and payload:
        message = "; ".join(str(item) for item in payload if item)

    if message is None and response is not None:
        text = getattr(response, "text", None)
        if isinstance(text, str) and text.strip():
            message = text.strip()

    return RequestContext(
        status_code=status_code,
        message=message,
        method=method.upper(),
        url=url,
    )
