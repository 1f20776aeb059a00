"""Custom exceptions for the NetBox exporter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


class NetBoxExportError(Exception):
    """Base exception for all exporter errors."""


class ConfigError(NetBoxExportError):
    """Raised when configuration values are missing or invalid."""


class InitializationError(NetBoxExportError):
    """Raised when the NetBox lookup cache cannot be built."""


class InventoryError(NetBoxExportError):
    """Raised when the local device inventory cannot be read."""


class ResponseParsingError(NetBoxExportError):
    """Raised when API responses cannot be parsed safely."""


class ValidationError(NetBoxExportError):
    """Raised when a device is missing a required dependency."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class MissingDependencyError(NetBoxExportError):
    """Raised when a referenced NetBox object does not exist."""

    def __init__(self, dependency_type: str, name: str, suggestion: str | None = None) -> None:
        message = f"{dependency_type} '{name}' not found in NetBox"
        if suggestion:
            message = f"{message}\n\n{suggestion}"
        super().__init__(message)
        self.dependency_type = dependency_type
        self.name = name
        self.suggestion = suggestion


class InterfaceTypeError(NetBoxExportError):
    """Raised when a resolved interface type is not a valid NetBox PHY type."""

    def __init__(
        self,
        invalid_type: str,
        valid_types: Sequence[str],
        suggestion: str | None = None,
        device_name: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> None:
        self.invalid_type = invalid_type
        self.valid_types = list(valid_types)
        self.suggestion = suggestion
        self.device_name = device_name
        self._labels = labels or {}
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [f"interface type '{self.invalid_type}' is not valid"]
        if self.device_name:
            lines[0] += f" for device '{self.device_name}'"
        lines.append("")
        lines.append("Common valid types:")
        for value in self.valid_types:
            label = self._labels.get(value)
            lines.append(f"  - {value} ({label})" if label else f"  - {value}")
        if self.suggestion:
            lines.append("")
            lines.append(f"Suggestion: use '{self.suggestion}' instead")
        lines.append("")
        lines.append("Configure in netbox.mappings.interfaces in the config file")
        return "\n".join(lines)

    def for_device(self, device_name: str) -> "InterfaceTypeError":
        """Return a copy of this error naming the affected device."""
        return InterfaceTypeError(
            self.invalid_type,
            self.valid_types,
            suggestion=self.suggestion,
            device_name=device_name,
            labels=self._labels,
        )


@dataclass(frozen=True)
class RequestContext:
    """Structured error context from NetBox API responses."""

    status_code: int | None = None
    message: str | None = None
    url: str | None = None
    method: str | None = None


class RequestError(NetBoxExportError):
    """Raised when a NetBox API call fails."""

    def __init__(self, message: str, context: RequestContext | None = None) -> None:
        super().__init__(message)
        self.context = context


class BulkOperationError(RequestError):
    """Raised when one batch of a bulk call fails.

    ``results`` holds whatever earlier batches already applied.
    """

    def __init__(
        self,
        message: str,
        results: list[Any],
        batch_index: int,
        context: RequestContext | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.results = results
        self.batch_index = batch_index
