"""Typed records exchanged between the inventory, the mapper and NetBox."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Mapping

from exceptions import ResponseParsingError

logger = logging.getLogger(__name__)

RADIO_BANDS = (
    ("radio0", "band_24", "2.4 GHz radio"),
    ("radio1", "band_5", "5 GHz radio"),
    ("radio2", "band_6", "6 GHz radio"),
)


# ---------------------------------------------------------------------------
#  Tolerant decoding
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DecodeWarning:
    """A field that was unknown, invalid, or required but absent."""

    record: str
    field: str
    kind: str

    def __str__(self) -> str:
        return f"{self.record}: {self.kind} field '{self.field}'"


def decode_fields(
    record: str,
    data: Any,
    known: Iterable[str],
    *,
    required: Iterable[str] = (),
    warnings: list[DecodeWarning] | None = None,
    report_unexpected: bool = True,
) -> dict[str, Any]:
    """Return the known fields of ``data`` and record anything odd.

    Unknown keys are reported as "unexpected" and required keys that are
    absent or empty as "missing". Nothing is dropped silently: every
    warning is logged and appended to ``warnings`` when given.
    """
    if not isinstance(data, Mapping):
        raise ResponseParsingError(f"{record}: expected an object, got {type(data).__name__}")

    known = set(known)
    found: list[DecodeWarning] = []
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in known:
            values[key] = value
        elif report_unexpected:
            found.append(DecodeWarning(record, str(key), "unexpected"))

    for name in required:
        if data.get(name) in (None, ""):
            found.append(DecodeWarning(record, name, "missing"))

    for item in found:
        logger.warning("Decode warning: %s", item)
    if warnings is not None:
        warnings.extend(found)
    return values


def _field_names(cls) -> set[str]:
    return {f.name for f in fields(cls) if f.init}


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _vlan_id(value: Any, warnings: list[DecodeWarning] | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        warning = DecodeWarning("wlan", "vlan_id", "invalid")
        logger.warning("Decode warning: %s (%r)", warning, value)
        if warnings is not None:
            warnings.append(warning)
        return None


def _nested_id(value: Any) -> int | None:
    """Return the id of a nested NetBox object, or the value if already an id."""
    if value is None or value == "":
        return None
    if isinstance(value, Mapping):
        value = value.get("id")
    else:
        value = getattr(value, "id", value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _choice_value(value: Any) -> str:
    """Return the raw value of a NetBox choice field ({"value", "label"})."""
    if isinstance(value, Mapping):
        return _str(value.get("value"))
    return _str(getattr(value, "value", value))


# ---------------------------------------------------------------------------
#  Inventory records (produced by vendor adapters)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InterfaceMapping:
    """Name/type pair for one logical interface id (eth0, radio1, ...)."""

    name: str = ""
    type: str = ""

    @classmethod
    def from_dict(
        cls,
        data: Any,
        record: str = "interface",
        warnings: list[DecodeWarning] | None = None,
    ) -> "InterfaceMapping":
        values = decode_fields(record, data, _field_names(cls), warnings=warnings)
        return cls(name=_str(values.get("name")).strip(), type=_str(values.get("type")).strip())


@dataclass(frozen=True)
class NetBoxDeviceExtension:
    """Per-device NetBox overrides carried on an inventory record."""

    device_role: str = ""
    interfaces: dict[str, InterfaceMapping] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: Any, warnings: list[DecodeWarning] | None = None
    ) -> "NetBoxDeviceExtension":
        values = decode_fields("netbox", data, _field_names(cls), warnings=warnings)
        raw_interfaces = values.get("interfaces") or {}
        if not isinstance(raw_interfaces, Mapping):
            raise ResponseParsingError("netbox.interfaces must be an object")
        interfaces = {
            str(iface_id): InterfaceMapping.from_dict(
                item, record=f"netbox.interfaces.{iface_id}", warnings=warnings
            )
            for iface_id, item in raw_interfaces.items()
        }
        return cls(device_role=_str(values.get("device_role")).strip(), interfaces=interfaces)


@dataclass(frozen=True)
class InventoryItem:
    """A vendor-normalized device record."""

    mac: str = ""
    serial: str = ""
    model: str = ""
    name: str = ""
    type: str = ""
    site_id: str = ""
    site_name: str = ""
    id: str = ""
    claimed: bool = False
    source_api: str = ""
    source_vendor: str = ""
    netbox: NetBoxDeviceExtension | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.mac or self.serial or "unknown-device"

    @classmethod
    def from_dict(
        cls, data: Any, warnings: list[DecodeWarning] | None = None
    ) -> "InventoryItem":
        values = decode_fields(
            "inventory",
            data,
            _field_names(cls),
            required=("mac", "type"),
            warnings=warnings,
        )
        extension = values.pop("netbox", None)
        kwargs = {key: _str(value) for key, value in values.items() if key != "claimed"}
        return cls(
            claimed=bool(values.get("claimed", False)),
            netbox=NetBoxDeviceExtension.from_dict(extension, warnings) if extension else None,
            **kwargs,
        )


@dataclass(frozen=True)
class RadioBandConfig:
    """Settings of one AP radio band."""

    disabled: bool = False
    channel: int | None = None
    power: int | None = None
    bandwidth: int | None = None
    antenna_mode: str = ""

    @classmethod
    def from_dict(
        cls, data: Any, record: str, warnings: list[DecodeWarning] | None = None
    ) -> "RadioBandConfig":
        values = decode_fields(record, data, _field_names(cls), warnings=warnings)
        return cls(
            disabled=bool(values.get("disabled", False)),
            channel=values.get("channel"),
            power=values.get("power"),
            bandwidth=values.get("bandwidth"),
            antenna_mode=_str(values.get("antenna_mode")),
        )


@dataclass(frozen=True)
class RadioConfig:
    """Radio bands present on an access point."""

    band_24: RadioBandConfig | None = None
    band_5: RadioBandConfig | None = None
    band_6: RadioBandConfig | None = None

    @classmethod
    def dual_band(cls) -> "RadioConfig":
        return cls(band_24=RadioBandConfig(), band_5=RadioBandConfig())

    @classmethod
    def from_raw(
        cls, config: Any, warnings: list[DecodeWarning] | None = None
    ) -> "RadioConfig":
        """Parse the ``radio_config`` block of a raw AP config.

        An AP without any radio block is assumed to be a dual-band AP.
        """
        if not isinstance(config, Mapping):
            return cls.dual_band()
        radio = config.get("radio_config")
        if not isinstance(radio, Mapping) or not radio:
            return cls.dual_band()

        known = {attr for _, attr, _ in RADIO_BANDS}
        # radio_config carries many per-band knobs besides the band blocks
        values = decode_fields("radio_config", radio, known, warnings=warnings, report_unexpected=False)
        bands = {
            attr: RadioBandConfig.from_dict(values[attr], f"radio_config.{attr}", warnings)
            for attr in known
            if isinstance(values.get(attr), Mapping)
        }
        if not bands:
            return cls.dual_band()
        return cls(**bands)

    def present_bands(self) -> list[tuple[str, RadioBandConfig, str]]:
        """Return (radio id, band config, description) for each present band."""
        present = []
        for radio_id, attr, description in RADIO_BANDS:
            band = getattr(self, attr)
            if band is not None:
                present.append((radio_id, band, description))
        return present


@dataclass(frozen=True)
class WLAN:
    """An SSID defined on the vendor platform."""

    ssid: str = ""
    id: str = ""
    org_id: str = ""
    site_id: str = ""
    enabled: bool = True
    hidden: bool = False
    band: str = ""
    vlan_id: int | None = None
    auth_type: str = ""
    encryption_mode: str = ""

    @property
    def is_org_wide(self) -> bool:
        return not self.site_id

    @classmethod
    def from_dict(cls, data: Any, warnings: list[DecodeWarning] | None = None) -> "WLAN":
        values = decode_fields("wlan", data, _field_names(cls), required=("ssid",), warnings=warnings)
        return cls(
            ssid=_str(values.get("ssid")),
            id=_str(values.get("id")),
            org_id=_str(values.get("org_id")),
            site_id=_str(values.get("site_id")),
            enabled=bool(values.get("enabled", True)),
            hidden=bool(values.get("hidden", False)),
            band=_str(values.get("band")),
            vlan_id=_vlan_id(values.get("vlan_id"), warnings),
            auth_type=_str(values.get("auth_type")),
            encryption_mode=_str(values.get("encryption_mode")),
        )


@dataclass(frozen=True)
class DeviceStatus:
    """Live status reported for a device."""

    ip: str = ""
    status: str = ""

    @classmethod
    def from_dict(cls, data: Any, warnings: list[DecodeWarning] | None = None) -> "DeviceStatus":
        values = decode_fields("device_status", data, _field_names(cls), warnings=warnings)
        return cls(ip=_str(values.get("ip")), status=_str(values.get("status")))


@dataclass(frozen=True)
class SiteRef:
    """A vendor-side site."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Any, warnings: list[DecodeWarning] | None = None) -> "SiteRef":
        values = decode_fields("site", data, ("id", "name"), required=("id", "name"), warnings=warnings)
        return cls(id=_str(values.get("id")), name=_str(values.get("name")))


# ---------------------------------------------------------------------------
#  NetBox records
# ---------------------------------------------------------------------------

def _netbox_values(record: str, data: Any, known: Iterable[str]) -> dict[str, Any]:
    # NetBox responses carry many more fields than we read (url, display, ...)
    return decode_fields(record, data, known, required=("id",), report_unexpected=False)


@dataclass(frozen=True)
class Site:
    id: int
    name: str
    slug: str

    @classmethod
    def from_netbox(cls, data: Any) -> "Site":
        values = _netbox_values("site", data, ("id", "name", "slug"))
        return cls(id=_nested_id(values.get("id")) or 0, name=_str(values.get("name")), slug=_str(values.get("slug")))


@dataclass(frozen=True)
class DeviceType:
    id: int
    model: str
    slug: str

    @classmethod
    def from_netbox(cls, data: Any) -> "DeviceType":
        values = _netbox_values("device_type", data, ("id", "model", "slug"))
        return cls(id=_nested_id(values.get("id")) or 0, model=_str(values.get("model")), slug=_str(values.get("slug")))


@dataclass(frozen=True)
class DeviceRole:
    id: int
    name: str
    slug: str

    @classmethod
    def from_netbox(cls, data: Any) -> "DeviceRole":
        values = _netbox_values("device_role", data, ("id", "name", "slug"))
        return cls(id=_nested_id(values.get("id")) or 0, name=_str(values.get("name")), slug=_str(values.get("slug")))


@dataclass(frozen=True)
class Device:
    id: int
    name: str = ""
    serial: str = ""
    status: str = ""
    site_id: int | None = None
    site_name: str = ""
    device_type_id: int | None = None
    model: str = ""
    role_id: int | None = None

    @classmethod
    def from_netbox(cls, data: Any) -> "Device":
        values = _netbox_values(
            "device", data, ("id", "name", "serial", "status", "site", "device_type", "role")
        )
        site = values.get("site")
        device_type = values.get("device_type")
        return cls(
            id=_nested_id(values.get("id")) or 0,
            name=_str(values.get("name")),
            serial=_str(values.get("serial")),
            status=_choice_value(values.get("status")),
            site_id=_nested_id(site),
            site_name=_str(site.get("name")) if isinstance(site, Mapping) else "",
            device_type_id=_nested_id(device_type),
            model=_str(device_type.get("model")) if isinstance(device_type, Mapping) else "",
            role_id=_nested_id(values.get("role")),
        )


@dataclass(frozen=True)
class Interface:
    id: int
    name: str = ""
    type: str = ""
    device_id: int | None = None
    mac_address: str = ""
    enabled: bool = True

    @classmethod
    def from_netbox(cls, data: Any) -> "Interface":
        values = _netbox_values(
            "interface", data, ("id", "name", "type", "device", "mac_address", "enabled")
        )
        return cls(
            id=_nested_id(values.get("id")) or 0,
            name=_str(values.get("name")),
            type=_choice_value(values.get("type")),
            device_id=_nested_id(values.get("device")),
            mac_address=_str(values.get("mac_address")),
            enabled=bool(values.get("enabled", True)),
        )


@dataclass(frozen=True)
class WirelessLAN:
    id: int
    ssid: str
    status: str = ""
    auth_type: str = ""

    @classmethod
    def from_netbox(cls, data: Any) -> "WirelessLAN":
        values = _netbox_values("wireless_lan", data, ("id", "ssid", "status", "auth_type"))
        return cls(
            id=_nested_id(values.get("id")) or 0,
            ssid=_str(values.get("ssid")),
            status=_choice_value(values.get("status")),
            auth_type=_choice_value(values.get("auth_type")),
        )


@dataclass(frozen=True)
class IPAddress:
    id: int
    address: str
    status: str = ""

    @property
    def family(self) -> int:
        return 6 if ":" in self.address else 4

    @classmethod
    def from_netbox(cls, data: Any) -> "IPAddress":
        values = _netbox_values("ip_address", data, ("id", "address", "status"))
        return cls(
            id=_nested_id(values.get("id")) or 0,
            address=_str(values.get("address")),
            status=_choice_value(values.get("status")),
        )


# ---------------------------------------------------------------------------
#  Write payloads
# ---------------------------------------------------------------------------

def _drop_empty(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value not in (None, "", [], {})}


@dataclass
class DeviceRequest:
    name: str
    device_type: int
    role: int
    site: int
    status: str = "active"
    serial: str = ""
    comments: str = ""
    tags: list[dict[str, str]] = field(default_factory=list)
    custom_fields: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return _drop_empty(
            {
                "name": self.name,
                "device_type": self.device_type,
                "role": self.role,
                "site": self.site,
                "status": self.status,
                "serial": self.serial,
                "comments": self.comments,
                "tags": list(self.tags),
                "custom_fields": dict(self.custom_fields),
            }
        )


@dataclass
class InterfaceRequest:
    device: int
    name: str
    type: str
    enabled: bool = True
    mac_address: str = ""
    description: str = ""
    mgmt_only: bool = False
    rf_role: str = ""
    parent: int | None = None
    wireless_lans: list[int] = field(default_factory=list)
    tags: list[dict[str, str]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload = _drop_empty(
            {
                "device": self.device,
                "name": self.name,
                "type": self.type,
                "mac_address": self.mac_address,
                "description": self.description,
                "rf_role": self.rf_role,
                "parent": self.parent,
                "wireless_lans": list(self.wireless_lans),
                "tags": list(self.tags),
            }
        )
        payload["enabled"] = self.enabled
        if self.mgmt_only:
            payload["mgmt_only"] = True
        return payload


@dataclass
class IPAddressRequest:
    address: str
    assigned_object_id: int
    assigned_object_type: str = "dcim.interface"
    status: str = "active"
    description: str = ""
    tags: list[dict[str, str]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return _drop_empty(
            {
                "address": self.address,
                "status": self.status,
                "assigned_object_type": self.assigned_object_type,
                "assigned_object_id": self.assigned_object_id,
                "description": self.description,
                "tags": list(self.tags),
            }
        )


@dataclass
class WirelessLANRequest:
    ssid: str
    status: str = "active"
    auth_type: str = ""
    auth_cipher: str = ""
    description: str = ""
    tags: list[dict[str, str]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return _drop_empty(
            {
                "ssid": self.ssid,
                "status": self.status,
                "auth_type": self.auth_type,
                "auth_cipher": self.auth_cipher,
                "description": self.description,
                "tags": list(self.tags),
            }
        )


# ---------------------------------------------------------------------------
#  Validation and export results
# ---------------------------------------------------------------------------

@dataclass
class DeviceValidationResult:
    valid: bool = False
    site_id: int | None = None
    device_type_id: int | None = None
    device_role_id: int | None = None
    site_slug: str = ""
    device_type_slug: str = ""
    device_role_slug: str = ""
    errors: list[str] = field(default_factory=list)
    failed_dependencies: list[str] = field(default_factory=list)

    def add_error(self, dependency: str, message: str) -> None:
        self.errors.append(message)
        self.failed_dependencies.append(dependency)


@dataclass(frozen=True)
class ExportOptions:
    site_name: str = ""
    dry_run: bool = False
    force: bool = False
    include_radios: bool = True


@dataclass(frozen=True)
class DeviceOutcome:
    """A device that was (or would be) created or updated."""

    name: str
    mac: str
    operation: str
    netbox_id: int | None = None


@dataclass(frozen=True)
class SkippedDevice:
    name: str
    mac: str
    reason: str


@dataclass(frozen=True)
class ExportError:
    device_name: str
    mac: str
    operation: str
    message: str
    error: Exception | None = None

    def __str__(self) -> str:
        if self.error is not None:
            return f"{self.device_name} [{self.operation}] {self.message}: {self.error}"
        return f"{self.device_name} [{self.operation}] {self.message}"


@dataclass(frozen=True)
class ExportStats:
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    duration: float = 0.0


@dataclass
class ExportResult:
    created: list[DeviceOutcome] = field(default_factory=list)
    updated: list[DeviceOutcome] = field(default_factory=list)
    skipped: list[SkippedDevice] = field(default_factory=list)
    errors: list[ExportError] = field(default_factory=list)
    stats: ExportStats = field(default_factory=ExportStats)
    cancelled: bool = False


@dataclass
class ValidationSummary:
    """Validation-only run, grouped by missing dependency."""

    total: int = 0
    valid: int = 0
    invalid: int = 0
    missing_sites: dict[str, list[str]] = field(default_factory=dict)
    missing_device_types: dict[str, list[str]] = field(default_factory=dict)
    missing_roles: dict[str, list[str]] = field(default_factory=dict)
    results: dict[str, DeviceValidationResult] = field(default_factory=dict)
