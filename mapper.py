"""Build NetBox write payloads from validated inventory records."""

from __future__ import annotations

import ipaddress
from types import MappingProxyType
from typing import Mapping, Sequence

from exceptions import InterfaceTypeError, ValidationError
from interface_types import DEFAULT_CATALOG, InterfaceTypeCatalog
from mapping import MappingResolver
from models import (
    DeviceRequest,
    DeviceValidationResult,
    Interface,
    InterfaceMapping,
    InterfaceRequest,
    InventoryItem,
    IPAddressRequest,
    RadioConfig,
    WirelessLANRequest,
    WLAN,
)
from utils import format_mac, normalize_mac

PROJECT_NAME = "wifi2netbox"

SETTINGS_SOURCE_FIELD = "settings_source"
SOURCE_API_FIELD = f"{PROJECT_NAME}_source_api"
SOURCE_VENDOR_FIELD = f"{PROJECT_NAME}_source_vendor"
VENDOR_ID_FIELD = f"{PROJECT_NAME}_vendor_id"

CUSTOM_FIELD_LABELS: Mapping[str, str] = MappingProxyType({
    SETTINGS_SOURCE_FIELD: "Settings Source",
    SOURCE_API_FIELD: "Source API",
    SOURCE_VENDOR_FIELD: "Source Vendor",
    VENDOR_ID_FIELD: "Vendor ID",
})

# Primary interface used when no mapping names one
PRIMARY_INTERFACES: Mapping[str, InterfaceMapping] = MappingProxyType({
    "ap": InterfaceMapping(name="eth0", type="1000base-t"),
    "switch": InterfaceMapping(name="mgmt0", type="1000base-t"),
    "gateway": InterfaceMapping(name="ge-0/0/0", type="1000base-t"),
})
UNKNOWN_PRIMARY_INTERFACE = InterfaceMapping(name="eth0", type="other")

BAND_RADIOS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "2.4": ("radio0",),
    "5": ("radio1",),
    "6": ("radio2",),
})
DEFAULT_BAND_RADIOS = ("radio0", "radio1")

AUTH_TYPES: Mapping[str, str] = MappingProxyType({
    "open": "open",
    "psk": "wpa-personal",
    "wpa2-personal": "wpa-personal",
    "wpa3-personal": "wpa-personal",
    "wpa2/wpa3-personal": "wpa-personal",
    "wpa2-enterprise": "wpa-enterprise",
    "wpa3-enterprise": "wpa-enterprise",
    "802.1x": "wpa-enterprise",
})
AES_ENCRYPTION_MODES = {"wpa2", "wpa3", "wpa2/wpa3"}


class Mapper:
    """Turns inventory records into NetBox create/update payloads."""

    def __init__(
        self,
        resolver: MappingResolver,
        catalog: InterfaceTypeCatalog = DEFAULT_CATALOG,
    ) -> None:
        self.resolver = resolver
        self.catalog = catalog

    @property
    def tags(self) -> list[dict[str, str]]:
        tag = self.resolver.mappings.tag
        return [{"name": tag}] if tag else []

    # ------------------------------------------------------------------
    #  devices
    # ------------------------------------------------------------------

    def to_device_request(self, item: InventoryItem, validation: DeviceValidationResult) -> DeviceRequest:
        if not validation.valid:
            raise ValidationError("device", f"cannot map invalid device: {validation.errors}")

        return DeviceRequest(
            name=item.name or self.generate_device_name(item),
            device_type=validation.device_type_id,
            role=validation.device_role_id,
            site=validation.site_id,
            serial=item.serial,
            status="active",
            tags=self.tags,
            custom_fields=self.build_custom_fields(item),
        )

    def map_device_for_update(self, item: InventoryItem, validation: DeviceValidationResult) -> DeviceRequest:
        request = self.to_device_request(item, validation)
        request.comments = f"Updated from {PROJECT_NAME} ({item.source_vendor})"
        return request

    @staticmethod
    def generate_device_name(item: InventoryItem) -> str:
        prefix = item.type.upper()
        try:
            normalized = normalize_mac(item.mac)
        except ValueError:
            normalized = ""
        if normalized:
            return f"{prefix}-{normalized[6:].upper()}"
        if item.serial:
            return f"{prefix}-{item.serial}"
        return f"{prefix}-UNKNOWN"

    @staticmethod
    def build_custom_fields(item: InventoryItem) -> dict[str, str]:
        fields = {SETTINGS_SOURCE_FIELD: "internal"}
        if item.source_api:
            fields[SOURCE_API_FIELD] = item.source_api
        if item.source_vendor:
            fields[SOURCE_VENDOR_FIELD] = item.source_vendor
        if item.id:
            fields[VENDOR_ID_FIELD] = item.id
        return fields

    # ------------------------------------------------------------------
    #  primary interface and IP
    # ------------------------------------------------------------------

    def to_interface_request(self, item: InventoryItem, device_id: int) -> InterfaceRequest:
        """Payload for the management interface (eth0) of a device.

        Raises InterfaceTypeError naming the device when the resolved type
        is not a NetBox interface type.
        """
        resolved = self.resolver.resolve_interface("eth0", item.netbox, include_defaults=False)
        fallback = PRIMARY_INTERFACES.get(item.type, UNKNOWN_PRIMARY_INTERFACE)
        name = resolved.name or fallback.name
        iface_type = resolved.type or fallback.type
        self._validate_type(iface_type, item.display_name)

        return InterfaceRequest(
            device=device_id,
            name=name,
            type=iface_type,
            mac_address=format_mac(item.mac),
            enabled=True,
            tags=self.tags,
        )

    def to_ip_address_request(self, ip: str, interface_id: int) -> IPAddressRequest:
        address = ip.strip()
        if "/" not in address:
            prefix_length = 128 if ipaddress.ip_address(address).version == 6 else 32
            address = f"{address}/{prefix_length}"
        return IPAddressRequest(
            address=address,
            assigned_object_id=interface_id,
            status="active",
            tags=self.tags,
        )

    def _validate_type(self, iface_type: str, device_name: str) -> None:
        try:
            self.catalog.validate(iface_type)
        except InterfaceTypeError as exc:
            raise exc.for_device(device_name) from None

    # ------------------------------------------------------------------
    #  radios and WLANs
    # ------------------------------------------------------------------

    def to_radio_interface_requests(
        self,
        item: InventoryItem,
        device_id: int,
        radio_config: RadioConfig,
    ) -> dict[str, InterfaceRequest]:
        """One physical radio interface per present band, keyed by radio id."""
        requests = {}
        for radio_id, band, description in radio_config.present_bands():
            resolved = self.resolver.resolve_interface(radio_id, item.netbox)
            self._validate_type(resolved.type, item.display_name)
            requests[radio_id] = InterfaceRequest(
                device=device_id,
                name=resolved.name,
                type=resolved.type,
                enabled=not band.disabled,
                rf_role="ap",
                description=description,
                tags=self.tags,
            )
        return requests

    def to_virtual_wlan_interface_requests(
        self,
        device_id: int,
        radios: Mapping[str, Interface],
        wlans: Sequence[WLAN],
        wireless_lan_ids: Mapping[str, int],
    ) -> list[InterfaceRequest]:
        """Virtual interfaces for every (WLAN, radio present on the device) pair.

        ``radios`` maps a radio id (radio0..radio2) to the physical
        interface created for it. Interfaces are named
        "<radio interface>.<WLAN index>", e.g. wifi0.0.
        """
        requests = []
        for index, wlan in enumerate(wlans):
            for radio_id in self.radios_for_band(wlan.band):
                parent = radios.get(radio_id)
                if parent is None:
                    continue
                wlan_id = wireless_lan_ids.get(wlan.ssid)
                requests.append(
                    InterfaceRequest(
                        device=device_id,
                        name=f"{parent.name}.{index}",
                        type="virtual",
                        enabled=wlan.enabled,
                        parent=parent.id,
                        description=f"WLAN: {wlan.ssid}",
                        wireless_lans=[wlan_id] if wlan_id else [],
                        tags=self.tags,
                    )
                )
        return requests

    @staticmethod
    def radios_for_band(band: str) -> tuple[str, ...]:
        # dual, all, empty and unknown bands go to 2.4 + 5 GHz
        return BAND_RADIOS.get((band or "").strip().lower(), DEFAULT_BAND_RADIOS)

    def to_wireless_lan_request(self, wlan: WLAN) -> WirelessLANRequest:
        auth = wlan.auth_type.strip().lower()
        auth_type = AUTH_TYPES.get(auth, "wpa-personal" if auth else "")
        cipher = "aes" if wlan.encryption_mode.strip().lower() in AES_ENCRYPTION_MODES else "auto"
        return WirelessLANRequest(
            ssid=wlan.ssid,
            status="active",
            auth_type=auth_type,
            auth_cipher=cipher,
            tags=self.tags,
        )
