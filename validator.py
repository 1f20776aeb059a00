"""Dependency checks against a snapshot of NetBox state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from exceptions import InitializationError, RequestError
from mapping import MappingResolver
from models import DeviceValidationResult, InventoryItem
from netbox_client import NetBoxClient
from utils import normalize_mac

logger = logging.getLogger(__name__)


@dataclass
class LookupCache:
    """NetBox ids keyed the way inventory records refer to them."""

    sites_by_name: dict[str, int] = field(default_factory=dict)
    sites_by_slug: dict[str, int] = field(default_factory=dict)
    device_types_by_slug: dict[str, int] = field(default_factory=dict)
    device_roles_by_slug: dict[str, int] = field(default_factory=dict)
    devices_by_mac: dict[str, int] = field(default_factory=dict)
    wireless_lans_by_ssid: dict[str, int] = field(default_factory=dict)


class Validator:
    """Loads NetBox lookups once per run and validates devices against them."""

    def __init__(self, client: NetBoxClient, resolver: MappingResolver) -> None:
        self.client = client
        self.resolver = resolver
        self.cache = LookupCache()
        self.initialized = False
        self.wireless_lans_available = False
        self._absent_macs: set[str] = set()

    def initialize(self) -> None:
        """Fetch sites, device types, roles and wireless LANs.

        Raises InitializationError when sites, device types or roles cannot
        be loaded. Wireless LANs are optional: without them virtual WLAN
        interfaces are created without an SSID link.
        """
        if self.initialized:
            return

        try:
            sites = self.client.get_sites()
        except RequestError as exc:
            raise InitializationError(f"failed to load sites from NetBox: {exc}") from exc
        for site in sites:
            self.cache.sites_by_name[site.name.lower()] = site.id
            self.cache.sites_by_slug[site.slug] = site.id

        try:
            device_types = self.client.get_device_types()
        except RequestError as exc:
            raise InitializationError(f"failed to load device types from NetBox: {exc}") from exc
        for device_type in device_types:
            self.cache.device_types_by_slug[device_type.slug] = device_type.id

        try:
            roles = self.client.get_device_roles()
        except RequestError as exc:
            raise InitializationError(f"failed to load device roles from NetBox: {exc}") from exc
        for role in roles:
            self.cache.device_roles_by_slug[role.slug] = role.id

        try:
            wireless_lans = self.client.get_wireless_lans()
        except RequestError as exc:
            logger.warning("Could not load wireless LANs from NetBox, SSID linking disabled: %s", exc)
        else:
            self.wireless_lans_available = True
            for wlan in wireless_lans:
                self.cache.wireless_lans_by_ssid[wlan.ssid] = wlan.id

        self.initialized = True
        logger.info(
            "Loaded NetBox lookups: %s sites, %s device types, %s roles, %s wireless LANs",
            len(self.cache.sites_by_slug),
            len(self.cache.device_types_by_slug),
            len(self.cache.device_roles_by_slug),
            len(self.cache.wireless_lans_by_ssid),
        )

    def validate_device(self, item: InventoryItem) -> DeviceValidationResult:
        """Check that site, device type and role of ``item`` exist in NetBox.

        Every failing dependency is reported, not only the first one.
        """
        if not self.initialized:
            raise InitializationError("validator used before initialize()")

        result = DeviceValidationResult()

        if not item.site_name:
            result.add_error("site", "device has no site assignment")
        else:
            slug = self.resolver.get_site_slug(item.site_name)
            result.site_slug = slug
            site_id = self.cache.sites_by_name.get(item.site_name.lower())
            if site_id is None:
                site_id = self.cache.sites_by_slug.get(slug)
            if site_id is None:
                result.add_error(
                    "site", f"site '{item.site_name}' not found in NetBox (tried name and slug '{slug}')"
                )
            result.site_id = site_id

        if not item.model:
            result.add_error("device_type", "device has no model")
        else:
            slug = self.resolver.get_device_type_slug(item.model)
            result.device_type_slug = slug
            result.device_type_id = self.cache.device_types_by_slug.get(slug)
            if result.device_type_id is None:
                result.add_error(
                    "device_type", f"device type '{item.model}' (slug '{slug}') not found in NetBox"
                )

        if not item.type:
            result.add_error("device_role", "device has no type")
        else:
            role = self.resolver.resolve_device_role(item.type, item.model, item.netbox)
            result.device_role_slug = role
            result.device_role_id = self.cache.device_roles_by_slug.get(role)
            if result.device_role_id is None:
                result.add_error(
                    "device_role",
                    f"device role '{role}' (for device type '{item.type}', model '{item.model}') "
                    "not found in NetBox",
                )

        result.valid = (
            not result.errors
            and result.site_id is not None
            and result.device_type_id is not None
            and result.device_role_id is not None
        )
        return result

    def check_device_exists(self, mac: str) -> int | None:
        """Return the NetBox id of the device owning ``mac``, if any.

        Answers are remembered for the rest of the run.
        """
        key = normalize_mac(mac)
        if key in self.cache.devices_by_mac:
            return self.cache.devices_by_mac[key]
        if key in self._absent_macs:
            return None

        device = self.client.get_device_by_mac(key)
        if device is None:
            self._absent_macs.add(key)
            return None
        self.cache.devices_by_mac[key] = device.id
        return device.id

    def remember_device(self, mac: str, device_id: int) -> None:
        key = normalize_mac(mac)
        self._absent_macs.discard(key)
        self.cache.devices_by_mac[key] = device_id

    def get_wireless_lan_id(self, ssid: str) -> int | None:
        return self.cache.wireless_lans_by_ssid.get(ssid)

    def remember_wireless_lan(self, ssid: str, wlan_id: int) -> None:
        self.cache.wireless_lans_by_ssid[ssid] = wlan_id

    def get_cache_stats(self) -> dict[str, int]:
        return {
            "sites": len(self.cache.sites_by_slug),
            "device_types": len(self.cache.device_types_by_slug),
            "device_roles": len(self.cache.device_roles_by_slug),
            "devices": len(self.cache.devices_by_mac),
            "wireless_lans": len(self.cache.wireless_lans_by_ssid),
        }
