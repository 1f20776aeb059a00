"""Read access points back from NetBox, keyed by MAC address."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from exceptions import MissingDependencyError
from mapping import MappingResolver
from models import Device, Interface
from netbox_client import NetBoxClient
from utils import is_valid_mac, normalize_mac

logger = logging.getLogger(__name__)

PRIMARY_INTERFACE_NAMES = {"eth0", "mgmt", "management"}


@dataclass(frozen=True)
class DeviceMetadata:
    mac: str
    name: str
    site_id: str = ""
    site_name: str = ""
    model: str = ""
    serial: str = ""
    netbox_id: int | None = None


def _metadata(mac: str, device: Device) -> DeviceMetadata:
    return DeviceMetadata(
        mac=mac,
        name=device.name,
        site_id=str(device.site_id) if device.site_id is not None else "",
        site_name=device.site_name,
        model=device.model,
        serial=device.serial,
        netbox_id=device.id,
    )


def primary_mac(interfaces: list[Interface]) -> str:
    """MAC of eth0/mgmt/management, else of the first interface that has one."""
    fallback = ""
    for interface in interfaces:
        if not interface.mac_address:
            continue
        if interface.name.lower() in PRIMARY_INTERFACE_NAMES:
            return interface.mac_address
        fallback = fallback or interface.mac_address
    return fallback


class Syncer:
    """One-shot reverse lookup of NetBox access points."""

    def __init__(self, client: NetBoxClient, resolver: MappingResolver) -> None:
        self.client = client
        self.resolver = resolver

    def sync_from_netbox(self, site_name: str = "") -> dict[str, DeviceMetadata]:
        """Return metadata of NetBox access points keyed by normalized MAC.

        ``site_name`` limits the lookup to one site; empty means all sites.
        Raises MissingDependencyError when the site or the AP role does not
        exist in NetBox.
        """
        site_slug = ""
        if site_name:
            site_slug = self.resolver.get_site_slug(site_name)
            if self.client.get_site_by_slug(site_slug) is None:
                raise MissingDependencyError(
                    "site",
                    site_name,
                    f"Create a site with slug '{site_slug}' or add it to netbox.mappings.site_overrides",
                )

        role_slug = self.resolver.resolve_device_role("ap")
        if self.client.get_device_role_by_slug(role_slug) is None:
            raise MissingDependencyError(
                "device role", role_slug, "Create the role or set netbox.mappings.default_roles.ap"
            )

        devices = self.client.get_devices_by_site_and_role(site_slug, role_slug)
        logger.info("Retrieved %s AP devices from NetBox", len(devices))

        metadata: dict[str, DeviceMetadata] = {}
        for device in devices:
            mac = primary_mac(self.client.get_interfaces_by_device(device.id))
            if not mac:
                logger.warning("Device %s has no MAC address, skipping", device.name)
                continue
            if not is_valid_mac(mac):
                logger.warning("Invalid MAC address '%s' for device %s, skipping", mac, device.name)
                continue
            normalized = normalize_mac(mac)
            metadata[normalized] = _metadata(normalized, device)
            logger.debug("Synced device: %s (MAC: %s, Site: %s)", device.name, normalized, device.site_name)
        return metadata

    def get_device_metadata(self, mac: str) -> DeviceMetadata | None:
        """Metadata of the NetBox device owning ``mac``, or None."""
        normalized = normalize_mac(mac)
        device = self.client.get_device_by_mac(normalized)
        if device is None:
            return None
        return _metadata(normalized, device)
