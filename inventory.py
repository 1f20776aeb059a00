"""Device inventory consumed by the exporter.

Vendor adapters write a JSON cache of sites, devices, device status, AP
configs and WLANs. The exporter only talks to the ``DeviceCache``
interface, so any other source can be plugged in.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Mapping

from exceptions import InventoryError
from models import DecodeWarning, DeviceStatus, InventoryItem, SiteRef, WLAN
from utils import normalize_mac

logger = logging.getLogger(__name__)


class DeviceCache(ABC):
    """Read-only view of the vendor inventory."""

    @abstractmethod
    def get_all_devices(self) -> list[InventoryItem]:
        ...

    @abstractmethod
    def get_devices_by_site(self, site_id: str, device_type: str = "") -> list[InventoryItem]:
        ...

    @abstractmethod
    def get_site_by_name(self, name: str) -> SiteRef | None:
        ...

    @abstractmethod
    def get_site_by_id(self, site_id: str) -> SiteRef | None:
        ...

    @abstractmethod
    def get_device_status(self, mac: str) -> DeviceStatus | None:
        ...

    @abstractmethod
    def get_ap_config_by_mac(self, mac: str) -> Mapping[str, Any] | None:
        ...

    @abstractmethod
    def get_wlans_by_site(self, site_id: str) -> list[WLAN]:
        """WLANs configured on ``site_id`` plus org-wide WLANs."""


def _mac_key(mac: str) -> str | None:
    try:
        return normalize_mac(mac)
    except ValueError:
        return None


def _section(data: Mapping[str, Any], key: str, kind: type) -> Any:
    value = data.get(key)
    if value is None:
        return kind()
    if not isinstance(value, kind):
        expected = "an array" if kind is list else "an object"
        raise InventoryError(f"Inventory cache '{key}' must be {expected}, got {type(value).__name__}")
    return value


class JSONInventoryCache(DeviceCache):
    """DeviceCache backed by the JSON file vendor adapters produce."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = path
        self.decode_warnings: list[DecodeWarning] = []
        self._sites: list[SiteRef] = []
        self._devices: list[InventoryItem] = []
        self._status: dict[str, DeviceStatus] = {}
        self._ap_configs: dict[str, Mapping[str, Any]] = {}
        self._wlans: list[WLAN] = []
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            raise InventoryError(f"Inventory cache not found at {self.path}")
        try:
            with open(self.path, "r") as file:
                data = json.load(file)
        except json.JSONDecodeError as exc:
            raise InventoryError(f"Inventory cache {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise InventoryError("Inventory cache must contain a top-level object")

        unexpected = sorted(set(data) - {"sites", "inventory", "device_status", "ap_configs", "wlans"})
        for key in unexpected:
            warning = DecodeWarning("cache", key, "unexpected")
            logger.warning("Decode warning: %s", warning)
            self.decode_warnings.append(warning)

        warnings = self.decode_warnings
        self._sites = [SiteRef.from_dict(item, warnings) for item in _section(data, "sites", list)]
        self._devices = [InventoryItem.from_dict(item, warnings) for item in _section(data, "inventory", list)]
        self._wlans = [WLAN.from_dict(item, warnings) for item in _section(data, "wlans", list)]

        for mac, status in _section(data, "device_status", dict).items():
            key = _mac_key(mac)
            if key is None:
                logger.warning("Skipping device status with invalid MAC %r", mac)
                continue
            self._status[key] = DeviceStatus.from_dict(status, warnings)

        for mac, config in _section(data, "ap_configs", dict).items():
            key = _mac_key(mac)
            if key is None or not isinstance(config, Mapping):
                logger.warning("Skipping AP config for %r", mac)
                continue
            self._ap_configs[key] = config

        logger.debug(
            "Loaded inventory cache %s: %s sites, %s devices, %s WLANs",
            self.path,
            len(self._sites),
            len(self._devices),
            len(self._wlans),
        )

    def get_all_devices(self) -> list[InventoryItem]:
        return list(self._devices)

    def get_devices_by_site(self, site_id: str, device_type: str = "") -> list[InventoryItem]:
        return [
            item
            for item in self._devices
            if item.site_id == site_id and (not device_type or item.type == device_type)
        ]

    def get_site_by_name(self, name: str) -> SiteRef | None:
        return next((site for site in self._sites if site.name == name), None)

    def get_site_by_id(self, site_id: str) -> SiteRef | None:
        return next((site for site in self._sites if site.id == site_id), None)

    def get_device_status(self, mac: str) -> DeviceStatus | None:
        key = _mac_key(mac)
        return self._status.get(key) if key else None

    def get_ap_config_by_mac(self, mac: str) -> Mapping[str, Any] | None:
        key = _mac_key(mac)
        return self._ap_configs.get(key) if key else None

    def get_wlans_by_site(self, site_id: str) -> list[WLAN]:
        return [wlan for wlan in self._wlans if wlan.site_id == site_id or wlan.is_org_wide]
