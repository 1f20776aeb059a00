"""Export access points from the inventory into NetBox, one device at a time."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Sequence

from config import NetBoxConfig
from exceptions import BulkOperationError, InventoryError, NetBoxExportError
from inventory import DeviceCache
from mapper import CUSTOM_FIELD_LABELS, Mapper
from mapping import MappingResolver
from models import (
    DeviceOutcome,
    DeviceValidationResult,
    ExportError,
    ExportOptions,
    ExportResult,
    ExportStats,
    Interface,
    InventoryItem,
    RadioConfig,
    SkippedDevice,
    ValidationSummary,
    WLAN,
)
from netbox_client import NetBoxClient
from validator import Validator

logger = logging.getLogger(__name__)

EXPORTED_DEVICE_TYPE = "ap"


class StepFailed(Exception):
    """A sub-step of processing one device failed."""

    def __init__(self, operation: str, message: str, cause: Exception) -> None:
        super().__init__(f"{operation}: {message}: {cause}")
        self.operation = operation
        self.message = message
        self.cause = cause


@contextmanager
def step(operation: str, message: str) -> Iterator[None]:
    """Tag any failure inside the block with ``operation``."""
    try:
        yield
    except (NetBoxExportError, ValueError) as exc:
        raise StepFailed(operation, message, exc) from exc


class Exporter:
    """Runs one export pass and reports what happened to every device.

    Devices are processed sequentially. A failing device is recorded and
    the run moves on to the next one; only a failure to load the NetBox
    lookups aborts the run.
    """

    def __init__(
        self,
        client: NetBoxClient,
        inventory: DeviceCache,
        mapper: Mapper,
        validator: Validator | None = None,
    ) -> None:
        self.client = client
        self.inventory = inventory
        self.mapper = mapper
        self.validator = validator or Validator(client, mapper.resolver)

    @classmethod
    def from_config(
        cls,
        config: NetBoxConfig,
        inventory: DeviceCache,
        client: NetBoxClient | None = None,
    ) -> "Exporter":
        resolver = MappingResolver(config.mappings)
        return cls(client or NetBoxClient(config), inventory, Mapper(resolver))

    # ------------------------------------------------------------------
    #  run
    # ------------------------------------------------------------------

    def export(self, options: ExportOptions, stop_event: threading.Event | None = None) -> ExportResult:
        """Export every candidate access point.

        Raises InitializationError if NetBox lookups cannot be loaded and
        InventoryError if ``options.site_name`` is unknown.
        """
        started = time.monotonic()
        result = ExportResult()

        self.validator.initialize()
        logger.debug(f"NetBox lookup cache: {self.validator.get_cache_stats()}")
        devices = self.candidate_devices(options)
        logger.info(f"Exporting {len(devices)} access points (dry_run={options.dry_run})")

        if devices and not options.dry_run:
            self.ensure_prerequisites()

        for position, item in enumerate(devices):
            if stop_event is not None and stop_event.is_set():
                remaining = devices[position:]
                logger.warning(f"Export cancelled, {len(remaining)} devices not processed")
                result.cancelled = True
                result.skipped.extend(
                    SkippedDevice(name=rest.display_name, mac=rest.mac, reason="export cancelled")
                    for rest in remaining
                )
                break
            try:
                self.process_device(item, options, result)
            except Exception as exc:
                logger.exception(f"Unexpected error exporting {item.display_name}: {exc}")
                result.errors.append(
                    ExportError(item.display_name, item.mac, "unexpected", "unexpected error", exc)
                )

        result.stats = ExportStats(
            total=len(devices),
            created=len(result.created),
            updated=len(result.updated),
            skipped=len(result.skipped),
            errors=len(result.errors),
            duration=time.monotonic() - started,
        )
        logger.info(
            f"Export finished in {result.stats.duration:.1f}s: {result.stats.created} created, "
            f"{result.stats.updated} updated, {result.stats.skipped} skipped, {result.stats.errors} errors"
        )
        return result

    def validate_only(self, options: ExportOptions) -> ValidationSummary:
        """Validate every candidate device without writing anything."""
        self.validator.initialize()
        devices = self.candidate_devices(options)
        summary = ValidationSummary(total=len(devices))

        for item in devices:
            validation = self.validator.validate_device(item)
            summary.results[item.mac or item.display_name] = validation
            if validation.valid:
                summary.valid += 1
                continue
            summary.invalid += 1
            name = item.display_name
            if "site" in validation.failed_dependencies:
                summary.missing_sites.setdefault(item.site_name or "(none)", []).append(name)
            if "device_type" in validation.failed_dependencies:
                summary.missing_device_types.setdefault(item.model or "(none)", []).append(name)
            if "device_role" in validation.failed_dependencies:
                role = validation.device_role_slug or "(none)"
                summary.missing_roles.setdefault(role, []).append(name)
        return summary

    def candidate_devices(self, options: ExportOptions) -> list[InventoryItem]:
        """Access points to export, with site names filled in."""
        if options.site_name:
            site = self.inventory.get_site_by_name(options.site_name)
            if site is None:
                raise InventoryError(f"site '{options.site_name}' not found in inventory")
            devices = self.inventory.get_devices_by_site(site.id, EXPORTED_DEVICE_TYPE)
        else:
            devices = self.inventory.get_all_devices()

        candidates = []
        for item in devices:
            if item.type != EXPORTED_DEVICE_TYPE:
                continue
            if not item.site_name and item.site_id:
                site = self.inventory.get_site_by_id(item.site_id)
                if site is not None:
                    item = dataclasses.replace(item, site_name=site.name)
            candidates.append(item)
        return candidates

    def ensure_prerequisites(self) -> None:
        """Create the tag and provenance custom fields devices are written with."""
        tag = self.mapper.resolver.mappings.tag
        try:
            if tag:
                self.client.ensure_tag(tag)
            for name, label in CUSTOM_FIELD_LABELS.items():
                self.client.ensure_custom_field(name, label)
        except NetBoxExportError as exc:
            logger.warning(f"Could not ensure NetBox tag/custom fields: {exc}")

    # ------------------------------------------------------------------
    #  one device
    # ------------------------------------------------------------------

    def process_device(self, item: InventoryItem, options: ExportOptions, result: ExportResult) -> None:
        name = item.display_name

        validation = self.validator.validate_device(item)
        if not validation.valid:
            reason = f"validation failed: {'; '.join(validation.errors)}"
            logger.warning(f"Skipping {name}: {reason}")
            result.skipped.append(SkippedDevice(name=name, mac=item.mac, reason=reason))
            return

        try:
            with step("check_exists", "failed to check whether the device exists"):
                existing_id = self.validator.check_device_exists(item.mac)

            if options.dry_run:
                device_name = item.name or self.mapper.generate_device_name(item)
                if existing_id is not None:
                    logger.info(f"[dry-run] would update {device_name} (NetBox id {existing_id})")
                    result.updated.append(DeviceOutcome(device_name, item.mac, "would_update", existing_id))
                else:
                    logger.info(f"[dry-run] would create {device_name}")
                    result.created.append(DeviceOutcome(device_name, item.mac, "would_create"))
                return

            if existing_id is not None:
                result.updated.append(self._update_device(item, existing_id, validation, options))
            else:
                result.created.append(self._create_device(item, validation, options))
        except StepFailed as failure:
            logger.error(f"Failed to export {name} [{failure.operation}]: {failure.cause}")
            result.errors.append(
                ExportError(name, item.mac, failure.operation, failure.message, failure.cause)
            )

    def _create_device(
        self, item: InventoryItem, validation: DeviceValidationResult, options: ExportOptions
    ) -> DeviceOutcome:
        with step("map", "failed to map device"):
            request = self.mapper.to_device_request(item, validation)
        with step("create", "failed to create device"):
            device = self.client.create_device(request.to_payload())
        self.validator.remember_device(item.mac, device.id)
        logger.info(f"Created device {request.name} (NetBox id {device.id})")

        # A failure here leaves the device without its MAC-bearing interface, so
        # check_device_exists cannot find it and later runs retry the create.
        with step("interface", "failed to create primary interface"):
            interface_request = self.mapper.to_interface_request(item, device.id)
            interface = self.client.create_interface(interface_request.to_payload())

        status = self.inventory.get_device_status(item.mac)
        if status is not None and status.ip:
            with step("ip_address", f"failed to assign IP address {status.ip}"):
                ip_request = self.mapper.to_ip_address_request(status.ip, interface.id)
                ip_address = self.client.create_ip_address(ip_request.to_payload())
                self.client.update_device(device.id, {f"primary_ip{ip_address.family}": ip_address.id})

        if options.include_radios:
            self._create_radio_interfaces(item, device.id)
        return DeviceOutcome(request.name, item.mac, "create", device.id)

    def _update_device(
        self,
        item: InventoryItem,
        device_id: int,
        validation: DeviceValidationResult,
        options: ExportOptions,
    ) -> DeviceOutcome:
        with step("map", "failed to map device"):
            request = self.mapper.map_device_for_update(item, validation)
        with step("update", "failed to update device"):
            self.client.update_device(device_id, request.to_payload())
        logger.info(f"Updated device {request.name} (NetBox id {device_id})")

        # Radios are created again without looking for existing ones; NetBox
        # rejects duplicate names, so repeated runs report radio_interfaces errors.
        if options.include_radios:
            self._create_radio_interfaces(item, device_id)
        return DeviceOutcome(request.name, item.mac, "update", device_id)

    # ------------------------------------------------------------------
    #  radios and WLANs
    # ------------------------------------------------------------------

    def _create_radio_interfaces(self, item: InventoryItem, device_id: int) -> None:
        ap_config = self.inventory.get_ap_config_by_mac(item.mac)
        if ap_config is None:
            logger.info(f"No AP config found for {item.display_name}, skipping radio interfaces")
            return
        radio_config = RadioConfig.from_raw(ap_config)

        with step("radio_interfaces", "failed to create radio interfaces"):
            radio_requests = self.mapper.to_radio_interface_requests(item, device_id, radio_config)
            if not radio_requests:
                return
            created = self.client.bulk_create_interfaces(
                [request.to_payload() for request in radio_requests.values()]
            )

        by_name = {interface.name: interface for interface in created}
        radios: dict[str, Interface] = {
            radio_id: by_name[request.name]
            for radio_id, request in radio_requests.items()
            if request.name in by_name
        }
        logger.debug(f"Created {len(radios)} radio interfaces on {item.display_name}")

        wlans = [
            wlan
            for wlan in self.inventory.get_wlans_by_site(item.site_id)
            if wlan.is_org_wide or wlan.site_id == item.site_id
        ]
        if not wlans or not radios:
            return

        wireless_lan_ids = self.ensure_wireless_lans(wlans)
        with step("wlan_interfaces", "failed to create WLAN interfaces"):
            virtuals = self.mapper.to_virtual_wlan_interface_requests(device_id, radios, wlans, wireless_lan_ids)
            if virtuals:
                self.client.bulk_create_interfaces([request.to_payload() for request in virtuals])
                logger.debug(f"Created {len(virtuals)} WLAN interfaces on {item.display_name}")

    def ensure_wireless_lans(self, wlans: Sequence[WLAN]) -> dict[str, int]:
        """Return SSID -> WirelessLAN id, creating missing WirelessLANs.

        Failures are logged; the SSIDs that could not be created are simply
        left unlinked.
        """
        ids: dict[str, int] = {}
        missing: list[WLAN] = []
        for wlan in wlans:
            if not wlan.ssid or wlan.ssid in ids or any(m.ssid == wlan.ssid for m in missing):
                continue
            wlan_id = self.validator.get_wireless_lan_id(wlan.ssid)
            if wlan_id is not None:
                ids[wlan.ssid] = wlan_id
            else:
                missing.append(wlan)

        if not missing or not self.validator.wireless_lans_available:
            return ids

        try:
            created = self.client.bulk_create_wireless_lans(
                [self.mapper.to_wireless_lan_request(wlan).to_payload() for wlan in missing]
            )
        except BulkOperationError as exc:
            logger.warning(f"Could not create all wireless LANs: {exc}")
            created = exc.results

        for wireless_lan in created:
            self.validator.remember_wireless_lan(wireless_lan.ssid, wireless_lan.id)
            ids[wireless_lan.ssid] = wireless_lan.id
        if created:
            logger.info(f"Created {len(created)} wireless LANs in NetBox")
        return ids
