"""NetBox REST client used by the exporter.

Thin wrapper over pynetbox: every call either returns typed records from
``models`` or raises ``RequestError``. Calls are never retried.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence

import pynetbox
import requests
from requests.adapters import HTTPAdapter
from slugify import slugify

from config import NetBoxConfig
from exceptions import BulkOperationError, ConfigError, RequestContext, RequestError
from models import (
    Device,
    DeviceRole,
    DeviceType,
    Interface,
    IPAddress,
    Site,
    WirelessLAN,
)
from utils import chunked, format_mac, parse_request_context

PAGE_SIZE = 100
BULK_BATCH_SIZE = 100


class TimeoutHTTPAdapter(HTTPAdapter):
    """HTTPAdapter applying a default timeout to every request."""

    def __init__(self, *args: Any, timeout: float | None = None, **kwargs: Any) -> None:
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request, **kwargs):  # type: ignore[override]
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def build_session(config: NetBoxConfig) -> requests.Session:
    """Session with a bounded connection pool, TLS setting and timeout."""
    session = requests.Session()
    adapter = TimeoutHTTPAdapter(timeout=config.timeout, pool_connections=10, pool_maxsize=10)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = config.verify_ssl
    return session


def _as_dict(record: Any) -> Mapping[str, Any]:
    if isinstance(record, Mapping):
        return record
    return dict(record)


class NetBoxClient:
    """NetBox API client covering the objects the exporter reads and writes."""

    def __init__(
        self,
        config: NetBoxConfig | None = None,
        *,
        api: Any | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if api is None:
            if config is None:
                raise ConfigError("config is required when api is not provided")
            # pynetbox sends "Authorization: Token <key>" on every call
            api = pynetbox.api(config.url, token=config.api_key)
            api.http_session = session if session is not None else build_session(config)

        self.config = config
        self.api = api
        self._logger = logging.getLogger(__name__)
        self._tag_cache: dict[str, Any] = {}
        self._custom_field_cache: dict[str, Any] = {}

    # ------------------------------------------------------------------
    #  plumbing
    # ------------------------------------------------------------------

    def _log_request_context(self, context: RequestContext, *, level: int = logging.ERROR) -> None:
        self._logger.log(
            level,
            "NetBox API error statusCode=%s message=%s method=%s url=%s",
            context.status_code,
            context.message,
            context.method,
            context.url,
        )

    def _context_for(self, exc: Exception, method: str, what: str) -> RequestContext:
        if isinstance(exc, pynetbox.RequestError):
            return parse_request_context(getattr(exc, "req", None), method, getattr(exc, "base", None))
        return RequestContext(message=str(exc), method=method.upper(), url=what)

    def _call(self, method: str, what: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a pynetbox call, translating its failures into RequestError."""
        try:
            return func(*args, **kwargs)
        except (pynetbox.RequestError, pynetbox.ContentError, requests.RequestException) as exc:
            context = self._context_for(exc, method, what)
            self._log_request_context(context)
            raise RequestError(f"NetBox request failed: {method.upper()} {what}", context=context) from exc

    def _list(self, endpoint: Any, what: str, **filters: Any) -> list[Mapping[str, Any]]:
        # pynetbox follows the "next" link until the last page
        def fetch() -> list[Any]:
            if filters:
                return list(endpoint.filter(limit=PAGE_SIZE, **filters))
            return list(endpoint.all(limit=PAGE_SIZE))

        return [_as_dict(record) for record in self._call("GET", what, fetch)]

    def _first(self, endpoint: Any, what: str, **filters: Any) -> Mapping[str, Any] | None:
        records = self._list(endpoint, what, **filters)
        return records[0] if records else None

    def _create(self, endpoint: Any, what: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        return _as_dict(self._call("POST", what, endpoint.create, dict(payload)))

    def _update(self, endpoint: Any, what: str, object_id: int, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        records = self._call("PATCH", what, endpoint.update, [{"id": object_id, **payload}])
        return _as_dict(records[0])

    def _bulk_create(
        self,
        endpoint: Any,
        what: str,
        payloads: Sequence[Mapping[str, Any]],
        decode: Callable[[Any], Any],
    ) -> list[Any]:
        """POST ``payloads`` in batches of BULK_BATCH_SIZE.

        When a batch fails the remaining batches are not sent, and the
        raised BulkOperationError carries the records already created.
        """
        created: list[Any] = []
        for index, batch in enumerate(chunked(list(payloads), BULK_BATCH_SIZE), start=1):
            try:
                records = endpoint.create([dict(item) for item in batch])
            except (pynetbox.RequestError, pynetbox.ContentError, requests.RequestException) as exc:
                context = self._context_for(exc, "POST", what)
                self._log_request_context(context)
                raise BulkOperationError(
                    f"NetBox bulk create of {what} failed on batch {index} "
                    f"({len(created)} created before the failure)",
                    results=created,
                    batch_index=index,
                    context=context,
                ) from exc
            created.extend(decode(_as_dict(record)) for record in records)
            self._logger.debug("Created batch %s of %s (%s items)", index, what, len(batch))
        return created

    # ------------------------------------------------------------------
    #  status
    # ------------------------------------------------------------------

    def test_connection(self) -> str:
        """Return the NetBox version reported by the status endpoint."""
        status = self._call("GET", "status", self.api.status)
        return str((status or {}).get("netbox-version") or "unknown")

    # ------------------------------------------------------------------
    #  sites, device types, roles
    # ------------------------------------------------------------------

    def get_sites(self) -> list[Site]:
        return [Site.from_netbox(item) for item in self._list(self.api.dcim.sites, "dcim/sites")]

    def get_site(self, site_id: int) -> Site | None:
        record = self._first(self.api.dcim.sites, "dcim/sites", id=site_id)
        return Site.from_netbox(record) if record else None

    def get_site_by_slug(self, slug: str) -> Site | None:
        record = self._first(self.api.dcim.sites, "dcim/sites", slug=slug)
        return Site.from_netbox(record) if record else None

    def get_device_types(self) -> list[DeviceType]:
        return [
            DeviceType.from_netbox(item)
            for item in self._list(self.api.dcim.device_types, "dcim/device-types")
        ]

    def get_device_type_by_slug(self, slug: str) -> DeviceType | None:
        record = self._first(self.api.dcim.device_types, "dcim/device-types", slug=slug)
        return DeviceType.from_netbox(record) if record else None

    def get_device_roles(self) -> list[DeviceRole]:
        return [
            DeviceRole.from_netbox(item)
            for item in self._list(self.api.dcim.device_roles, "dcim/device-roles")
        ]

    def get_device_role_by_slug(self, slug: str) -> DeviceRole | None:
        record = self._first(self.api.dcim.device_roles, "dcim/device-roles", slug=slug)
        return DeviceRole.from_netbox(record) if record else None

    # ------------------------------------------------------------------
    #  devices
    # ------------------------------------------------------------------

    def get_device(self, device_id: int) -> Device | None:
        record = self._first(self.api.dcim.devices, "dcim/devices", id=device_id)
        return Device.from_netbox(record) if record else None

    def get_device_by_mac(self, mac: str) -> Device | None:
        """Find a device through the interface carrying ``mac``."""
        record = self._first(self.api.dcim.interfaces, "dcim/interfaces", mac_address=format_mac(mac))
        if record is None:
            return None
        interface = Interface.from_netbox(record)
        if interface.device_id is None:
            return None
        return self.get_device(interface.device_id)

    def get_devices_by_site_and_role(self, site_slug: str, role_slug: str) -> list[Device]:
        """Devices with ``role_slug``, limited to one site unless ``site_slug`` is empty."""
        filters = {"role": role_slug}
        if site_slug:
            filters["site"] = site_slug
        return [
            Device.from_netbox(item)
            for item in self._list(self.api.dcim.devices, "dcim/devices", **filters)
        ]

    def create_device(self, payload: Mapping[str, Any]) -> Device:
        return Device.from_netbox(self._create(self.api.dcim.devices, "dcim/devices", payload))

    def update_device(self, device_id: int, payload: Mapping[str, Any]) -> Device:
        return Device.from_netbox(self._update(self.api.dcim.devices, "dcim/devices", device_id, payload))

    # ------------------------------------------------------------------
    #  interfaces
    # ------------------------------------------------------------------

    def get_interfaces_by_device(self, device_id: int) -> list[Interface]:
        return [
            Interface.from_netbox(item)
            for item in self._list(self.api.dcim.interfaces, "dcim/interfaces", device_id=device_id)
        ]

    def create_interface(self, payload: Mapping[str, Any]) -> Interface:
        return Interface.from_netbox(self._create(self.api.dcim.interfaces, "dcim/interfaces", payload))

    def update_interface(self, interface_id: int, payload: Mapping[str, Any]) -> Interface:
        return Interface.from_netbox(
            self._update(self.api.dcim.interfaces, "dcim/interfaces", interface_id, payload)
        )

    def bulk_create_interfaces(self, payloads: Sequence[Mapping[str, Any]]) -> list[Interface]:
        return self._bulk_create(self.api.dcim.interfaces, "dcim/interfaces", payloads, Interface.from_netbox)

    def bulk_delete_interfaces(self, interface_ids: Sequence[int]) -> int:
        """DELETE interfaces in batches; returns how many were deleted."""
        deleted = 0
        endpoint = self.api.dcim.interfaces
        for index, batch in enumerate(chunked(list(interface_ids), BULK_BATCH_SIZE), start=1):
            try:
                endpoint.delete(batch)
            except (pynetbox.RequestError, requests.RequestException) as exc:
                context = self._context_for(exc, "DELETE", "dcim/interfaces")
                self._log_request_context(context)
                raise BulkOperationError(
                    f"NetBox bulk delete of dcim/interfaces failed on batch {index}",
                    results=list(interface_ids[:deleted]),
                    batch_index=index,
                    context=context,
                ) from exc
            deleted += len(batch)
        return deleted

    # ------------------------------------------------------------------
    #  IP addresses
    # ------------------------------------------------------------------

    def get_ip_addresses_by_interface(self, interface_id: int) -> list[IPAddress]:
        return [
            IPAddress.from_netbox(item)
            for item in self._list(self.api.ipam.ip_addresses, "ipam/ip-addresses", interface_id=interface_id)
        ]

    def create_ip_address(self, payload: Mapping[str, Any]) -> IPAddress:
        return IPAddress.from_netbox(self._create(self.api.ipam.ip_addresses, "ipam/ip-addresses", payload))

    # ------------------------------------------------------------------
    #  wireless LANs
    # ------------------------------------------------------------------

    def get_wireless_lans(self) -> list[WirelessLAN]:
        return [
            WirelessLAN.from_netbox(item)
            for item in self._list(self.api.wireless.wireless_lans, "wireless/wireless-lans")
        ]

    def get_wireless_lan_by_ssid(self, ssid: str) -> WirelessLAN | None:
        record = self._first(self.api.wireless.wireless_lans, "wireless/wireless-lans", ssid=ssid)
        return WirelessLAN.from_netbox(record) if record else None

    def create_wireless_lan(self, payload: Mapping[str, Any]) -> WirelessLAN:
        return WirelessLAN.from_netbox(
            self._create(self.api.wireless.wireless_lans, "wireless/wireless-lans", payload)
        )

    def bulk_create_wireless_lans(self, payloads: Sequence[Mapping[str, Any]]) -> list[WirelessLAN]:
        return self._bulk_create(
            self.api.wireless.wireless_lans, "wireless/wireless-lans", payloads, WirelessLAN.from_netbox
        )

    # ------------------------------------------------------------------
    #  tags and custom fields
    # ------------------------------------------------------------------

    def ensure_tag(self, name: str) -> Any:
        """Return the tag called ``name``, creating it if needed."""
        slug = slugify(name)
        if slug in self._tag_cache:
            return self._tag_cache[slug]

        tag = self._first(self.api.extras.tags, "extras/tags", slug=slug)
        if tag is None:
            try:
                tag = self._create(self.api.extras.tags, "extras/tags", {"name": name, "slug": slug})
                self._logger.info("Created tag '%s' in NetBox.", name)
            except RequestError:
                # someone else created it between the lookup and the create
                tag = self._first(self.api.extras.tags, "extras/tags", slug=slug)
                if tag is None:
                    raise
        self._tag_cache[slug] = tag
        return tag

    def ensure_custom_field(self, name: str, label: str | None = None) -> Any:
        """Return the text custom field ``name`` on devices, creating it if needed."""
        if name in self._custom_field_cache:
            return self._custom_field_cache[name]

        custom_field = self._first(self.api.extras.custom_fields, "extras/custom-fields", name=name)
        if custom_field is None:
            custom_field = self._create(
                self.api.extras.custom_fields,
                "extras/custom-fields",
                {
                    "name": name,
                    "type": "text",
                    "object_types": ["dcim.device"],
                    "label": label or name.replace("_", " ").title(),
                    "filter_logic": "loose",
                },
            )
            self._logger.info("Created custom field '%s' in NetBox.", name)
        self._custom_field_cache[name] = custom_field
        return custom_field
