"""In-memory stand-ins for pynetbox endpoints and the device cache."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pynetbox

from inventory import DeviceCache
from utils import normalize_mac


def make_request_error(status_code=400, detail="bad request"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = "Bad Request"
    response.text = detail
    response.content = detail.encode()
    response.url = "https://netbox.example.com/api/dcim/interfaces/"
    response.json.return_value = {"detail": detail}
    return pynetbox.RequestError(response)


def _ident(value):
    if isinstance(value, dict):
        return value.get("id")
    return value


# NetBox filters whose name differs from the record field they match
FILTER_FIELDS = {"interface_id": "assigned_object_id"}


def _matches(record, key, value):
    if key in FILTER_FIELDS:
        return record.get(FILTER_FIELDS[key]) == value
    if key.endswith("_id") and key != "id":
        return _ident(record.get(key[:-3])) == value
    field = record.get(key)
    if isinstance(field, dict):
        return value in (field.get("id"), field.get("slug"), field.get("name"))
    if isinstance(field, str) and isinstance(value, str):
        return field.lower() == value.lower()
    return field == value


class FakeEndpoint:
    """Records every call; ``fail_on[method]`` lists 1-based call numbers that raise."""

    def __init__(self, records=None):
        self.records = [dict(record) for record in records or []]
        self.calls = []
        self.fail_on = {}
        self.error = None
        self._next_id = max((record["id"] for record in self.records), default=0) + 1

    def _record_call(self, method, payload):
        self.calls.append((method, payload))
        count = sum(1 for name, _ in self.calls if name == method)
        if count in self.fail_on.get(method, ()):
            raise self.error or make_request_error()

    def calls_to(self, method):
        return [payload for name, payload in self.calls if name == method]

    def _store(self, payload):
        record = dict(payload)
        record["id"] = self._next_id
        self._next_id += 1
        self.records.append(record)
        return dict(record)

    def all(self, limit=None):
        self._record_call("list", {"limit": limit})
        return [dict(record) for record in self.records]

    def filter(self, limit=None, **filters):
        self._record_call("list", dict(filters, limit=limit))
        return [
            dict(record)
            for record in self.records
            if all(_matches(record, key, value) for key, value in filters.items())
        ]

    def create(self, payload):
        self._record_call("create", payload)
        if isinstance(payload, list):
            return [self._store(item) for item in payload]
        return self._store(payload)

    def update(self, objects):
        self._record_call("update", objects)
        updated = []
        for obj in objects:
            record = next(record for record in self.records if record["id"] == obj["id"])
            record.update(obj)
            updated.append(dict(record))
        return updated

    def delete(self, ids):
        self._record_call("delete", list(ids))
        self.records = [record for record in self.records if record["id"] not in ids]
        return True


class FakeNetBox:
    """Enough of ``pynetbox.api`` for the client."""

    def __init__(self, sites=None, device_types=None, device_roles=None, wireless_lans=None):
        self.dcim = SimpleNamespace(
            sites=FakeEndpoint(sites),
            device_types=FakeEndpoint(device_types),
            device_roles=FakeEndpoint(device_roles),
            devices=FakeEndpoint(),
            interfaces=FakeEndpoint(),
        )
        self.ipam = SimpleNamespace(ip_addresses=FakeEndpoint())
        self.wireless = SimpleNamespace(wireless_lans=FakeEndpoint(wireless_lans))
        self.extras = SimpleNamespace(tags=FakeEndpoint(), custom_fields=FakeEndpoint())
        self.status_payload = {"netbox-version": "4.1.3"}

    def status(self):
        return self.status_payload

    def endpoints(self):
        for namespace in (self.dcim, self.ipam, self.wireless, self.extras):
            yield from vars(namespace).values()

    def write_calls(self):
        return [
            (method, payload)
            for endpoint in self.endpoints()
            for method, payload in endpoint.calls
            if method in {"create", "update", "delete"}
        ]


class FakeDeviceCache(DeviceCache):
    def __init__(self, sites=(), devices=(), statuses=None, ap_configs=None, wlans=()):
        self.sites = list(sites)
        self.devices = list(devices)
        self.statuses = {normalize_mac(mac): status for mac, status in (statuses or {}).items()}
        self.ap_configs = {normalize_mac(mac): config for mac, config in (ap_configs or {}).items()}
        self.wlans = list(wlans)

    def get_all_devices(self):
        return list(self.devices)

    def get_devices_by_site(self, site_id, device_type=""):
        return [
            item for item in self.devices
            if item.site_id == site_id and (not device_type or item.type == device_type)
        ]

    def get_site_by_name(self, name):
        return next((site for site in self.sites if site.name == name), None)

    def get_site_by_id(self, site_id):
        return next((site for site in self.sites if site.id == site_id), None)

    def get_device_status(self, mac):
        return self.statuses.get(normalize_mac(mac))

    def get_ap_config_by_mac(self, mac):
        return self.ap_configs.get(normalize_mac(mac))

    def get_wlans_by_site(self, site_id):
        return [wlan for wlan in self.wlans if wlan.site_id == site_id or wlan.is_org_wide]
