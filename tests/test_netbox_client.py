"""Tests for the pynetbox wrapper."""
import pytest

from config import NetBoxConfig
from exceptions import BulkOperationError, ConfigError, RequestError
from fakes import FakeNetBox
from netbox_client import NetBoxClient, build_session


def _interfaces(count):
    return [{"device": 1, "name": f"v{i}", "type": "virtual"} for i in range(count)]


class TestConstruction:
    def test_requires_config_or_api(self):
        with pytest.raises(ConfigError):
            NetBoxClient()

    def test_session_uses_config(self):
        config = NetBoxConfig(url="https://netbox.example.com", api_key="k", verify_ssl=False, timeout=12)
        session = build_session(config)
        assert session.verify is False
        assert session.get_adapter("https://netbox.example.com").timeout == 12

    def test_pynetbox_api_gets_session(self):
        config = NetBoxConfig(url="https://netbox.example.com", api_key="k")
        client = NetBoxClient(config)
        assert client.api.token == "k"
        assert client.api.http_session.get_adapter("https://netbox.example.com").timeout == 30


# ---------------------------------------------------------------------------
#  Reads
# ---------------------------------------------------------------------------

class TestReads:
    def test_test_connection(self, client):
        assert client.test_connection() == "4.1.3"

    def test_lists_use_page_size(self, client, fake_nb):
        sites = client.get_sites()
        assert [(s.id, s.slug) for s in sites] == [(1, "us-lab-01")]
        assert fake_nb.dcim.sites.calls_to("list") == [{"limit": 100}]

    def test_lookup_by_slug(self, client):
        assert client.get_site_by_slug("us-lab-01").name == "US LAB 01"
        assert client.get_site_by_slug("missing") is None
        assert client.get_device_role_by_slug("wireless-ap").id == 20
        assert client.get_device_type_by_slug("ap43").model == "AP43"

    def test_lookup_by_id(self, client):
        assert client.get_site(1).slug == "us-lab-01"
        assert client.get_site(99) is None
        assert client.get_device(99) is None

    def test_wireless_lan_by_ssid(self, client):
        assert client.get_wireless_lan_by_ssid("corp").id == 30
        assert client.get_wireless_lan_by_ssid("guest") is None

    def test_device_by_mac(self, client, fake_nb):
        fake_nb.dcim.devices.records.append({"id": 5, "name": "lab-ap-01", "status": {"value": "active"}})
        fake_nb.dcim.interfaces.records.append(
            {"id": 50, "name": "eth0", "device": {"id": 5}, "mac_address": "5C:5B:35:AA:BB:01"}
        )
        device = client.get_device_by_mac("5c5b35aabb01")
        assert device.id == 5
        assert device.status == "active"
        assert fake_nb.dcim.interfaces.calls_to("list")[0]["mac_address"] == "5C:5B:35:AA:BB:01"
        assert client.get_device_by_mac("00:00:00:00:00:01") is None

    def test_devices_by_site_and_role(self, client, fake_nb):
        fake_nb.dcim.devices.records.extend([
            {"id": 5, "name": "a", "site": {"id": 1, "slug": "us-lab-01"}, "role": {"id": 20, "slug": "wireless-ap"}},
            {"id": 6, "name": "b", "site": {"id": 2, "slug": "eu-lab"}, "role": {"id": 20, "slug": "wireless-ap"}},
            {"id": 7, "name": "c", "site": {"id": 1, "slug": "us-lab-01"}, "role": {"id": 21, "slug": "router"}},
        ])
        assert [d.id for d in client.get_devices_by_site_and_role("us-lab-01", "wireless-ap")] == [5]
        assert [d.id for d in client.get_devices_by_site_and_role("", "wireless-ap")] == [5, 6]


# ---------------------------------------------------------------------------
#  Error wrapping
# ---------------------------------------------------------------------------

class TestErrors:
    def test_request_error_is_wrapped(self, client, fake_nb):
        fake_nb.dcim.sites.fail_on = {"list": {1}}
        with pytest.raises(RequestError) as excinfo:
            client.get_sites()
        context = excinfo.value.context
        assert context.status_code == 400
        assert context.message == "bad request"
        assert context.method == "GET"

    def test_error_is_logged(self, client, fake_nb, caplog):
        fake_nb.dcim.devices.fail_on = {"create": {1}}
        with pytest.raises(RequestError):
            client.create_device({"name": "x"})
        assert "NetBox API error statusCode=400 message=bad request method=POST" in caplog.text

    def test_calls_are_not_retried(self, client, fake_nb):
        fake_nb.dcim.devices.fail_on = {"create": {1}}
        with pytest.raises(RequestError):
            client.create_device({"name": "x"})
        assert len(fake_nb.dcim.devices.calls_to("create")) == 1


# ---------------------------------------------------------------------------
#  Writes
# ---------------------------------------------------------------------------

class TestWrites:
    def test_create_and_update_device(self, client, fake_nb):
        device = client.create_device({"name": "lab-ap-01", "site": 1, "device_type": 10, "role": 20})
        assert device.site_id == 1
        updated = client.update_device(device.id, {"serial": "S1"})
        assert updated.serial == "S1"
        assert fake_nb.dcim.devices.calls_to("update") == [[{"id": device.id, "serial": "S1"}]]

    def test_bulk_create_batches(self, client, fake_nb):
        created = client.bulk_create_interfaces(_interfaces(250))
        assert len(created) == 250
        assert [len(batch) for batch in fake_nb.dcim.interfaces.calls_to("create")] == [100, 100, 50]

    def test_bulk_create_stops_at_failed_batch(self, client, fake_nb):
        fake_nb.dcim.interfaces.fail_on = {"create": {2}}
        with pytest.raises(BulkOperationError) as excinfo:
            client.bulk_create_interfaces(_interfaces(250))
        assert excinfo.value.batch_index == 2
        assert len(excinfo.value.results) == 100
        assert len(fake_nb.dcim.interfaces.calls_to("create")) == 2

    def test_bulk_delete(self, client, fake_nb):
        created = client.bulk_create_interfaces(_interfaces(150))
        assert client.bulk_delete_interfaces([i.id for i in created]) == 150
        assert [len(ids) for ids in fake_nb.dcim.interfaces.calls_to("delete")] == [100, 50]
        assert fake_nb.dcim.interfaces.records == []

    def test_bulk_delete_failure(self, client, fake_nb):
        fake_nb.dcim.interfaces.fail_on = {"delete": {2}}
        with pytest.raises(BulkOperationError) as excinfo:
            client.bulk_delete_interfaces(list(range(1, 151)))
        assert excinfo.value.results == list(range(1, 101))

    def test_update_interface(self, client):
        interface = client.create_interface({"device": 5, "name": "eth0", "type": "1000base-t"})
        updated = client.update_interface(interface.id, {"enabled": False})
        assert updated.enabled is False
        assert updated.device_id == 5

    def test_ip_address(self, client):
        ip = client.create_ip_address({"address": "2001:db8::1/128", "assigned_object_id": 5})
        assert ip.family == 6
        assert [a.address for a in client.get_ip_addresses_by_interface(5)] == ["2001:db8::1/128"]
        assert client.get_ip_addresses_by_interface(6) == []

    def test_create_wireless_lan(self, client):
        wlan = client.create_wireless_lan({"ssid": "guest", "status": "active"})
        assert wlan.ssid == "guest"
        assert wlan.status == "active"

    def test_bulk_wireless_lans(self, client):
        created = client.bulk_create_wireless_lans([{"ssid": "guest"}, {"ssid": "iot"}])
        assert [w.ssid for w in created] == ["guest", "iot"]


class TestTagsAndCustomFields:
    def test_ensure_tag_creates_once(self, client, fake_nb):
        first = client.ensure_tag("WiFi2NetBox Sync")
        second = client.ensure_tag("WiFi2NetBox Sync")
        assert first == second
        assert fake_nb.extras.tags.calls_to("create") == [{"name": "WiFi2NetBox Sync", "slug": "wifi2netbox-sync"}]

    def test_ensure_tag_reuses_existing(self):
        fake_nb = FakeNetBox()
        fake_nb.extras.tags.records.append({"id": 3, "name": "wifi2netbox", "slug": "wifi2netbox"})
        client = NetBoxClient(api=fake_nb)
        assert client.ensure_tag("wifi2netbox")["id"] == 3
        assert fake_nb.extras.tags.calls_to("create") == []

    def test_ensure_tag_create_failure(self, client, fake_nb):
        fake_nb.extras.tags.fail_on = {"create": {1}}
        with pytest.raises(RequestError):
            client.ensure_tag("wifi2netbox")

    def test_ensure_custom_field(self, client, fake_nb):
        client.ensure_custom_field("wifi2netbox_vendor_id", "Vendor ID")
        client.ensure_custom_field("wifi2netbox_vendor_id", "Vendor ID")
        (payload,) = fake_nb.extras.custom_fields.calls_to("create")
        assert payload["type"] == "text"
        assert payload["object_types"] == ["dcim.device"]
        assert payload["label"] == "Vendor ID"
