"""Tests for reading access points back from NetBox."""
import pytest

from exceptions import MissingDependencyError
from models import Interface
from sync import Syncer, primary_mac

LAB = {"id": 1, "name": "US LAB 01", "slug": "us-lab-01"}
EU = {"id": 2, "name": "EU LAB 02", "slug": "eu-lab-02"}
AP_ROLE = {"id": 20, "slug": "wireless-ap"}
AP43 = {"id": 10, "model": "AP43"}


@pytest.fixture
def syncer(client, resolver, fake_nb):
    fake_nb.dcim.devices.records.extend([
        {"id": 5, "name": "lab-ap-01", "serial": "S1", "site": LAB, "role": AP_ROLE, "device_type": AP43},
        {"id": 6, "name": "lab-ap-02", "site": LAB, "role": AP_ROLE, "device_type": AP43},
        {"id": 7, "name": "eu-ap-01", "site": EU, "role": AP_ROLE, "device_type": AP43},
        {"id": 8, "name": "lab-ap-03", "site": LAB, "role": AP_ROLE, "device_type": AP43},
    ])
    fake_nb.dcim.interfaces.records.extend([
        {"id": 50, "name": "wifi0", "device": {"id": 5}, "mac_address": "5C:5B:35:AA:BB:FF"},
        {"id": 51, "name": "eth0", "device": {"id": 5}, "mac_address": "5C:5B:35:AA:BB:01"},
        {"id": 70, "name": "eth0", "device": {"id": 7}, "mac_address": "5C:5B:35:AA:BB:07"},
        {"id": 80, "name": "eth0", "device": {"id": 8}, "mac_address": "garbage"},
    ])
    return Syncer(client, resolver)


class TestPrimaryMac:
    def test_prefers_management_interface(self):
        interfaces = [
            Interface(id=1, name="wifi0", mac_address="aa:aa:aa:aa:aa:aa"),
            Interface(id=2, name="Mgmt", mac_address="bb:bb:bb:bb:bb:bb"),
        ]
        assert primary_mac(interfaces) == "bb:bb:bb:bb:bb:bb"

    def test_falls_back_to_first_with_mac(self):
        interfaces = [Interface(id=1, name="wifi0"), Interface(id=2, name="wifi1", mac_address="cc:cc:cc:cc:cc:cc")]
        assert primary_mac(interfaces) == "cc:cc:cc:cc:cc:cc"

    def test_none(self):
        assert primary_mac([]) == ""


class TestSyncFromNetbox:
    def test_one_site(self, syncer, caplog):
        metadata = syncer.sync_from_netbox("US LAB 01")
        assert list(metadata) == ["5c5b35aabb01"]
        device = metadata["5c5b35aabb01"]
        assert (device.name, device.site_name, device.model, device.serial, device.netbox_id) == (
            "lab-ap-01", "US LAB 01", "AP43", "S1", 5,
        )
        assert device.site_id == "1"
        assert "lab-ap-02 has no MAC address" in caplog.text
        assert "Invalid MAC address 'garbage'" in caplog.text

    def test_all_sites(self, syncer):
        assert set(syncer.sync_from_netbox()) == {"5c5b35aabb01", "5c5b35aabb07"}

    def test_unknown_site(self, syncer):
        with pytest.raises(MissingDependencyError, match="site 'Mars Base' not found in NetBox"):
            syncer.sync_from_netbox("Mars Base")

    def test_missing_ap_role(self, syncer, fake_nb):
        fake_nb.dcim.device_roles.records.clear()
        with pytest.raises(MissingDependencyError) as excinfo:
            syncer.sync_from_netbox()
        assert excinfo.value.dependency_type == "device role"
        assert excinfo.value.name == "wireless-ap"


class TestGetDeviceMetadata:
    def test_found(self, syncer):
        device = syncer.get_device_metadata("5C-5B-35-AA-BB-07")
        assert device.netbox_id == 7
        assert device.mac == "5c5b35aabb07"

    def test_unknown(self, syncer):
        assert syncer.get_device_metadata("00:00:00:00:00:01") is None
