"""Tests for NetBox dependency validation."""
import dataclasses

import pytest

from exceptions import InitializationError
from models import InventoryItem
from validator import Validator


@pytest.fixture
def validator(client, resolver):
    v = Validator(client, resolver)
    v.initialize()
    return v


class TestInitialize:
    def test_loads_lookups(self, validator):
        assert validator.get_cache_stats() == {
            "sites": 1,
            "device_types": 1,
            "device_roles": 1,
            "devices": 0,
            "wireless_lans": 1,
        }
        assert validator.wireless_lans_available

    @pytest.mark.parametrize("endpoint", ["sites", "device_types", "device_roles"])
    def test_required_lookups_are_fatal(self, client, resolver, fake_nb, endpoint):
        getattr(fake_nb.dcim, endpoint).fail_on = {"list": {1}}
        with pytest.raises(InitializationError):
            Validator(client, resolver).initialize()

    def test_wireless_lans_are_optional(self, client, resolver, fake_nb):
        fake_nb.wireless.wireless_lans.fail_on = {"list": {1}}
        v = Validator(client, resolver)
        v.initialize()
        assert v.initialized
        assert not v.wireless_lans_available

    def test_runs_once(self, validator, fake_nb):
        validator.initialize()
        assert len(fake_nb.dcim.sites.calls_to("list")) == 1

    def test_validate_before_initialize(self, client, resolver, sample_item):
        with pytest.raises(InitializationError):
            Validator(client, resolver).validate_device(sample_item)


class TestValidateDevice:
    def test_valid(self, validator, sample_item):
        result = validator.validate_device(sample_item)
        assert result.valid
        assert (result.site_id, result.device_type_id, result.device_role_id) == (1, 10, 20)
        assert result.device_role_slug == "wireless-ap"

    def test_site_found_by_slug(self, validator, sample_item):
        result = validator.validate_device(dataclasses.replace(sample_item, site_name="us_lab_01"))
        assert result.site_id == 1

    def test_all_failures_are_reported(self, validator, sample_item):
        item = dataclasses.replace(sample_item, site_name="Nowhere", model="XYZ-1")
        result = validator.validate_device(item)
        assert not result.valid
        assert result.failed_dependencies == ["site", "device_type"]
        assert result.errors == [
            "site 'Nowhere' not found in NetBox (tried name and slug 'nowhere')",
            "device type 'XYZ-1' (slug 'xyz-1') not found in NetBox",
        ]

    def test_empty_record(self, validator):
        result = validator.validate_device(InventoryItem())
        assert result.errors == ["device has no site assignment", "device has no model", "device has no type"]
        assert result.failed_dependencies == ["site", "device_type", "device_role"]

    def test_missing_role(self, validator, sample_item):
        result = validator.validate_device(dataclasses.replace(sample_item, type="switch"))
        assert result.failed_dependencies == ["device_role"]
        assert result.device_role_slug == "access-switch"


class TestDeviceExistence:
    def test_absent_device_is_remembered(self, validator, fake_nb, sample_item):
        assert validator.check_device_exists(sample_item.mac) is None
        assert validator.check_device_exists("5C5B35AABB01") is None
        assert len(fake_nb.dcim.interfaces.calls_to("list")) == 1

    def test_existing_device(self, validator, fake_nb, sample_item):
        fake_nb.dcim.devices.records.append({"id": 5, "name": "lab-ap-01"})
        fake_nb.dcim.interfaces.records.append({"id": 50, "name": "eth0", "device": 5, "mac_address": "5C:5B:35:AA:BB:01"})
        assert validator.check_device_exists(sample_item.mac) == 5
        assert validator.check_device_exists(sample_item.mac) == 5
        assert len(fake_nb.dcim.interfaces.calls_to("list")) == 1

    def test_remember_device(self, validator, fake_nb, sample_item):
        assert validator.check_device_exists(sample_item.mac) is None
        validator.remember_device(sample_item.mac, 9)
        assert validator.check_device_exists(sample_item.mac) == 9

    def test_wireless_lan_cache(self, validator):
        assert validator.get_wireless_lan_id("corp") == 30
        validator.remember_wireless_lan("guest", 31)
        assert validator.get_wireless_lan_id("guest") == 31
