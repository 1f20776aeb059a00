"""Shared fixtures for wifi2netbox tests."""
import sys
import os
import pytest

# Ensure the project root is on sys.path so the top-level modules import
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fakes import FakeDeviceCache, FakeNetBox  # noqa: E402
from mapping import DeviceTypeMapping, MappingConfig, MappingResolver  # noqa: E402
from models import InventoryItem, SiteRef  # noqa: E402
from netbox_client import NetBoxClient  # noqa: E402


@pytest.fixture
def sample_item():
    """A typical access point record."""
    return InventoryItem(
        id="vendor-ap-1",
        mac="5c:5b:35:aa:bb:01",
        serial="A1234567",
        model="AP43",
        name="lab-ap-01",
        type="ap",
        site_id="site-1",
        site_name="US LAB 01",
        source_api="mist",
        source_vendor="mist",
    )


@pytest.fixture
def mappings():
    return MappingConfig(
        tag="wifi2netbox",
        device_types={"AP43": DeviceTypeMapping(slug="ap43")},
    )


@pytest.fixture
def resolver(mappings):
    return MappingResolver(mappings)


@pytest.fixture
def fake_nb():
    """NetBox with one site, one AP model and the AP role."""
    return FakeNetBox(
        sites=[{"id": 1, "name": "US LAB 01", "slug": "us-lab-01"}],
        device_types=[{"id": 10, "model": "AP43", "slug": "ap43"}],
        device_roles=[{"id": 20, "name": "Wireless AP", "slug": "wireless-ap"}],
        wireless_lans=[{"id": 30, "ssid": "corp"}],
    )


@pytest.fixture
def client(fake_nb):
    return NetBoxClient(api=fake_nb)


@pytest.fixture
def lab_site():
    return SiteRef(id="site-1", name="US LAB 01")


@pytest.fixture
def device_cache(lab_site, sample_item):
    return FakeDeviceCache(sites=[lab_site], devices=[sample_item])
