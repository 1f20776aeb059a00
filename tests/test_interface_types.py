"""Tests for the NetBox interface type catalogue."""
import pytest

from exceptions import InterfaceTypeError
from interface_types import COMMON_INTERFACE_TYPES, DEFAULT_CATALOG, InterfaceTypeCatalog


class TestInterfaceTypeCatalog:
    def test_common_types_are_valid(self):
        for value in COMMON_INTERFACE_TYPES:
            assert DEFAULT_CATALOG.is_valid(value), value

    def test_label(self):
        assert DEFAULT_CATALOG.label("virtual") == "Virtual"
        assert DEFAULT_CATALOG.label("nope") is None

    def test_suggest(self):
        assert DEFAULT_CATALOG.suggest("wifi6") == "ieee802.11ax"
        assert DEFAULT_CATALOG.suggest("something-else") is None

    def test_all_types_sorted(self):
        values = DEFAULT_CATALOG.all_types()
        assert values == sorted(values)
        assert "ieee802.11be" in values

    def test_validate_accepts_valid(self):
        DEFAULT_CATALOG.validate("1000base-t")

    def test_validate_reports_suggestion_and_device(self):
        with pytest.raises(InterfaceTypeError) as excinfo:
            DEFAULT_CATALOG.validate("ethernet", device_name="lab-ap-01")
        error = excinfo.value
        assert error.invalid_type == "ethernet"
        assert error.suggestion == "1000base-t"
        message = str(error)
        assert "interface type 'ethernet' is not valid for device 'lab-ap-01'" in message
        assert "Suggestion: use '1000base-t' instead" in message
        assert "  - virtual (Virtual)" in message
        assert "netbox.mappings.interfaces" in message

    def test_for_device_copies_error(self):
        with pytest.raises(InterfaceTypeError) as excinfo:
            DEFAULT_CATALOG.validate("bogus")
        named = excinfo.value.for_device("ap-2")
        assert named.device_name == "ap-2"
        assert named.suggestion is None
        assert "Suggestion" not in str(named)

    def test_custom_catalog(self):
        catalog = InterfaceTypeCatalog(types={"x": "X"}, common=("x",), suggestions={})
        assert catalog.is_valid("x")
        assert not catalog.is_valid("virtual")
