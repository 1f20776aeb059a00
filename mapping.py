"""Translation rules from inventory records to NetBox slugs and interfaces."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from exceptions import ConfigError
from models import InterfaceMapping, NetBoxDeviceExtension

logger = logging.getLogger(__name__)

WILDCARD = "*"

FALLBACK_ROLES: Mapping[str, str] = MappingProxyType({
    "ap": "wireless-ap",
    "switch": "access-switch",
    "gateway": "router",
})

DEFAULT_INTERFACES: Mapping[str, InterfaceMapping] = MappingProxyType({
    "eth0": InterfaceMapping(name="eth0", type="1000base-t"),
    "eth1": InterfaceMapping(name="eth1", type="1000base-t"),
    "radio0": InterfaceMapping(name="wifi0", type="ieee802.11n"),
    "radio1": InterfaceMapping(name="wifi1", type="ieee802.11ac"),
    "radio2": InterfaceMapping(name="wifi2", type="ieee802.11ax"),
})

INTERFACE_IDS = tuple(DEFAULT_INTERFACES)

_KNOWN_KEYS = {"tag", "default_roles", "device_roles", "device_types", "site_overrides", "interfaces"}


@dataclass(frozen=True)
class DeviceTypeMapping:
    """NetBox device type slug and optional role for a model pattern."""

    slug: str = ""
    role: str = ""


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


def _string_mapping(raw: Any, name: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"netbox.mappings.{name} must be a mapping")
    return {
        str(key).strip(): str(value).strip()
        for key, value in raw.items()
        if str(key).strip() and value is not None and str(value).strip()
    }


@dataclass(frozen=True)
class MappingConfig:
    """Static translation rules, immutable for the duration of a run.

    ``fallback_roles`` and ``default_interfaces`` are the last resort of
    role and interface resolution; they are fields so callers can swap
    them without touching module state.
    """

    tag: str = ""
    default_roles: Mapping[str, str] = field(default_factory=lambda: dict(FALLBACK_ROLES))
    device_types: Mapping[str, DeviceTypeMapping] = field(default_factory=dict)
    site_overrides: Mapping[str, str] = field(default_factory=dict)
    interfaces: Mapping[str, InterfaceMapping] = field(default_factory=lambda: dict(DEFAULT_INTERFACES))
    fallback_roles: Mapping[str, str] = field(default_factory=lambda: FALLBACK_ROLES)
    default_interfaces: Mapping[str, InterfaceMapping] = field(default_factory=lambda: DEFAULT_INTERFACES)

    def __post_init__(self) -> None:
        for name in ("default_roles", "device_types", "site_overrides", "interfaces"):
            object.__setattr__(self, name, _freeze(getattr(self, name)))
        object.__setattr__(self, "tag", (self.tag or "").strip())

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "MappingConfig":
        """Build mappings from the ``netbox.mappings`` config section."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigError("netbox.mappings must be a mapping")

        unknown = sorted(set(raw) - _KNOWN_KEYS)
        if unknown:
            logger.warning("Ignoring unknown netbox.mappings keys: %s", ", ".join(unknown))

        default_roles = dict(FALLBACK_ROLES)
        if raw.get("default_roles") is not None:
            default_roles.update(_string_mapping(raw["default_roles"], "default_roles"))
        elif raw.get("device_roles") is not None:
            logger.warning(
                "netbox.mappings.device_roles is deprecated, use netbox.mappings.default_roles instead"
            )
            default_roles.update(_string_mapping(raw["device_roles"], "device_roles"))

        return cls(
            tag=str(raw.get("tag") or ""),
            default_roles=default_roles,
            device_types=_parse_device_types(raw.get("device_types")),
            site_overrides=_string_mapping(raw.get("site_overrides"), "site_overrides"),
            interfaces=_parse_interfaces(raw.get("interfaces")),
        )


def _parse_device_types(raw: Any) -> dict[str, DeviceTypeMapping]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError("netbox.mappings.device_types must be a mapping")

    device_types = {}
    for model, value in raw.items():
        model = str(model).strip()
        if not model:
            continue
        if isinstance(value, str):
            logger.warning(
                'netbox.mappings.device_types[%s] uses deprecated format, migrate to {"slug": "%s"}',
                model,
                value,
            )
            device_types[model] = DeviceTypeMapping(slug=value.strip())
        elif isinstance(value, Mapping):
            device_types[model] = DeviceTypeMapping(
                slug=str(value.get("slug") or "").strip(),
                role=str(value.get("role") or "").strip(),
            )
        else:
            raise ConfigError(f"netbox.mappings.device_types[{model}] must be a string or mapping")
    return device_types


def _parse_interfaces(raw: Any) -> dict[str, InterfaceMapping]:
    interfaces = dict(DEFAULT_INTERFACES)
    if raw is None:
        return interfaces
    if not isinstance(raw, Mapping):
        raise ConfigError("netbox.mappings.interfaces must be a mapping")

    for iface_id, value in raw.items():
        iface_id = str(iface_id).strip()
        if iface_id not in DEFAULT_INTERFACES:
            logger.warning("Ignoring unknown interface id in netbox.mappings.interfaces: %s", iface_id)
            continue
        if not isinstance(value, Mapping):
            raise ConfigError(f"netbox.mappings.interfaces[{iface_id}] must be a mapping")
        interfaces[iface_id] = InterfaceMapping(
            name=str(value.get("name") or "").strip(),
            type=str(value.get("type") or "").strip(),
        )
    return interfaces


class MappingResolver:
    """Resolve slugs and interface names using layered overrides."""

    def __init__(self, mappings: MappingConfig | None = None) -> None:
        self.mappings = mappings or MappingConfig()

    # -- device role ------------------------------------------------------

    def resolve_device_role(
        self,
        device_type: str,
        model: str = "",
        override: NetBoxDeviceExtension | None = None,
    ) -> str:
        """Return the NetBox role slug for a device.

        Steps run in priority order and the first one that finds a role
        wins. An exact model entry without a role ends the model lookup, so
        wildcard patterns are not consulted for that model.
        """
        steps: list[Callable[[], tuple[str, bool]]] = [
            lambda: self._try_override_role(override),
            lambda: self._try_model_role(model),
            lambda: self._try_default_role(device_type),
        ]
        for step in steps:
            role, found = step()
            if found:
                return role
        return self.mappings.fallback_roles.get(device_type, device_type)

    def _try_override_role(self, override: NetBoxDeviceExtension | None) -> tuple[str, bool]:
        if override is not None and override.device_role:
            return override.device_role, True
        return "", False

    def _try_model_role(self, model: str) -> tuple[str, bool]:
        if not model:
            return "", False
        entry, exact = self._try_exact_model(model, lowercase_first=False)
        if exact:
            return entry.role, bool(entry.role)
        return self._try_wildcard_role(model)

    def _try_wildcard_role(self, model: str) -> tuple[str, bool]:
        # first matching pattern in mapping order wins
        for _, entry in self._wildcard_entries(model):
            if entry.role:
                return entry.role, True
        return "", False

    def _try_default_role(self, device_type: str) -> tuple[str, bool]:
        role = self.mappings.default_roles.get(device_type)
        if role:
            return role, True
        return "", False

    # -- device type / site ---------------------------------------------

    def get_device_type_slug(self, model: str) -> str:
        entry, exact = self._try_exact_model(model, lowercase_first=True)
        if exact and entry.slug:
            return entry.slug
        if not exact:
            for _, wildcard_entry in self._wildcard_entries(model):
                if wildcard_entry.slug:
                    return wildcard_entry.slug
        return model.lower().replace(" ", "-")

    def get_site_slug(self, site_name: str) -> str:
        override = self.mappings.site_overrides.get(site_name)
        if override:
            return override
        return site_name.lower().replace(" ", "-").replace("_", "-")

    def _try_exact_model(self, model: str, lowercase_first: bool) -> tuple[DeviceTypeMapping, bool]:
        candidates = [model.lower(), model] if lowercase_first else [model, model.lower()]
        for candidate in candidates:
            entry = self.mappings.device_types.get(candidate)
            if entry is not None:
                return entry, True
        return DeviceTypeMapping(), False

    def _wildcard_entries(self, model: str):
        lowered = model.lower()
        for pattern, entry in self.mappings.device_types.items():
            if not pattern.endswith(WILDCARD):
                continue
            if lowered.startswith(pattern[: -len(WILDCARD)].lower()):
                yield pattern, entry

    # -- interfaces --------------------------------------------------------

    def resolve_interface(
        self,
        interface_id: str,
        override: NetBoxDeviceExtension | None = None,
        include_defaults: bool = True,
    ) -> InterfaceMapping:
        """Return the effective name/type for ``interface_id``.

        Each field is taken from the per-device override, then the global
        mapping, then the built-in defaults. Fields may stay empty when
        ``include_defaults`` is false.
        """
        layers = []
        if override is not None:
            layers.append(override.interfaces.get(interface_id))
        layers.append(self.mappings.interfaces.get(interface_id))
        if include_defaults:
            layers.append(self.mappings.default_interfaces.get(interface_id))

        name = next((layer.name for layer in layers if layer is not None and layer.name), "")
        iface_type = next((layer.type for layer in layers if layer is not None and layer.type), "")
        return InterfaceMapping(name=name, type=iface_type)
