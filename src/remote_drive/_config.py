"""Configuration: driver definitions, mount profiles and typed Quqi options.

Configs are usually loaded from a TOML/JSON file shaped like::

    [drivers.home]
    type = "quqi"
    phone = 13800000000
    password = "..."

    [mounts]
    photos = { driver = "home", root_id = "1024", read_only = true }
    everything = "home"
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

# Option values never shown in reprs or error messages.
_MASKED_OPTIONS = frozenset({"password", "cookie", "phone"})


def _masked(options: Mapping[str, object]) -> dict[str, object]:
    return {k: ("***" if k in _MASKED_OPTIONS else v) for k, v in options.items()}


@dataclasses.dataclass(frozen=True)
class QuqiOptions:
    """Validated constructor options of :class:`~remote_drive.drivers.QuqiDriver`.

    Values coming from config files are coerced: a phone number written as an
    integer becomes a string, as does a numeric ``root_id``.
    """

    phone: str | None = None
    password: str | None = None
    cookie: str | None = None
    root_id: str = "0"
    timeout: float = 30.0
    client_options: dict[str, Any] | None = None
    storage_endpoint_url: str | None = None
    storage_region: str | None = None
    storage_options: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not self.cookie and not (self.phone and self.password):
            raise ValueError("quqi driver needs a cookie or both phone and password")
        if not self.root_id.isdigit():
            raise ValueError(f"quqi root_id must be a numeric node id, got {self.root_id!r}")
        if self.timeout <= 0:
            raise ValueError(f"quqi timeout must be positive, got {self.timeout}")

    def __repr__(self) -> str:
        return f"QuqiOptions(root_id={self.root_id!r}, timeout={self.timeout})"

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> QuqiOptions:
        """Validate raw options from a :class:`DriverConfig`.

        :raises ValueError: On unknown keys, wrongly typed values or missing credentials.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ValueError(f"Unknown quqi options {unknown}; expected some of {sorted(known)}")

        kwargs: dict[str, Any] = {}
        for name in ("phone", "password", "cookie", "storage_endpoint_url", "storage_region"):
            value = options.get(name)
            if value is not None:
                kwargs[name] = str(value)
        if "root_id" in options:
            kwargs["root_id"] = str(options["root_id"])
        if "timeout" in options:
            timeout = options["timeout"]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise ValueError(f"quqi timeout must be a number, got {type(timeout).__name__}")
            kwargs["timeout"] = float(timeout)
        for name in ("client_options", "storage_options"):
            value = options.get(name)
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ValueError(f"quqi {name} must be a table/dict, got {type(value).__name__}")
            kwargs[name] = dict(value)
        return cls(**kwargs)

    def as_kwargs(self) -> dict[str, Any]:
        """Constructor keyword arguments, leaving out unset options."""
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self) if getattr(self, f.name) is not None}


# Option schemas checked when a registry config is validated.
_OPTION_SCHEMAS: dict[str, type[QuqiOptions]] = {"quqi": QuqiOptions}


@dataclasses.dataclass(frozen=True)
class DriverConfig:
    """One configured driver instance.

    :param type: Registered driver type (e.g. ``"quqi"``).
    :param options: Driver constructor options.
    """

    type: str
    options: dict[str, object] = dataclasses.field(default_factory=dict)

    def __repr__(self) -> str:
        return f"DriverConfig(type={self.type!r}, options={_masked(self.options)!r})"

    def validate(self) -> None:
        """Check the options of driver types with a known schema.

        :raises ValueError: If the options would not construct the driver.
        """
        schema = _OPTION_SCHEMAS.get(self.type)
        if schema is not None:
            schema.from_options(self.options)


@dataclasses.dataclass(frozen=True)
class MountProfile:
    """A named mount over a configured driver.

    :param driver: Name of the :class:`DriverConfig` to use.
    :param root_id: Root folder node id; empty means the driver's own root.
    :param read_only: Allow only listing and link resolution.
    """

    driver: str
    root_id: str = ""
    read_only: bool = False


@dataclasses.dataclass(frozen=True)
class RegistryConfig:
    """Drivers and the mounts over them.

    :param drivers: Driver configs by name.
    :param mounts: Mount profiles by name.
    """

    drivers: dict[str, DriverConfig] = dataclasses.field(default_factory=dict)
    mounts: dict[str, MountProfile] = dataclasses.field(default_factory=dict)

    def validate(self) -> None:
        """Check mount references and driver options.

        :raises ValueError: If a mount names an unknown driver or a driver's options are invalid.
        """
        for mount_name, profile in self.mounts.items():
            if profile.driver not in self.drivers:
                raise ValueError(
                    f"Mount '{mount_name}' references unknown driver '{profile.driver}'. "
                    f"Available drivers: {sorted(self.drivers)}"
                )
        for driver_name, cfg in self.drivers.items():
            try:
                cfg.validate()
            except ValueError as exc:
                raise ValueError(f"Driver '{driver_name}': {exc}") from exc

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RegistryConfig:
        """Build from parsed TOML/JSON.

        Driver options may sit inline next to ``type`` or under an ``options``
        table. A mount may be given as just the driver name.

        :raises TypeError: If a section or entry has the wrong shape.
        :raises ValueError: If a driver entry has no ``type``.
        """
        raw_drivers = data.get("drivers", {})
        raw_mounts = data.get("mounts", {})
        if not isinstance(raw_drivers, dict) or not isinstance(raw_mounts, dict):
            raise TypeError("Expected 'drivers' and 'mounts' to be tables/dicts")

        drivers: dict[str, DriverConfig] = {}
        for name, entry in raw_drivers.items():
            if not isinstance(entry, dict):
                raise TypeError(f"Driver '{name}' must be a table/dict")
            if "type" not in entry:
                raise ValueError(f"Driver '{name}' has no 'type'")
            options = dict(entry.get("options", {}))
            options.update({k: v for k, v in entry.items() if k not in ("type", "options")})
            drivers[str(name)] = DriverConfig(type=str(entry["type"]), options=options)

        mounts: dict[str, MountProfile] = {}
        for name, entry in raw_mounts.items():
            if isinstance(entry, str):
                mounts[str(name)] = MountProfile(driver=entry)
                continue
            if not isinstance(entry, dict):
                raise TypeError(f"Mount '{name}' must be a driver name or a table/dict")
            mounts[str(name)] = MountProfile(
                driver=str(entry["driver"]),
                root_id=str(entry.get("root_id", "")),
                read_only=bool(entry.get("read_only", False)),
            )

        return cls(drivers=drivers, mounts=mounts)
