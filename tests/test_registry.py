"""Tests for the registry: driver types, sharing, session opening and lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from remote_drive._capabilities import Capability
from remote_drive._config import DriverConfig, MountProfile, RegistryConfig
from remote_drive._errors import CapabilityNotSupported
from remote_drive._mount import Mount
from remote_drive._registry import _DRIVER_TYPES, Registry, register_driver
from remote_drive.drivers._quqi import QuqiDriver
from tests.memory_driver import MemoryDriver

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def memory_driver_type() -> Iterator[None]:
    register_driver("memory", MemoryDriver)
    yield
    _DRIVER_TYPES.pop("memory", None)


def _make_config() -> RegistryConfig:
    return RegistryConfig(
        drivers={
            "mem": DriverConfig(type="memory", options={"root_id": "r"}),
            "spare": DriverConfig(type="memory"),
        },
        mounts={
            "main": MountProfile(driver="mem"),
            "sub": MountProfile(driver="mem", root_id="7"),
            "archive": MountProfile(driver="mem", read_only=True),
        },
    )


class TestConstruction:
    def test_validates_mount_references(self) -> None:
        with pytest.raises(ValueError, match="nonexistent"):
            Registry(RegistryConfig(mounts={"main": MountProfile(driver="nonexistent")}))

    def test_unknown_driver_type_fails_up_front(self) -> None:
        config = RegistryConfig(drivers={"x": DriverConfig(type="ftp")})
        with pytest.raises(ValueError, match="ftp"):
            Registry(config)

    def test_invalid_quqi_options_fail_up_front(self) -> None:
        config = RegistryConfig(drivers={"home": DriverConfig(type="quqi", options={"phone": "13800000000"})})
        with pytest.raises(ValueError, match="password"):
            Registry(config)

    def test_empty(self) -> None:
        assert repr(Registry()) == "Registry(mounts=[], open_drivers=[])"

    def test_quqi_is_builtin(self) -> None:
        Registry()
        assert _DRIVER_TYPES["quqi"] is QuqiDriver


class TestGetMount:
    def test_returns_mount(self) -> None:
        mount = Registry(_make_config()).get_mount("main")
        assert isinstance(mount, Mount)
        assert mount.root.id == "r"

    def test_root_override(self) -> None:
        assert Registry(_make_config()).get_mount("sub").root.id == "7"

    def test_read_only_profile(self) -> None:
        mount = Registry(_make_config()).get_mount("archive")
        assert mount.read_only
        with pytest.raises(CapabilityNotSupported):
            mount.make_dir(None, "new")
        assert mount.supports(Capability.LIST)

    def test_unknown_mount(self) -> None:
        with pytest.raises(KeyError, match="unknown_mount"):
            Registry(_make_config()).get_mount("unknown_mount")

    def test_lazy_and_shared(self) -> None:
        reg = Registry(_make_config())
        assert reg._drivers == {}
        reg.get_mount("main")
        reg.get_mount("sub")
        assert list(reg._drivers) == ["mem"]

    def test_bad_options_for_generic_driver(self) -> None:
        config = RegistryConfig(
            drivers={"mem": DriverConfig(type="memory", options={"bogus": 1})},
            mounts={"main": MountProfile(driver="mem")},
        )
        with pytest.raises(ValueError, match="bogus"):
            Registry(config).get_mount("main")


class TestInit:
    def test_get_mount_does_not_init_by_default(self) -> None:
        reg = Registry(_make_config())
        reg.get_mount("main")
        driver = reg._drivers["mem"]
        assert isinstance(driver, MemoryDriver)
        assert driver.init_calls == 0

    def test_get_mount_with_init(self) -> None:
        reg = Registry(_make_config())
        reg.get_mount("main", init=True)
        reg.get_mount("sub", init=True)
        driver = reg._drivers["mem"]
        assert isinstance(driver, MemoryDriver)
        assert driver.init_calls == 1
        assert "open_drivers=['mem']" in repr(reg)

    def test_init_all_mounts_only_builds_used_drivers(self) -> None:
        reg = Registry(_make_config())
        reg.init()
        assert list(reg._drivers) == ["mem"]
        assert reg._drivers["mem"].init_calls == 1  # type: ignore[attr-defined]

    def test_init_named_mount(self) -> None:
        reg = Registry(_make_config())
        with pytest.raises(KeyError, match="nope"):
            reg.init("nope")
        reg.init("sub")
        assert reg._drivers["mem"].init_calls == 1  # type: ignore[attr-defined]


class TestClose:
    def test_close_closes_drivers(self) -> None:
        reg = Registry(_make_config())
        reg.get_mount("main", init=True)
        driver = reg._drivers["mem"]
        reg.close()
        assert isinstance(driver, MemoryDriver)
        assert driver.closed
        assert reg._drivers == {}
        assert reg._initialized == set()

    def test_context_manager(self) -> None:
        with Registry(_make_config()) as reg:
            reg.get_mount("main")
        assert reg._drivers == {}

    def test_failing_close_does_not_skip_others(self) -> None:
        config = RegistryConfig(
            drivers={"a": DriverConfig(type="memory"), "b": DriverConfig(type="memory")},
            mounts={"a": MountProfile(driver="a"), "b": MountProfile(driver="b")},
        )
        reg = Registry(config)
        reg.get_mount("a")
        reg.get_mount("b")
        first = reg._drivers["a"]
        second = reg._drivers["b"]
        assert isinstance(first, MemoryDriver)

        def broken_close() -> None:
            raise OSError("socket already gone")

        second.close = broken_close  # type: ignore[method-assign]
        with pytest.raises(OSError, match="already gone"):
            reg.close()
        assert first.closed
        assert reg._drivers == {}


class TestQuqiFromConfig:
    def test_builds_quqi_driver(self) -> None:
        config = RegistryConfig.from_dict(
            {
                "drivers": {"drive": {"type": "quqi", "cookie": "quqi_sid=abc", "root_id": 55}},
                "mounts": {"home": "drive"},
            }
        )
        with Registry(config) as reg:
            mount = reg.get_mount("home")
            assert repr(mount) == "Mount(driver='quqi', root_id='55')"

    def test_from_options_coerces(self) -> None:
        driver = QuqiDriver.from_options({"phone": 13800000000, "password": "pw", "root_id": 9})
        assert driver.root_id == "9"
        driver.close()

    def test_from_options_rejects_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown quqi options"):
            QuqiDriver.from_options({"cookie": "sid=1", "region": "x"})
