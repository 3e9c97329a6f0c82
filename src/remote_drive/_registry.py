"""Registry: builds configured drivers, opens their sessions and hands out mounts."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from remote_drive._config import RegistryConfig
from remote_drive._mount import Mount

if TYPE_CHECKING:
    from types import TracebackType

    from remote_drive._config import MountProfile
    from remote_drive._driver import Driver

log = logging.getLogger(__name__)

# Driver classes by config ``type``.
_DRIVER_TYPES: dict[str, type[Driver]] = {}


def register_driver(type_name: str, cls: type[Driver]) -> None:
    """Make ``cls`` available to configs as ``type = "<type_name>"``.

    The registry builds instances with :meth:`Driver.from_options`.
    """
    _DRIVER_TYPES[type_name] = cls


def _register_builtin_drivers() -> None:
    from remote_drive.drivers._quqi import QuqiDriver

    _DRIVER_TYPES.setdefault("quqi", QuqiDriver)


class Registry:
    """Owns the drivers of one configuration.

    The whole config (mount references, driver types, Quqi options) is checked
    up front. A driver is built when a mount over it is first requested and is
    shared by every mount naming it. Sessions open on a driver's first remote
    call, or eagerly through :meth:`init` / ``get_mount(..., init=True)``.

    :param config: The configuration to serve.
    :raises ValueError: If the configuration is invalid.
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        _register_builtin_drivers()
        self._config = config or RegistryConfig()
        self._config.validate()
        for name, cfg in self._config.drivers.items():
            if cfg.type not in _DRIVER_TYPES:
                raise ValueError(
                    f"Driver '{name}' has unknown type '{cfg.type}'. Registered types: {sorted(_DRIVER_TYPES)}"
                )
        self._drivers: dict[str, Driver] = {}
        self._initialized: set[str] = set()

    def __repr__(self) -> str:
        return f"Registry(mounts={sorted(self._config.mounts)!r}, open_drivers={sorted(self._initialized)!r})"

    def get_mount(self, name: str, *, init: bool = False) -> Mount:
        """Return the mount called ``name``.

        :param init: Open the driver's session now instead of on first use.
        :raises KeyError: If no mount with this name is configured.
        """
        profile = self._profile(name)
        driver = self._driver(profile.driver)
        if init:
            self._init_driver(profile.driver)
        return Mount(driver, root_id=profile.root_id, read_only=profile.read_only)

    def init(self, *mounts: str) -> None:
        """Open the sessions behind ``mounts`` (all configured mounts by default).

        Each driver is initialized at most once, however many mounts share it.

        :raises KeyError: If a mount name is not configured.
        :raises AuthenticationFailed: If a driver's credentials are rejected.
        """
        for name in mounts or sorted(self._config.mounts):
            driver_name = self._profile(name).driver
            self._driver(driver_name)
            self._init_driver(driver_name)

    def _profile(self, name: str) -> MountProfile:
        try:
            return self._config.mounts[name]
        except KeyError:
            raise KeyError(f"Unknown mount '{name}'. Available mounts: {sorted(self._config.mounts)}") from None

    def _driver(self, name: str) -> Driver:
        if name not in self._drivers:
            cfg = self._config.drivers[name]
            self._drivers[name] = _DRIVER_TYPES[cfg.type].from_options(cfg.options)
            log.debug("Built %s driver %r", cfg.type, name)
        return self._drivers[name]

    def _init_driver(self, name: str) -> None:
        if name in self._initialized:
            return
        self._drivers[name].init()
        self._initialized.add(name)
        log.info("Driver %r initialized", name)

    def close(self) -> None:
        """Close every built driver, newest first, even if one of them fails to close."""
        try:
            with contextlib.ExitStack() as stack:
                for driver in self._drivers.values():
                    stack.callback(driver.close)
        finally:
            self._drivers.clear()
            self._initialized.clear()

    def __enter__(self) -> Registry:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
