"""Driver test fixtures: the fake Quqi API and a moto server for object storage."""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING, Any

import pytest

from remote_drive.drivers._quqi import QuqiDriver
from tests.drivers.fake_quqi import FakeQuqi

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture()
def fake_quqi() -> FakeQuqi:
    return FakeQuqi()


@pytest.fixture()
def make_driver(fake_quqi: FakeQuqi) -> Iterator[Callable[..., QuqiDriver]]:
    """Factory for drivers talking to ``fake_quqi``; closes them afterwards."""
    created: list[QuqiDriver] = []

    def _make(**kwargs: Any) -> QuqiDriver:
        if "cookie" not in kwargs and "phone" not in kwargs:
            kwargs["cookie"] = "quqi_sid=configured"
        kwargs.setdefault("client_options", {"transport": fake_quqi.transport})
        driver = QuqiDriver(**kwargs)
        created.append(driver)
        return driver

    yield _make
    for driver in created:
        driver.close()


@pytest.fixture()
def quqi_driver(make_driver: Callable[..., QuqiDriver]) -> QuqiDriver:
    """A cookie-authenticated driver with its session already open."""
    driver = make_driver()
    driver.init()
    return driver


def _s3_available() -> bool:
    try:
        import boto3  # noqa: F401
        import moto  # noqa: F401

        return True
    except ImportError:
        return False


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("", 0))
        return s.getsockname()[1]


@pytest.fixture(scope="session")
def moto_server() -> Iterator[str | None]:
    """Start a moto HTTP server standing in for the object storage."""
    if not _s3_available():
        yield None
        return
    from moto.moto_server.threaded_moto_server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()
