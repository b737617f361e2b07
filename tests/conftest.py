from __future__ import annotations

import pytest

from _fakes import KITCHEN, LIVING_ROOM, OFFICE, FakeClock, FakeVendorLink, make_device
from pyechoconnect.config import EchoConfig
from pyechoconnect.models.device import DeviceRecord


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def devices() -> list[DeviceRecord]:
    return [
        make_device(KITCHEN, "Kitchen"),
        make_device(LIVING_ROOM, "Living Room", family="KNIGHT"),
        make_device(OFFICE, "Office", online=False),
    ]


@pytest.fixture
def link(devices: list[DeviceRecord]) -> FakeVendorLink:
    return FakeVendorLink(devices)


@pytest.fixture
def config() -> EchoConfig:
    return EchoConfig(proxy_own_ip="192.168.1.10", event_wait_timeout=1.0)
