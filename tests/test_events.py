from __future__ import annotations

import asyncio
import logging

import pytest

from pyechoconnect.events import EchoEvent, EventBus, PushConnected, PushDisconnected, VolumeChanged
from pyechoconnect.exceptions import EchoTimeoutError


def test_subscribe_to_base_class_receives_everything() -> None:
    bus = EventBus()
    seen: list[EchoEvent] = []
    bus.subscribe(EchoEvent, seen.append)

    bus.publish(PushConnected())
    bus.publish(VolumeChanged(serial="S1", volume=20))

    assert [type(event) for event in seen] == [PushConnected, VolumeChanged]


def test_failing_handler_does_not_stop_delivery(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    seen: list[PushConnected] = []

    def _broken(_event: PushConnected) -> None:
        raise RuntimeError("handler bug")

    bus.subscribe(PushConnected, _broken)
    bus.subscribe(PushConnected, seen.append)

    with caplog.at_level(logging.ERROR, logger="pyechoconnect.events"):
        bus.publish(PushConnected())

    assert len(seen) == 1
    assert "Event handler failed for PushConnected" in caplog.text


def test_unsubscribe_removes_handler() -> None:
    bus = EventBus()
    seen: list[PushConnected] = []
    unsubscribe = bus.subscribe(PushConnected, seen.append)

    unsubscribe()
    unsubscribe()
    bus.publish(PushConnected())

    assert seen == []
    assert bus.handler_count() == 0


@pytest.mark.asyncio
async def test_wait_for_matches_predicate() -> None:
    bus = EventBus()
    waiter = bus.wait_for(VolumeChanged, predicate=lambda event: event.serial == "S2", timeout=1.0)

    bus.publish(VolumeChanged(serial="S1", volume=10))
    bus.publish(VolumeChanged(serial="S2", volume=30))

    event = await waiter
    assert event.serial == "S2"
    assert event.volume == 30
    assert bus.handler_count(VolumeChanged) == 0


@pytest.mark.asyncio
async def test_wait_for_sees_event_published_before_first_await() -> None:
    bus = EventBus()
    waiter = bus.wait_for(PushDisconnected, timeout=1.0)
    bus.publish(PushDisconnected(will_reconnect=True, reason="network"))

    event = await waiter
    assert event.will_reconnect is True
    assert event.reason == "network"


@pytest.mark.asyncio
async def test_wait_for_times_out() -> None:
    bus = EventBus()
    with pytest.raises(EchoTimeoutError):
        await bus.wait_for(PushConnected, timeout=0.01)
    assert bus.handler_count() == 0


@pytest.mark.asyncio
async def test_cancelled_wait_unsubscribes() -> None:
    bus = EventBus()
    waiter = bus.wait_for(PushConnected, timeout=5.0)
    assert bus.handler_count(PushConnected) == 1

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert bus.handler_count(PushConnected) == 0
