from __future__ import annotations

import asyncio
import logging

import pytest
from _fakes import KITCHEN, LIVING_ROOM, FakeVendorLink, collect, make_device, settle

from pyechoconnect.events import EventBus, PlayerChanged, QueueChanged, VolumeChanged
from pyechoconnect.ingestion.telemetry import StateSynchronizer, build_player_detail
from pyechoconnect.models.player import PlayerInfo
from pyechoconnect.state.registry import DeviceRegistry
from pyechoconnect.vendor import VendorEvent, VendorEventKind


def _player_info(state: str = "PLAYING", *, members: dict[str, object] | None = None) -> PlayerInfo:
    info: dict[str, object] = {
        "state": state,
        "mediaId": "media-1",
        "infoText": {"title": "Song", "subText1": "Artist", "subText2": "Album"},
        "mainArt": {"url": "https://example.invalid/art.jpg"},
        "volume": {"volume": 35},
        "transport": {"shuffle": "ENABLED", "repeat": "DISABLED"},
    }
    if members is not None:
        info["lemurVolume"] = {"memberVolume": members}
    return PlayerInfo.model_validate({"playerInfo": info})


def _setup(link: FakeVendorLink) -> tuple[StateSynchronizer, EventBus]:
    registry = DeviceRegistry()
    registry.replace([make_device(KITCHEN), make_device(LIVING_ROOM)])
    bus = EventBus()
    return StateSynchronizer(registry=registry, link=link, bus=bus), bus


def _event(kind: VendorEventKind, serial: str, **payload: object) -> VendorEvent:
    return VendorEvent(kind, {"dopplerId": {"deviceSerialNumber": serial}, **payload})


def test_player_info_parsing() -> None:
    info = _player_info(members={"S1": {}, "S2": {}})
    assert info.playing is True
    assert info.track.title == "Song"
    assert info.track.artist == "Artist"
    assert info.volume == 35
    assert info.shuffle is True
    assert info.repeat == "none"
    assert info.group_members == ("S1", "S2")


def test_build_player_detail_without_lookup_uses_payload() -> None:
    detail = build_player_detail(
        KITCHEN,
        {"audioPlayerState": "PLAYING", "mediaReferenceId": "ref-1", "error": "boom"},
        None,
    )
    assert detail.playing is True
    assert detail.media_id == "ref-1"
    assert detail.error == "boom"


def test_group_detail_concerns_members_only() -> None:
    detail = build_player_detail("GROUP", {}, _player_info(members={KITCHEN: {}}))
    assert detail.is_playing_in_group is True
    assert detail.concerns(KITCHEN)
    assert not detail.concerns("GROUP")


@pytest.mark.asyncio
async def test_volume_change_is_published_and_cached(link: FakeVendorLink) -> None:
    synchronizer, bus = _setup(link)
    changes = collect(bus, VolumeChanged)

    synchronizer.handle(_event(VendorEventKind.VOLUME_CHANGE, KITCHEN, volumeSetting=42, isMuted=False))
    synchronizer.handle(_event(VendorEventKind.VOLUME_CHANGE, KITCHEN))

    assert [(event.serial, event.volume) for event in changes] == [(KITCHEN, 42)]
    assert synchronizer.last_volume(KITCHEN) == 42


@pytest.mark.asyncio
async def test_unknown_serial_is_ignored(link: FakeVendorLink) -> None:
    synchronizer, bus = _setup(link)
    seen = collect(bus, VolumeChanged)

    synchronizer.handle(_event(VendorEventKind.VOLUME_CHANGE, "UNKNOWN", volumeSetting=42))
    synchronizer.handle(_event(VendorEventKind.AUDIO_PLAYER_STATE_CHANGE, "UNKNOWN"))
    await synchronizer.drain()

    assert seen == []
    assert link.calls == []
    assert synchronizer.update_volume("UNKNOWN", 10) is False


@pytest.mark.asyncio
async def test_player_change_looks_up_player(link: FakeVendorLink) -> None:
    link.player_info[KITCHEN] = _player_info()
    synchronizer, bus = _setup(link)
    changes = collect(bus, PlayerChanged)

    synchronizer.handle(_event(VendorEventKind.AUDIO_PLAYER_STATE_CHANGE, KITCHEN, audioPlayerState="PLAYING"))
    await synchronizer.drain()

    assert len(changes) == 1
    detail = changes[0].detail
    assert detail.serial == KITCHEN
    assert detail.playing is True
    assert detail.media_id == "media-1"
    assert detail.track.album == "Album"


@pytest.mark.asyncio
async def test_player_lookups_for_one_serial_run_in_order(link: FakeVendorLink) -> None:
    gate = asyncio.Event()
    started: list[str] = []
    original = link.get_player_info

    async def _slow_lookup(serial: str) -> PlayerInfo | None:
        started.append(serial)
        if len(started) == 1:
            await gate.wait()
        return await original(serial)

    link.get_player_info = _slow_lookup  # type: ignore[method-assign]
    synchronizer, bus = _setup(link)
    changes = collect(bus, PlayerChanged)

    synchronizer.handle(_event(VendorEventKind.AUDIO_PLAYER_STATE_CHANGE, KITCHEN, mediaReferenceId="first"))
    synchronizer.handle(_event(VendorEventKind.AUDIO_PLAYER_STATE_CHANGE, KITCHEN, mediaReferenceId="second"))
    await settle()

    assert started == [KITCHEN]

    gate.set()
    await synchronizer.drain()

    assert started == [KITCHEN, KITCHEN]
    assert [change.detail.media_id for change in changes] == ["first", "second"]


@pytest.mark.asyncio
async def test_player_lookup_failure_is_logged(link: FakeVendorLink, caplog: pytest.LogCaptureFixture) -> None:
    link.player_error = RuntimeError("lookup failed")
    synchronizer, bus = _setup(link)
    changes = collect(bus, PlayerChanged)

    with caplog.at_level(logging.WARNING, logger="pyechoconnect.ingestion.telemetry"):
        synchronizer.handle(_event(VendorEventKind.AUDIO_PLAYER_STATE_CHANGE, KITCHEN))
        await synchronizer.drain()

    assert changes == []
    assert f"Player lookup failed for {KITCHEN}" in caplog.text


@pytest.mark.asyncio
async def test_queue_status_change_is_published(link: FakeVendorLink) -> None:
    synchronizer, bus = _setup(link)
    changes = collect(bus, QueueChanged)

    synchronizer.handle(
        _event(
            VendorEventKind.MEDIA_QUEUE_CHANGE,
            KITCHEN,
            changeType="STATUS_CHANGED",
            playBackOrder="SHUFFLE_ALL",
            loopMode="LOOP_QUEUE",
        )
    )
    synchronizer.handle(_event(VendorEventKind.MEDIA_QUEUE_CHANGE, KITCHEN, changeType="NEW_QUEUE"))

    assert len(changes) == 1
    detail = changes[0].detail
    assert detail.serial == KITCHEN
    assert detail.shuffle is True
    assert detail.repeat == "track"
