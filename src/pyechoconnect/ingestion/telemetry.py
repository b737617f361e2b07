"""Telemetry -> domain event normalization.

Turns raw vendor telemetry into :class:`~pyechoconnect.events.VolumeChanged`,
:class:`~pyechoconnect.events.PlayerChanged` and
:class:`~pyechoconnect.events.QueueChanged`.  Only devices present in the
registry produce events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pyechoconnect._constants import PLAYER_STATE_PLAYING, QUEUE_STATUS_CHANGED
from pyechoconnect._redact import redact_for_log
from pyechoconnect.events import EventBus, PlayerChanged, QueueChanged, VolumeChanged
from pyechoconnect.ingestion.normalize import safe_int, safe_str
from pyechoconnect.models.player import PlayerDetail, PlayerInfo, QueueDetail, TrackInfo
from pyechoconnect.state.registry import DeviceRegistry
from pyechoconnect.vendor import VendorEvent, VendorEventKind, VendorLink

_logger = logging.getLogger(__name__)


def build_player_detail(serial: str, payload: dict[str, Any], info: PlayerInfo | None) -> PlayerDetail:
    """Merge an audio-player telemetry payload with the player lookup result."""
    error = safe_str(payload.get("errorMessage")) or safe_str(payload.get("error"))
    if info is None:
        return PlayerDetail(
            serial=serial,
            media_id=safe_str(payload.get("mediaReferenceId")),
            playing=safe_str(payload.get("audioPlayerState")) == PLAYER_STATE_PLAYING,
            error=error,
        )
    return PlayerDetail(
        serial=serial,
        media_id=info.media_id or safe_str(payload.get("mediaReferenceId")),
        playing=info.playing,
        track=info.track if info.has_media else TrackInfo(),
        is_playing_in_group=bool(info.group_members),
        group_members=info.group_members,
        error=error,
    )


class StateSynchronizer:
    """Publishes normalized state changes for registry devices.

    Player lookups for one serial run strictly one after another, in the
    order their telemetry arrived.
    """

    def __init__(self, *, registry: DeviceRegistry, link: VendorLink, bus: EventBus) -> None:
        self._registry = registry
        self._link = link
        self._bus = bus
        self._volumes: dict[str, int] = {}
        self._chains: dict[str, asyncio.Task[None]] = {}

    def last_volume(self, serial: str) -> int | None:
        return self._volumes.get(serial)

    def update_volume(self, serial: str, volume: int) -> bool:
        """Cache *volume* for *serial*; ``False`` when the device is unknown."""
        if serial not in self._registry:
            _logger.debug("No device found for serial %s", serial)
            return False
        self._volumes[serial] = volume
        return True

    def handle(self, event: VendorEvent) -> None:
        serial = event.serial
        if serial is None or serial not in self._registry:
            return

        if event.kind == VendorEventKind.VOLUME_CHANGE:
            self._on_volume(serial, event.payload)
        elif event.kind == VendorEventKind.AUDIO_PLAYER_STATE_CHANGE:
            self._enqueue(serial, lambda: self._on_player_state(serial, event.payload))
        elif event.kind == VendorEventKind.MEDIA_QUEUE_CHANGE:
            self._on_queue(event.payload)

    def _on_volume(self, serial: str, payload: dict[str, Any]) -> None:
        volume = safe_int(payload.get("volumeSetting"))
        if volume is None:
            _logger.debug("Volume change without volumeSetting: %s", redact_for_log(payload))
            return
        self.update_volume(serial, volume)
        self._bus.publish(VolumeChanged(serial=serial, volume=volume))

    async def _on_player_state(self, serial: str, payload: dict[str, Any]) -> None:
        try:
            info = await self._link.get_player_info(serial)
        except Exception:
            _logger.warning("Player lookup failed for %s", serial, exc_info=True)
            return
        self._bus.publish(PlayerChanged(detail=build_player_detail(serial, payload, info)))

    def _on_queue(self, payload: dict[str, Any]) -> None:
        if payload.get("changeType") != QUEUE_STATUS_CHANGED:
            return
        try:
            detail = QueueDetail.model_validate(payload)
        except ValueError:
            _logger.debug("Unparseable queue change: %s", redact_for_log(payload), exc_info=True)
            return
        self._bus.publish(QueueChanged(detail=detail))

    # ------------------------------------------------------------------
    # Per-serial ordering
    # ------------------------------------------------------------------

    def _enqueue(self, serial: str, work: Callable[[], Awaitable[None]]) -> None:
        previous = self._chains.get(serial)

        async def _run() -> None:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            await work()

        task = asyncio.get_running_loop().create_task(_run())
        self._chains[serial] = task

        def _done(finished: asyncio.Task[None]) -> None:
            if self._chains.get(serial) is finished:
                del self._chains[serial]

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait until every queued lookup has finished."""
        while self._chains:
            await asyncio.wait(list(self._chains.values()))

    def cancel_pending(self) -> None:
        for task in self._chains.values():
            task.cancel()
        self._chains.clear()
