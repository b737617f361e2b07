"""Push channel lifecycle."""

from __future__ import annotations

import logging

from pyechoconnect.events import EventBus, PushConnected, PushDisconnected
from pyechoconnect.exceptions import EchoPushError
from pyechoconnect.vendor import VendorEvent, VendorEventKind, VendorLink

_logger = logging.getLogger(__name__)

MANUAL_STOP_REASON = "manual"


class PushSupervisor:
    """Starts and stops the vendor push channel and relays its lifecycle."""

    def __init__(self, *, link: VendorLink, bus: EventBus) -> None:
        self._link = link
        self._bus = bus

    async def start(self) -> None:
        try:
            await self._link.init_push_connection()
        except EchoPushError:
            raise
        except Exception as exc:
            raise EchoPushError("Error initializing push updates", cause=exc) from exc
        _logger.debug("Push connection initialized")

    async def stop(self) -> None:
        await self._link.stop()
        _logger.info("Push connection stopped manually")
        self._bus.publish(PushDisconnected(will_reconnect=False, reason=MANUAL_STOP_REASON))

    def is_connected(self) -> bool:
        return self._link.is_push_connected() is True

    def handle(self, event: VendorEvent) -> None:
        if event.kind == VendorEventKind.CONNECT:
            _logger.info("Push connected")
            self._bus.publish(PushConnected())
        elif event.kind == VendorEventKind.DISCONNECT:
            _logger.info("Push disconnected (will reconnect: %s, reason: %s)", event.will_reconnect, event.reason)
            self._bus.publish(PushDisconnected(will_reconnect=event.will_reconnect, reason=event.reason))
