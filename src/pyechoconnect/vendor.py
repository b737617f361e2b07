"""Vendor link capability surface.

The core never talks to the cloud directly.  Everything goes through a
:class:`VendorLink`: command/response calls plus a listener registry for
asynchronous telemetry.  :class:`pyechoconnect.link.AlexaHttpLink` is the
production implementation; tests supply an in-memory one.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from pyechoconnect.ingestion.normalize import extract_serial, safe_bool, safe_str
from pyechoconnect.models.device import DeviceRecord, DeviceVolume
from pyechoconnect.models.notification import Notification
from pyechoconnect.models.player import PlayerInfo
from pyechoconnect.models.routine import Routine
from pyechoconnect.session import SessionConfig


class VendorEventKind(StrEnum):
    CREDENTIAL_REFRESHED = "credential_refreshed"
    CONNECT = "connect"
    DISCONNECT = "disconnect"
    VOLUME_CHANGE = "volume_change"
    EQUALIZER_STATE_CHANGE = "equalizer_state_change"
    AUDIO_PLAYER_STATE_CHANGE = "audio_player_state_change"
    MEDIA_QUEUE_CHANGE = "media_queue_change"


@dataclass(frozen=True)
class VendorEvent:
    """Raw telemetry event as delivered by the vendor link."""

    kind: VendorEventKind
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def serial(self) -> str | None:
        return extract_serial(self.payload)

    @property
    def will_reconnect(self) -> bool:
        """Only meaningful for ``DISCONNECT``."""
        return bool(safe_bool(self.payload.get("willReconnect")))

    @property
    def reason(self) -> str:
        """Only meaningful for ``DISCONNECT``."""
        return safe_str(self.payload.get("reason")) or ""


VendorListener = Callable[[VendorEvent], None]


class VendorLink(Protocol):
    """Command/response calls and telemetry source offered by the vendor."""

    async def init(self, config: SessionConfig) -> None: ...

    async def get_devices(self) -> list[DeviceRecord]: ...

    async def send_sequence_command(self, serial: str, command: str, value: Any) -> Any: ...

    async def send_command(self, serial: str, command: str, value: Any) -> Any: ...

    async def get_all_device_volumes(self) -> list[DeviceVolume]: ...

    async def check_authentication(self) -> bool: ...

    async def init_push_connection(self) -> None: ...

    async def stop(self) -> None: ...

    def is_push_connected(self) -> bool: ...

    async def get_player_info(self, serial: str) -> PlayerInfo | None: ...

    async def get_routines(self, limit: int) -> list[Routine]: ...

    async def execute_routine(self, serial: str, routine: Routine) -> Any: ...

    async def create_notification(
        self,
        serial: str,
        notification_type: str,
        label: str,
        when_ms: int,
        status: str,
    ) -> Notification | None: ...

    async def get_display_power(self, serial: str) -> bool | None: ...

    async def set_display_power(self, serial: str, enabled: bool) -> Any: ...

    def add_listener(self, listener: VendorListener) -> Callable[[], None]: ...


class PushChannel(Protocol):
    """Streaming push transport used by :class:`~pyechoconnect.link.AlexaHttpLink`.

    ``connect`` receives the active session and a callback through which
    the channel delivers ``CONNECT``, ``DISCONNECT`` and telemetry events.
    """

    async def connect(self, session: SessionConfig, emit: VendorListener) -> None: ...

    async def disconnect(self) -> None: ...

    def is_connected(self) -> bool: ...
