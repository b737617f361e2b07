"""In-memory stand-ins shared by the test modules."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pyechoconnect.events import EchoEvent, EventBus
from pyechoconnect.exceptions import EchoAuthenticationError
from pyechoconnect.models.device import DeviceRecord, DeviceVolume
from pyechoconnect.models.notification import Notification
from pyechoconnect.models.player import PlayerInfo
from pyechoconnect.models.routine import Routine
from pyechoconnect.session import SessionConfig
from pyechoconnect.vendor import VendorEvent, VendorEventKind, VendorListener

KITCHEN = "G090LF1234567890"
LIVING_ROOM = "G2A0V71234567890"
OFFICE = "G6G0XG1234567890"

CREDENTIAL = {"loginCookie": "session-id=abc; ubid-main=123", "csrf": "csrf-1"}


@dataclass(order=True)
class _Timer:
    when: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class FakeClock:
    """Manually advanced clock; timers fire in due order inside :meth:`advance`."""

    def __init__(self, start: float = 1000.0) -> None:
        self._now = start
        self._seq = 0
        self._timers: list[_Timer] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        self._seq += 1
        timer = _Timer(when=self._now + max(delay, 0.0), seq=self._seq, callback=callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[_Timer]:
        return sorted(timer for timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while True:
            due = [timer for timer in self.pending if timer.when <= target]
            if not due:
                break
            timer = due[0]
            self._timers.remove(timer)
            self._now = timer.when
            timer.callback()
        self._timers = [timer for timer in self._timers if not timer.cancelled]
        self._now = target


class FakeVendorLink:
    """In-memory vendor link recording every call."""

    def __init__(self, devices: list[DeviceRecord] | None = None) -> None:
        self.devices = list(devices or [])
        self.authenticated = True
        self.push_connected = False
        self.init_error: BaseException | None = None
        self.devices_error: BaseException | None = None
        self.auth_error: BaseException | None = None
        self.push_error: BaseException | None = None
        self.command_error: BaseException | None = None
        self.auth_gate: asyncio.Event | None = None
        self.volumes: list[DeviceVolume] = []
        self.player_info: dict[str, PlayerInfo | None] = {}
        self.player_error: BaseException | None = None
        self.routines: list[Routine] = []
        self.notification: Notification | None = None
        self.display_power: dict[str, bool | None] = {}
        self.after_command: Callable[[str, str, Any], None] | None = None
        self.init_configs: list[SessionConfig] = []
        self.calls: list[tuple[Any, ...]] = []
        self.auth_checks = 0
        self.push_starts = 0
        self._listeners: list[VendorListener] = []

    def add_listener(self, listener: VendorListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def emit(self, kind: VendorEventKind, payload: dict[str, Any] | None = None) -> None:
        event = VendorEvent(kind, payload or {})
        for listener in list(self._listeners):
            listener(event)

    def emit_for(self, kind: VendorEventKind, serial: str, **payload: Any) -> None:
        self.emit(kind, {"dopplerId": {"deviceSerialNumber": serial, "deviceType": "A3S5BH2HU6VAYF"}, **payload})

    async def init(self, config: SessionConfig) -> None:
        self.init_configs.append(config)
        if config.proxy_only:
            raise EchoAuthenticationError("No usable credential; a new login is required")
        if self.init_error is not None:
            raise self.init_error

    async def get_devices(self) -> list[DeviceRecord]:
        if self.devices_error is not None:
            raise self.devices_error
        return list(self.devices)

    def _command(self, *call: Any) -> None:
        self.calls.append(call)
        if self.command_error is not None:
            raise self.command_error

    async def send_sequence_command(self, serial: str, command: str, value: Any) -> Any:
        self._command("sequence", serial, command, value)
        if self.after_command is not None:
            self.after_command(serial, command, value)
        return {"ok": True}

    async def send_command(self, serial: str, command: str, value: Any) -> Any:
        self._command("player", serial, command, value)
        if self.after_command is not None:
            self.after_command(serial, command, value)
        return {"ok": True}

    async def get_all_device_volumes(self) -> list[DeviceVolume]:
        self._command("volumes")
        return list(self.volumes)

    async def check_authentication(self) -> bool:
        self.auth_checks += 1
        if self.auth_gate is not None:
            await self.auth_gate.wait()
        if self.auth_error is not None:
            raise self.auth_error
        return self.authenticated

    async def init_push_connection(self) -> None:
        self.push_starts += 1
        if self.push_error is not None:
            raise self.push_error
        self.push_connected = True
        self.emit(VendorEventKind.CONNECT)

    async def stop(self) -> None:
        self.push_connected = False

    def is_push_connected(self) -> bool:
        return self.push_connected

    async def get_player_info(self, serial: str) -> PlayerInfo | None:
        self.calls.append(("player_info", serial))
        if self.player_error is not None:
            raise self.player_error
        return self.player_info.get(serial)

    async def get_routines(self, limit: int) -> list[Routine]:
        self._command("routines", limit)
        return list(self.routines)

    async def execute_routine(self, serial: str, routine: Routine) -> Any:
        self._command("routine", serial, routine.automation_id)
        return {"ok": True}

    async def create_notification(
        self,
        serial: str,
        notification_type: str,
        label: str,
        when_ms: int,
        status: str,
    ) -> Notification | None:
        self._command("notification", serial, notification_type, label, when_ms, status)
        return self.notification

    async def get_display_power(self, serial: str) -> bool | None:
        self._command("display_power", serial)
        return self.display_power.get(serial)

    async def set_display_power(self, serial: str, enabled: bool) -> Any:
        self._command("set_display_power", serial, enabled)
        return {"ok": True}


def make_device(serial: str, name: str = "Echo", *, family: str = "ECHO", online: bool = True) -> DeviceRecord:
    return DeviceRecord.model_validate(
        {
            "serialNumber": serial,
            "accountName": name,
            "deviceFamily": family,
            "deviceType": "A3S5BH2HU6VAYF",
            "online": online,
            "deviceOwnerCustomerId": "A1CUSTOMER",
        }
    )


def collect(bus: EventBus, event_type: type[EchoEvent]) -> list[Any]:
    received: list[Any] = []
    bus.subscribe(event_type, received.append)
    return received


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
