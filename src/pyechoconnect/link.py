"""Alexa web API implementation of :class:`~pyechoconnect.vendor.VendorLink`."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pyechoconnect._api import behaviors as _behaviors_api
from pyechoconnect._api import devices as _devices_api
from pyechoconnect._api import display as _display_api
from pyechoconnect._api import notifications as _notifications_api
from pyechoconnect._api import player as _player_api
from pyechoconnect._transport import AlexaTransport, parse_cookie_header
from pyechoconnect.config import EchoConfig
from pyechoconnect.exceptions import (
    EchoAuthenticationError,
    EchoInvalidSerialError,
    EchoPushError,
    EchoTransportError,
)
from pyechoconnect.models.device import DeviceRecord, DeviceVolume
from pyechoconnect.models.notification import Notification
from pyechoconnect.models.player import PlayerInfo
from pyechoconnect.models.routine import Routine
from pyechoconnect.session import SessionConfig
from pyechoconnect.vendor import PushChannel, VendorEvent, VendorEventKind, VendorListener

_logger = logging.getLogger(__name__)


class AlexaHttpLink:
    """Command/response link over the Alexa web API.

    Push telemetry is delegated to an optional :class:`PushChannel`;
    without one the link works in request/response mode only.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        config: EchoConfig,
        *,
        push_channel: PushChannel | None = None,
    ) -> None:
        self._config = config
        self._transport = AlexaTransport(
            http_session,
            base_url=config.alexa_base_url,
            language=config.language,
            timeout=config.request_timeout,
        )
        self._push_channel = push_channel
        self._session: SessionConfig | None = None
        self._customer_id: str = ""
        self._devices: dict[str, DeviceRecord] = {}
        self._listeners: list[VendorListener] = []

    @property
    def transport(self) -> AlexaTransport:
        return self._transport

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: VendorListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def _emit(self, event: VendorEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.warning("Vendor listener failed for %s", event.kind, exc_info=True)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def init(self, config: SessionConfig) -> None:
        """Validate *config*'s cookie against ``/api/bootstrap``."""
        if config.proxy_only or not config.cookie:
            raise EchoAuthenticationError("No usable credential; a new login is required")

        self._transport.set_base_url(f"https://alexa.{config.amazon_page}")
        self._transport.set_credentials(config.cookie, config.csrf)
        initial_cookie = config.cookie

        try:
            auth = await _devices_api.fetch_bootstrap(self._transport)
        except EchoTransportError as exc:
            self._transport.clear_credentials()
            if exc.is_unauthorized:
                raise EchoAuthenticationError("Credential rejected by the vendor", cause=exc) from exc
            raise

        if not auth.get("authenticated"):
            self._transport.clear_credentials()
            raise EchoAuthenticationError("Credential is not authenticated")

        self._session = config
        self._customer_id = str(auth.get("customerId") or "")
        _logger.debug("Session initialized for customer %s", self._customer_id or "<unknown>")

        refreshed = self._refreshed_credential(initial_cookie)
        if refreshed is not None:
            self._emit(VendorEvent(VendorEventKind.CREDENTIAL_REFRESHED, refreshed))

    def _refreshed_credential(self, initial_cookie: str) -> dict[str, Any] | None:
        """New credential when the server rotated cookies during init."""
        current = self._transport.cookie_header
        if not current or self._transport.cookies == parse_cookie_header(initial_cookie):
            return None
        session = self._session
        credential: dict[str, Any] = dict(session.former_registration_data or {}) if session else {}
        credential["loginCookie"] = current
        csrf = self._transport.csrf
        if csrf:
            credential["csrf"] = csrf
        return credential

    async def check_authentication(self) -> bool:
        if not self._transport.has_cookie:
            return False
        try:
            auth = await _devices_api.fetch_bootstrap(self._transport)
        except EchoTransportError as exc:
            if exc.is_unauthorized:
                return False
            raise
        return bool(auth.get("authenticated"))

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def get_devices(self) -> list[DeviceRecord]:
        devices = await _devices_api.fetch_devices(self._transport, self._config.device_families)
        self._devices = {device.serial: device for device in devices}
        return devices

    def _device(self, serial: str) -> DeviceRecord:
        device = self._devices.get(serial)
        if device is None:
            raise EchoInvalidSerialError(f"Unknown device serial: {serial}")
        return device

    def _customer_for(self, device: DeviceRecord) -> str:
        owner = device.raw.get("deviceOwnerCustomerId")
        return str(owner) if owner else self._customer_id

    async def get_all_device_volumes(self) -> list[DeviceVolume]:
        return await _devices_api.fetch_device_volumes(self._transport)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send_sequence_command(self, serial: str, command: str, value: Any) -> Any:
        device = self._device(serial)
        node = _behaviors_api.build_sequence_node(
            command,
            value,
            serial=device.serial,
            device_type=device.device_type,
            customer_id=self._customer_for(device),
            language=self._config.language,
        )
        return await _behaviors_api.send_sequence(self._transport, _behaviors_api.build_sequence_body(node))

    async def send_command(self, serial: str, command: str, value: Any) -> Any:
        device = self._device(serial)
        return await _player_api.send_player_command(
            self._transport,
            serial=device.serial,
            device_type=device.device_type,
            action=command,
            value=value,
        )

    async def get_player_info(self, serial: str) -> PlayerInfo | None:
        device = self._device(serial)
        return await _player_api.fetch_player_info(
            self._transport,
            serial=device.serial,
            device_type=device.device_type,
        )

    async def get_routines(self, limit: int) -> list[Routine]:
        return await _behaviors_api.fetch_routines(self._transport, limit)

    async def execute_routine(self, serial: str, routine: Routine) -> Any:
        device = self._device(serial)
        body = _behaviors_api.build_routine_body(
            routine,
            serial=device.serial,
            device_type=device.device_type,
            customer_id=self._customer_for(device),
        )
        return await _behaviors_api.send_sequence(self._transport, body)

    async def create_notification(
        self,
        serial: str,
        notification_type: str,
        label: str,
        when_ms: int,
        status: str,
    ) -> Notification | None:
        device = self._device(serial)
        body = _notifications_api.build_notification_body(
            serial=device.serial,
            device_type=device.device_type,
            notification_type=notification_type,
            label=label,
            when_ms=when_ms,
            status=status,
        )
        return await _notifications_api.create_notification(self._transport, body)

    async def get_display_power(self, serial: str) -> bool | None:
        device = self._device(serial)
        return await _display_api.fetch_display_power(
            self._transport,
            serial=device.serial,
            device_type=device.device_type,
        )

    async def set_display_power(self, serial: str, enabled: bool) -> Any:
        device = self._device(serial)
        return await _display_api.set_display_power(
            self._transport,
            serial=device.serial,
            device_type=device.device_type,
            enabled=enabled,
        )

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def init_push_connection(self) -> None:
        if self._push_channel is None:
            raise EchoPushError("No push channel configured")
        if self._session is None:
            raise EchoPushError("Push requires an initialized session")
        await self._push_channel.connect(self._session, self._emit)

    async def stop(self) -> None:
        if self._push_channel is not None:
            await self._push_channel.disconnect()

    def is_push_connected(self) -> bool:
        return self._push_channel is not None and self._push_channel.is_connected()
