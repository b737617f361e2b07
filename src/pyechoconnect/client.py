"""High-level async client for the Alexa cloud."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

import aiohttp

from pyechoconnect._api.login import LoginUrlDetails, build_signin_url
from pyechoconnect._client import commands as _commands
from pyechoconnect._client import reads as _reads
from pyechoconnect._clock import Clock, LoopClock
from pyechoconnect.auth import SessionAuthenticator
from pyechoconnect.config import EchoConfig
from pyechoconnect.detection import CallDetector
from pyechoconnect.events import E, EventBus, PlayerChanged, QueueChanged, VolumeChanged
from pyechoconnect.exceptions import EchoAuthenticationError, EchoError
from pyechoconnect.ingestion.normalize import safe_str
from pyechoconnect.ingestion.telemetry import StateSynchronizer
from pyechoconnect.link import AlexaHttpLink
from pyechoconnect.models.device import DeviceRecord
from pyechoconnect.models.notification import Notification, NotificationStatus, NotificationType
from pyechoconnect.models.player import PlayerInfo
from pyechoconnect.models.requests import PlaybackAction
from pyechoconnect.models.routine import Routine
from pyechoconnect.models.status import ConnectionStatus
from pyechoconnect.push import PushSupervisor
from pyechoconnect.scheduler import SchedulerStats, TaskErrorRecord, TaskScheduler
from pyechoconnect.session import Credential, parse_credential
from pyechoconnect.state.cooldown import GlobalCooldown
from pyechoconnect.state.registry import DeviceRegistry
from pyechoconnect.vendor import PushChannel, VendorEvent, VendorEventKind, VendorLink

_logger = logging.getLogger(__name__)

T = TypeVar("T")

CredentialProvider = Callable[[], Credential]
AmazonPageProvider = Callable[[], str | None]


class EchoConnectClient:
    """Async client for a fleet of Echo devices on one Amazon account.

    Usage::

        async with EchoConnectClient(config) as client:
            devices = await client.init_session(credential)
            await client.speak(devices[0].serial, "Hello")
    """

    def __init__(
        self,
        config: EchoConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        link: VendorLink | None = None,
        push_channel: PushChannel | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or EchoConfig()
        self._external_session = session is not None
        self._http_session = session
        self._push_channel = push_channel
        self._clock: Clock = clock or LoopClock()
        self._bus = EventBus()
        self._registry = DeviceRegistry()
        self._cooldown = GlobalCooldown(self._clock)
        self._credential: Credential = None
        self._amazon_page: str | None = None
        self._health_scheduler: TaskScheduler | None = None
        self._remove_listener: Callable[[], None] | None = None

        self._link: VendorLink | None = None
        self._authenticator: SessionAuthenticator | None = None
        self._push: PushSupervisor | None = None
        self._synchronizer: StateSynchronizer | None = None
        self._detector: CallDetector | None = None
        if link is not None:
            self._attach_link(link)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> EchoConnectClient:
        if self._link is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._attach_link(AlexaHttpLink(self._http_session, self._config, push_channel=self._push_channel))
        self.detector.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop_health_checks()
        if self._detector is not None:
            self._detector.stop()
        if self._synchronizer is not None:
            self._synchronizer.cancel_pending()
        if self._link is not None and self._link.is_push_connected():
            try:
                await self._link.stop()
            except Exception:
                _logger.debug("Push shutdown failed", exc_info=True)
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _attach_link(self, link: VendorLink) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
        self._link = link
        self._push = PushSupervisor(link=link, bus=self._bus)
        self._authenticator = SessionAuthenticator(
            link=link,
            registry=self._registry,
            bus=self._bus,
            push=self._push,
            config=self._config,
        )
        self._synchronizer = StateSynchronizer(registry=self._registry, link=link, bus=self._bus)
        self._detector = CallDetector(
            registry=self._registry,
            cooldown=self._cooldown,
            bus=self._bus,
            clock=self._clock,
            settings=self._config.calls,
        )
        self._remove_listener = link.add_listener(self._on_vendor_event)

    def _on_vendor_event(self, event: VendorEvent) -> None:
        if event.kind == VendorEventKind.CREDENTIAL_REFRESHED:
            self._credential = dict(event.payload)
        self.authenticator.handle(event)
        self.push.handle(event)
        self.synchronizer.handle(event)
        self.detector.handle(event)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def _require(self, component: T | None) -> T:
        if component is None:
            raise EchoError("Client not initialized. Use 'async with EchoConnectClient(...) as client:'")
        return component

    @property
    def config(self) -> EchoConfig:
        return self._config

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def cooldown(self) -> GlobalCooldown:
        return self._cooldown

    @property
    def link(self) -> VendorLink:
        return self._require(self._link)

    @property
    def authenticator(self) -> SessionAuthenticator:
        return self._require(self._authenticator)

    @property
    def push(self) -> PushSupervisor:
        return self._require(self._push)

    @property
    def synchronizer(self) -> StateSynchronizer:
        return self._require(self._synchronizer)

    @property
    def detector(self) -> CallDetector:
        return self._require(self._detector)

    @property
    def login_url(self) -> str | None:
        """Login proxy URL when the last init needs the user to log in."""
        return self._authenticator.login_url if self._authenticator is not None else None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def init_session(
        self,
        credential: Credential = None,
        amazon_page: str | None = None,
        *,
        force_refresh: bool = False,
        retry_count: int = 0,
        max_retries: int | None = None,
    ) -> list[DeviceRecord]:
        """Initialize the session, load devices and start push when enabled."""
        self._credential = credential
        self._amazon_page = amazon_page
        devices = await self.authenticator.init_session(
            credential,
            amazon_page,
            force_refresh=force_refresh,
            retry_count=retry_count,
            max_retries=max_retries,
        )
        await self._ensure_push_started()
        return devices

    async def _ensure_push_started(self) -> None:
        """Best-effort push startup (failures must not break the session)."""
        if not self._config.push_enabled or self.push.is_connected():
            return
        try:
            await self.push.start()
        except EchoError:
            _logger.warning("Push startup failed", exc_info=True)

    async def check_authentication_and_push(
        self,
        credential: Credential = None,
        amazon_page: str | None = None,
    ) -> bool:
        """Validate *credential* and make sure push is running.

        Returns ``False`` at once for an empty credential.  The credential
        used by commands is only replaced by :meth:`init_session` or a
        vendor credential refresh.
        """
        return await self.authenticator.check_authentication_and_push(credential, amazon_page or self._amazon_page)

    async def ensure_connected(self) -> None:
        """Raise :class:`EchoAuthenticationError` unless the session is usable."""
        if not await self.authenticator.check_authentication_and_push(self._credential, self._amazon_page):
            raise EchoAuthenticationError("Not connected to the Alexa cloud")

    async def _call_connected(self, fn: Callable[[], Awaitable[T]]) -> T:
        await self.ensure_connected()
        return await fn()

    async def is_authenticated(self) -> bool:
        return await self.authenticator.is_authenticated()

    def is_push_connected(self) -> bool:
        return self.push.is_connected()

    async def stop_push(self) -> None:
        await self.push.stop()

    async def get_connection_status(self) -> ConnectionStatus:
        return await _reads.get_connection_status(self)

    def build_signin_url(self, *, device_id: str | None = None) -> LoginUrlDetails:
        """Amazon sign-in URL for the configured page and language.

        Reuses the ``deviceId`` of the stored credential, when there is
        one, so a re-login does not register a new device.
        """
        if device_id is None:
            stored = parse_credential(self._credential) or {}
            device_id = safe_str(stored.get("deviceId"))
        return build_signin_url(
            self._amazon_page or self._config.amazon_page,
            self._config.language,
            device_id=device_id,
        )

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def list_devices(self) -> list[DeviceRecord]:
        return list(self._registry.devices)

    def device_exists(self, serial: str) -> bool:
        return self._registry.contains(serial)

    def is_online(self, serial: str) -> bool:
        return self._registry.is_online(serial)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def speak(self, serial: str, text: str) -> Any:
        return await _commands.speak(self, serial=serial, text=text, kind="speak")

    async def whisper(self, serial: str, text: str) -> Any:
        return await _commands.speak(self, serial=serial, text=text, kind="whisper")

    async def announce(self, serial: str, text: str) -> Any:
        return await _commands.speak(self, serial=serial, text=text, kind="announce")

    async def send_command(self, serial: str, text: str) -> Any:
        """Send a free-text voice command, as if spoken to the device."""
        return await _commands.send_text_command(self, serial=serial, text=text)

    async def change_playback(self, serial: str, action: PlaybackAction, value: bool = True) -> Any:
        return await _commands.change_playback(self, serial=serial, action=action, value=value)

    async def change_playback_and_wait(
        self,
        serial: str,
        action: PlaybackAction,
        value: bool = True,
        *,
        timeout: float | None = None,
    ) -> PlayerChanged | QueueChanged:
        return await _commands.change_playback_and_wait(
            self,
            serial=serial,
            action=action,
            value=value,
            timeout=timeout,
        )

    async def run_routine(self, serial: str, routine: Routine | Mapping[str, Any]) -> Any:
        return await _commands.run_routine(self, serial=serial, routine=routine)

    async def create_notification(
        self,
        serial: str,
        notification_type: NotificationType | str,
        label: str,
        when_ms: int,
        status: NotificationStatus | str = NotificationStatus.ON,
    ) -> Notification:
        return await _commands.create_notification(
            self,
            serial=serial,
            notification_type=notification_type,
            label=label,
            when_ms=when_ms,
            status=status,
        )

    async def set_volume(self, serial: str, volume: int) -> None:
        await _commands.set_volume(self, serial=serial, volume=volume)

    async def set_volume_and_wait(self, serial: str, volume: int, *, timeout: float | None = None) -> VolumeChanged:
        return await _commands.set_volume_and_wait(self, serial=serial, volume=volume, timeout=timeout)

    async def set_display_power(self, serial: str, enabled: bool) -> Any:
        return await _commands.set_display_power(self, serial=serial, enabled=enabled)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_volume(self, serial: str) -> int:
        return await _reads.get_volume(self, serial=serial)

    async def get_player_info(self, serial: str) -> PlayerInfo:
        return await _reads.get_player_info(self, serial=serial)

    async def list_routines(self, limit: int = 2000, *, query: str | None = None) -> list[Routine]:
        return await _reads.list_routines(self, limit=limit, query=query)

    async def get_display_power(self, serial: str) -> bool:
        return await _reads.get_display_power(self, serial=serial)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        return self._bus.subscribe(event_type, handler)

    async def wait_for_event(
        self,
        event_type: type[E],
        *,
        predicate: Callable[[E], bool] | None = None,
        timeout: float | None = None,
    ) -> E:
        return await self._bus.wait_for(
            event_type,
            predicate=predicate,
            timeout=self._config.event_wait_timeout if timeout is None else timeout,
        )

    # ------------------------------------------------------------------
    # Health checks
    # ------------------------------------------------------------------

    def start_health_checks(
        self,
        credential_provider: CredentialProvider,
        amazon_page_provider: AmazonPageProvider | None = None,
        *,
        immediate: bool = False,
    ) -> TaskScheduler:
        """Periodically re-validate the session and push connection.

        The providers are called on every run so the check always uses
        the credential the host has stored most recently.
        """
        if self._health_scheduler is not None:
            return self._health_scheduler

        async def _health_check() -> None:
            credential = credential_provider()
            page = amazon_page_provider() if amazon_page_provider is not None else None
            connected = await self.check_authentication_and_push(credential, page)
            _logger.info("Health check: %s", "connected" if connected else "not connected")

        def _on_error(record: TaskErrorRecord, stats: SchedulerStats) -> None:
            _logger.warning("Health check #%d failed: %s", stats.task_count + 1, record.message)

        scheduler = TaskScheduler(
            _health_check,
            self._config.health_check_interval,
            clock=self._clock,
            on_error=_on_error,
        )
        scheduler.start(immediate=immediate)
        self._health_scheduler = scheduler
        return scheduler

    async def stop_health_checks(self, *, wait_for_current: bool = False) -> None:
        scheduler = self._health_scheduler
        self._health_scheduler = None
        if scheduler is not None:
            await scheduler.stop(wait_for_current=wait_for_current)

    @property
    def health_checks(self) -> TaskScheduler | None:
        return self._health_scheduler

