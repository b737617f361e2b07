"""Session authentication against the Alexa cloud."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pyechoconnect.config import EchoConfig
from pyechoconnect.events import CredentialGenerated, EventBus, PushDisconnected, SessionConnected, SessionLost
from pyechoconnect.exceptions import (
    EchoAuthenticationError,
    EchoError,
    EchoInitializationError,
    EchoValidationError,
)
from pyechoconnect.models.device import DeviceRecord
from pyechoconnect.push import PushSupervisor
from pyechoconnect.session import Credential, SessionConfig, build_session_config, detect_local_ip, is_credential_empty
from pyechoconnect.state.registry import DeviceRegistry
from pyechoconnect.vendor import VendorEvent, VendorEventKind, VendorLink

_logger = logging.getLogger(__name__)


class SessionAuthenticator:
    """Establishes and re-validates the vendor session.

    Owns the only write path into the :class:`DeviceRegistry`: the
    registry is replaced as a whole after every successful init.
    """

    def __init__(
        self,
        *,
        link: VendorLink,
        registry: DeviceRegistry,
        bus: EventBus,
        push: PushSupervisor,
        config: EchoConfig | None = None,
    ) -> None:
        self._link = link
        self._registry = registry
        self._bus = bus
        self._push = push
        self._config = config or EchoConfig()
        self._session_config: SessionConfig | None = None
        self._check_task: asyncio.Task[bool] | None = None
        self.credential_present = False
        self.new_login_required = False
        self.login_url: str | None = None

    @property
    def session_config(self) -> SessionConfig | None:
        """Configuration of the most recent init attempt."""
        return self._session_config

    def build_config(
        self,
        credential: Credential,
        amazon_page: str | None = None,
        force_refresh: bool = False,
    ) -> SessionConfig:
        self.credential_present = not is_credential_empty(credential)
        own_ip = self._config.proxy_own_ip
        if own_ip is None and (not self.credential_present or force_refresh):
            own_ip = detect_local_ip()
        return build_session_config(
            credential,
            self._config,
            amazon_page=amazon_page,
            force_refresh=force_refresh,
            own_ip=own_ip or "0.0.0.0",
        )

    async def init_session(
        self,
        credential: Credential = None,
        amazon_page: str | None = None,
        *,
        force_refresh: bool = False,
        retry_count: int = 0,
        max_retries: int | None = None,
    ) -> list[DeviceRecord]:
        """Initialize the session and load the device registry.

        Parameters
        ----------
        credential
            Stored credential, or ``None`` to start a new login.
        amazon_page
            Amazon domain; defaults to ``config.amazon_page``.
        force_refresh
            Ignore the credential and request a new login.
        retry_count
            Attempts already made (used by the internal retry).
        max_retries
            Forced-refresh retries allowed; defaults to ``config.max_init_retries``.

        Raises
        ------
        EchoValidationError
            If ``retry_count`` or ``max_retries`` is negative.
        EchoInitializationError
            If the session cannot be initialized.  ``login_url`` is set
            when the user has to log in through the proxy.
        """
        limit = self._config.max_init_retries if max_retries is None else max_retries
        if retry_count < 0 or limit < 0:
            raise EchoValidationError(f"retry_count and max_retries must be >= 0 (got {retry_count}, {limit})")

        page = amazon_page or self._config.amazon_page
        session_config = self.build_config(credential, page, force_refresh)
        self._session_config = session_config
        credential_present = self.credential_present

        try:
            await self._link.init(session_config)
        except Exception as exc:
            _logger.debug("Vendor init failed (attempt %d)", retry_count + 1, exc_info=True)
            if credential_present:
                if retry_count < limit:
                    _logger.info("Credential rejected, retrying with forced refresh (%d/%d)", retry_count + 1, limit)
                    return await self.init_session(
                        None,
                        page,
                        force_refresh=True,
                        retry_count=retry_count + 1,
                        max_retries=limit,
                    )
                raise EchoInitializationError(
                    f"Unable to initialize session after {retry_count + 1} attempts",
                    cause=exc,
                ) from exc

            self.new_login_required = True
            self.login_url = session_config.login_url
            _logger.warning("No valid credential; log in at %s", self.login_url)
            raise EchoInitializationError(
                f"Credential not found. Please connect to the following link: {self.login_url}",
                login_url=self.login_url,
                cause=exc,
            ) from exc

        try:
            devices = await self._link.get_devices()
        except Exception as exc:
            raise EchoInitializationError("Error recovering devices", cause=exc) from exc

        self._registry.replace(devices)
        self.login_url = None
        _logger.info("Session initialized with %d devices", len(devices))
        self._bus.publish(SessionConnected(devices=tuple(devices)))
        return list(devices)

    async def is_authenticated(self) -> bool:
        try:
            authenticated = await self._link.check_authentication()
        except Exception as exc:
            raise EchoAuthenticationError("Authentication check failed", cause=exc) from exc
        _logger.debug("Authentication is %s", "valid" if authenticated else "invalid or expired")
        return bool(authenticated)

    async def check_authentication_and_push(self, credential: Credential, amazon_page: str | None = None) -> bool:
        """Make sure the session is authenticated and push is running.

        Concurrent callers share the in-flight check instead of starting
        a second one.
        """
        if is_credential_empty(credential):
            return False

        task = self._check_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._check(credential, amazon_page))
            self._check_task = task
        return await asyncio.shield(task)

    async def _check(self, credential: Credential, amazon_page: str | None) -> bool:
        try:
            authenticated = await self.is_authenticated()
        except EchoAuthenticationError:
            _logger.warning("Authentication check failed, re-initializing", exc_info=True)
            authenticated = False

        if authenticated:
            if not self._config.push_enabled or self._push.is_connected():
                return True
            try:
                await self._push.start()
            except EchoError as exc:
                _logger.warning("Unable to start push connection: %s", exc)
                self._bus.publish(PushDisconnected(will_reconnect=False, reason=str(exc)))
                return False
            return True

        try:
            await self.init_session(credential, amazon_page)
        except EchoError:
            _logger.warning("Session re-initialization failed", exc_info=True)
            self._bus.publish(SessionLost())
            return False

        if self._config.push_enabled and not self._push.is_connected():
            try:
                await self._push.start()
            except EchoError:
                _logger.warning("Push startup after re-initialization failed", exc_info=True)
        return True

    def handle(self, event: VendorEvent) -> None:
        if event.kind != VendorEventKind.CREDENTIAL_REFRESHED:
            return
        credential: dict[str, Any] = dict(event.payload)
        _logger.info("Credential %s", "generated" if self.new_login_required else "refreshed")
        self._bus.publish(CredentialGenerated(is_new_login=self.new_login_required, credential=credential))
        self.new_login_required = False
