"""Internal outbound actions for :class:`pyechoconnect.client.EchoConnectClient`.

These functions keep `client.py` small without changing the public API.
Every action validates its arguments, makes sure the session is
connected, issues one vendor call and wraps vendor failures in the
action's own error type.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from pyechoconnect._constants import WHISPER_TEMPLATE
from pyechoconnect.events import PlayerChanged, QueueChanged, VolumeChanged
from pyechoconnect.exceptions import (
    EchoAuthenticationError,
    EchoCommandError,
    EchoDisplaySettingError,
    EchoInvalidSerialError,
    EchoInvalidSettingError,
    EchoNotificationError,
    EchoNotSupportedError,
    EchoPlaybackError,
    EchoRoutineError,
    EchoSpeakError,
    EchoTextCommandError,
    EchoValidationError,
    EchoVolumeError,
)
from pyechoconnect.models.notification import Notification, NotificationStatus, NotificationType
from pyechoconnect.models.requests import (
    DisplayPowerRequest,
    NotificationRequest,
    PlaybackAction,
    PlaybackRequest,
    RoutineRequest,
    SpeechKind,
    SpeechRequest,
    TextRequest,
    VolumeRequest,
)
from pyechoconnect.models.routine import Routine

if TYPE_CHECKING:
    from pyechoconnect.client import EchoConnectClient

_logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

_SETTING_FIELDS = frozenset({"value", "enabled", "status", "notification_type", "action", "kind"})

_SEQUENCE_COMMANDS: dict[str, str] = {
    "speak": "speak",
    "whisper": "ssml",
    "announce": "announcement",
}


def validated(model: type[R], **values: Any) -> R:
    """Build a request model, mapping pydantic errors to library errors."""
    try:
        return model(**values)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else ""
        message = f"Invalid {field or 'argument'}: {first.get('msg', exc)}"
        if field == "serial":
            raise EchoInvalidSerialError(message, cause=exc) from exc
        if field in _SETTING_FIELDS:
            raise EchoInvalidSettingError(message, cause=exc) from exc
        raise EchoValidationError(message, cause=exc) from exc


@contextlib.contextmanager
def vendor_errors(error_type: type[EchoCommandError], action: str, serial: str | None) -> Iterator[None]:
    """Wrap anything the vendor raises into *error_type*."""
    try:
        yield
    except (EchoValidationError, EchoAuthenticationError, EchoNotSupportedError, EchoCommandError):
        raise
    except Exception as exc:
        raise error_type(f"{action} failed for {serial}: {exc}", serial=serial, cause=exc) from exc


def require_known_serial(client: EchoConnectClient, serial: str) -> None:
    if not client.registry.contains(serial):
        raise EchoInvalidSerialError(f"Device {serial} is not registered")


def speech_payload(kind: str, text: str) -> tuple[str, str]:
    """Sequence command and value for a speech *kind*."""
    command = _SEQUENCE_COMMANDS.get(kind, "speak")
    value = WHISPER_TEMPLATE.format(text=text) if kind == "whisper" else text
    return command, value


async def speak(client: EchoConnectClient, *, serial: str, text: str, kind: SpeechKind = "speak") -> Any:
    request = validated(SpeechRequest, serial=serial, text=text, kind=kind)
    require_known_serial(client, request.serial)
    command, value = speech_payload(request.kind, request.text)

    async def _call() -> Any:
        _logger.debug("Sending sequence command %s to %s", command, request.serial)
        with vendor_errors(EchoSpeakError, command, request.serial):
            return await client.link.send_sequence_command(request.serial, command, value)

    return await client._call_connected(_call)


async def send_text_command(client: EchoConnectClient, *, serial: str, text: str) -> Any:
    request = validated(TextRequest, serial=serial, text=text)

    async def _call() -> Any:
        with vendor_errors(EchoTextCommandError, "textCommand", request.serial):
            return await client.link.send_sequence_command(request.serial, "textCommand", request.text)

    return await client._call_connected(_call)


async def change_playback(
    client: EchoConnectClient,
    *,
    serial: str,
    action: PlaybackAction,
    value: bool = True,
) -> Any:
    request = validated(PlaybackRequest, serial=serial, action=action, value=value)

    async def _call() -> Any:
        with vendor_errors(EchoPlaybackError, request.action, request.serial):
            return await client.link.send_command(request.serial, request.action, request.value)

    return await client._call_connected(_call)


async def change_playback_and_wait(
    client: EchoConnectClient,
    *,
    serial: str,
    action: PlaybackAction,
    value: bool = True,
    timeout: float | None = None,
) -> PlayerChanged | QueueChanged:
    """Change playback and wait for the push event confirming it.

    Transport actions are confirmed by ``PlayerChanged``; shuffle and
    repeat by ``QueueChanged``.
    """
    request = validated(PlaybackRequest, serial=serial, action=action, value=value)
    wait_timeout = client.config.event_wait_timeout if timeout is None else timeout

    confirmation: asyncio.Task[Any]
    if request.action in ("shuffle", "repeat"):
        confirmation = client.bus.wait_for(
            QueueChanged,
            predicate=lambda event: event.detail.serial == request.serial,
            timeout=wait_timeout,
        )
    else:
        confirmation = client.bus.wait_for(
            PlayerChanged,
            predicate=lambda event: event.detail.concerns(request.serial),
            timeout=wait_timeout,
        )

    try:
        await change_playback(client, serial=request.serial, action=request.action, value=request.value)
    except BaseException:
        confirmation.cancel()
        raise
    result: PlayerChanged | QueueChanged = await confirmation
    return result


async def run_routine(
    client: EchoConnectClient,
    *,
    serial: str,
    routine: Routine | Mapping[str, Any],
) -> Any:
    request = validated(
        RoutineRequest,
        serial=serial,
        routine=dict(routine) if isinstance(routine, Mapping) else routine,
    )

    async def _call() -> Any:
        with vendor_errors(EchoRoutineError, "routine", request.serial):
            return await client.link.execute_routine(request.serial, request.routine)

    return await client._call_connected(_call)


async def create_notification(
    client: EchoConnectClient,
    *,
    serial: str,
    notification_type: NotificationType | str,
    label: str,
    when_ms: int,
    status: NotificationStatus | str = NotificationStatus.ON,
) -> Notification:
    request = validated(
        NotificationRequest,
        serial=serial,
        notification_type=notification_type,
        label=label,
        when_ms=when_ms,
        status=status,
    )

    async def _call() -> Notification:
        with vendor_errors(EchoNotificationError, "notification", request.serial):
            result = await client.link.create_notification(
                request.serial,
                str(request.notification_type),
                request.label,
                request.when_ms,
                str(request.status),
            )
        if result is None:
            raise EchoNotSupportedError(f"Device {request.serial} did not accept the notification")
        return result

    return await client._call_connected(_call)


async def set_volume(client: EchoConnectClient, *, serial: str, volume: int) -> None:
    request = validated(VolumeRequest, serial=serial, volume=volume)

    async def _call() -> None:
        with vendor_errors(EchoVolumeError, "volume", request.serial):
            await client.link.send_sequence_command(request.serial, "volume", request.volume)
        client.synchronizer.update_volume(request.serial, request.volume)

    await client._call_connected(_call)


async def set_volume_and_wait(
    client: EchoConnectClient,
    *,
    serial: str,
    volume: int,
    timeout: float | None = None,
) -> VolumeChanged:
    request = validated(VolumeRequest, serial=serial, volume=volume)
    confirmation = client.bus.wait_for(
        VolumeChanged,
        predicate=lambda event: event.serial == request.serial,
        timeout=client.config.event_wait_timeout if timeout is None else timeout,
    )
    try:
        await set_volume(client, serial=request.serial, volume=request.volume)
    except BaseException:
        confirmation.cancel()
        raise
    return await confirmation


async def set_display_power(client: EchoConnectClient, *, serial: str, enabled: bool) -> Any:
    request = validated(DisplayPowerRequest, serial=serial, enabled=enabled)
    if not client.registry.is_online(request.serial):
        raise EchoNotSupportedError(f"Device {request.serial} is offline")

    async def _call() -> Any:
        with vendor_errors(EchoDisplaySettingError, "display power", request.serial):
            return await client.link.set_display_power(request.serial, request.enabled)

    return await client._call_connected(_call)
