"""Internal read operations for :class:`pyechoconnect.client.EchoConnectClient`.

These functions keep `client.py` small without changing the public API.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pyechoconnect._client.commands import validated, vendor_errors
from pyechoconnect.exceptions import (
    EchoDisplaySettingError,
    EchoError,
    EchoNotSupportedError,
    EchoPlaybackError,
    EchoRoutineError,
    EchoVolumeError,
)
from pyechoconnect.models.player import PlayerInfo
from pyechoconnect.models.requests import RoutineListRequest, SerialRequest
from pyechoconnect.models.routine import Routine
from pyechoconnect.models.status import ConnectionStatus

if TYPE_CHECKING:
    from pyechoconnect.client import EchoConnectClient

_logger = logging.getLogger(__name__)


async def get_volume(client: EchoConnectClient, *, serial: str) -> int:
    request = validated(SerialRequest, serial=serial)

    async def _call() -> int:
        with vendor_errors(EchoVolumeError, "volume lookup", request.serial):
            volumes = await client.link.get_all_device_volumes()
        for entry in volumes:
            if entry.serial == request.serial and entry.speaker_volume is not None:
                client.synchronizer.update_volume(request.serial, entry.speaker_volume)
                return entry.speaker_volume
        raise EchoNotSupportedError(f"Serial number {request.serial} not found")

    return await client._call_connected(_call)


async def get_player_info(client: EchoConnectClient, *, serial: str) -> PlayerInfo:
    request = validated(SerialRequest, serial=serial)

    async def _call() -> PlayerInfo:
        with vendor_errors(EchoPlaybackError, "player lookup", request.serial):
            info = await client.link.get_player_info(request.serial)
        if info is None:
            raise EchoNotSupportedError(f"No player information for {request.serial}")
        return info

    return await client._call_connected(_call)


async def list_routines(client: EchoConnectClient, *, limit: int = 2000, query: str | None = None) -> list[Routine]:
    """List executable routines, optionally filtered by a case-insensitive name *query*."""
    request = validated(RoutineListRequest, limit=limit, query=query)

    async def _call() -> list[Routine]:
        with vendor_errors(EchoRoutineError, "routine listing", None):
            routines = await client.link.get_routines(request.limit)
        valid = [routine for routine in routines if routine.is_valid]
        if request.query:
            needle = request.query.lower()
            valid = [routine for routine in valid if needle in routine.name.lower()]
        _logger.debug("Filtered routines: %d of %d", len(valid), len(routines))
        return valid

    return await client._call_connected(_call)


async def get_display_power(client: EchoConnectClient, *, serial: str) -> bool:
    request = validated(SerialRequest, serial=serial)

    async def _call() -> bool:
        with vendor_errors(EchoDisplaySettingError, "display power lookup", request.serial):
            enabled = await client.link.get_display_power(request.serial)
        if enabled is None:
            raise EchoNotSupportedError(f"Device {request.serial} has no display power setting")
        return enabled

    return await client._call_connected(_call)


async def get_connection_status(client: EchoConnectClient) -> ConnectionStatus:
    """Snapshot of authentication and push state; never raises for vendor failures."""
    try:
        authenticated = await client.authenticator.is_authenticated()
    except EchoError:
        _logger.debug("Authentication check failed while reading status", exc_info=True)
        authenticated = False
    return ConnectionStatus(authenticated=authenticated, push_connected=client.push.is_connected())
