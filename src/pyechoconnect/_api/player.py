"""Player endpoints: /api/np/command, /api/np/player."""

from __future__ import annotations

import time
from typing import Any

from pyechoconnect._constants import PLAYER_COMMAND_ENDPOINT, PLAYER_INFO_ENDPOINT
from pyechoconnect._transport import Transport
from pyechoconnect.exceptions import EchoValidationError
from pyechoconnect.models.player import PlayerInfo

_SIMPLE_COMMANDS: dict[str, str] = {
    "play": "PlayCommand",
    "pause": "PauseCommand",
    "next": "NextCommand",
    "previous": "PreviousCommand",
}


def build_player_command(action: str, value: Any = True) -> dict[str, Any]:
    """Body for a playback transport *action*."""
    if action in _SIMPLE_COMMANDS:
        return {"type": _SIMPLE_COMMANDS[action]}
    if action == "shuffle":
        return {"type": "ShuffleCommand", "shuffle": bool(value)}
    if action == "repeat":
        return {"type": "RepeatCommand", "repeat": bool(value)}
    raise EchoValidationError(f"Unsupported playback action: {action!r}")


async def send_player_command(
    transport: Transport,
    *,
    serial: str,
    device_type: str,
    action: str,
    value: Any = True,
) -> Any:
    return await transport.request(
        "POST",
        PLAYER_COMMAND_ENDPOINT,
        params={"deviceSerialNumber": serial, "deviceType": device_type},
        json_body=build_player_command(action, value),
    )


async def fetch_player_info(transport: Transport, *, serial: str, device_type: str) -> PlayerInfo | None:
    response = await transport.request(
        "GET",
        PLAYER_INFO_ENDPOINT,
        params={
            "deviceSerialNumber": serial,
            "deviceType": device_type,
            "screenWidth": "392",
            "_": str(int(time.time() * 1000)),
        },
    )
    if not isinstance(response, dict):
        return None
    return PlayerInfo.model_validate(response)
