"""Display power endpoint: /api/display-power."""

from __future__ import annotations

from typing import Any

from pyechoconnect._constants import DISPLAY_POWER_ENDPOINT
from pyechoconnect._transport import Transport
from pyechoconnect.ingestion.normalize import safe_str


def parse_display_power(response: Any) -> bool | None:
    """``True``/``False`` for ``ON``/``OFF``, ``None`` when the device reports nothing."""
    state = safe_str(response.get("displayPowerState")) if isinstance(response, dict) else None
    if state is None:
        return None
    return state.upper() == "ON"


async def fetch_display_power(transport: Transport, *, serial: str, device_type: str) -> bool | None:
    response = await transport.request(
        "GET",
        f"{DISPLAY_POWER_ENDPOINT}/{serial}",
        params={"deviceType": device_type},
    )
    return parse_display_power(response)


async def set_display_power(transport: Transport, *, serial: str, device_type: str, enabled: bool) -> Any:
    return await transport.request(
        "PUT",
        f"{DISPLAY_POWER_ENDPOINT}/{serial}",
        json_body={
            "deviceSerialNumber": serial,
            "deviceType": device_type,
            "displayPowerState": "ON" if enabled else "OFF",
        },
    )
