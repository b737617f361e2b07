"""Device endpoints: /api/bootstrap, /api/devices-v2/device, allDeviceVolumes."""

from __future__ import annotations

import logging
from typing import Any

from pyechoconnect._constants import BOOTSTRAP_ENDPOINT, DEVICE_VOLUMES_ENDPOINT, DEVICES_ENDPOINT
from pyechoconnect._transport import Transport
from pyechoconnect.models.device import DeviceRecord, DeviceVolume

_logger = logging.getLogger(__name__)


async def fetch_bootstrap(transport: Transport) -> dict[str, Any]:
    """Return the ``authentication`` block of ``/api/bootstrap``."""
    response = await transport.request("GET", BOOTSTRAP_ENDPOINT, params={"version": "0"})
    if not isinstance(response, dict):
        return {}
    auth = response.get("authentication")
    return auth if isinstance(auth, dict) else {}


def parse_device_list(response: Any, families: tuple[str, ...] = ()) -> list[DeviceRecord]:
    """Parse the device list, keeping only *families* when given."""
    items = response.get("devices") if isinstance(response, dict) else None
    if not isinstance(items, list):
        return []

    wanted = {family.upper() for family in families}
    devices: list[DeviceRecord] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        family = str(item.get("deviceFamily") or "").upper()
        if wanted and family not in wanted:
            continue
        if not item.get("serialNumber"):
            _logger.debug("Skipping device without serial: %s", item.get("accountName"))
            continue
        devices.append(DeviceRecord.model_validate(item))
    return devices


async def fetch_devices(transport: Transport, families: tuple[str, ...] = ()) -> list[DeviceRecord]:
    response = await transport.request("GET", DEVICES_ENDPOINT, params={"cached": "false"})
    devices = parse_device_list(response, families)
    _logger.debug("Fetched %d devices", len(devices))
    return devices


async def fetch_device_volumes(transport: Transport) -> list[DeviceVolume]:
    response = await transport.request("GET", DEVICE_VOLUMES_ENDPOINT)
    items = response.get("volumes") if isinstance(response, dict) else None
    if not isinstance(items, list):
        return []
    return [DeviceVolume.model_validate(item) for item in items if isinstance(item, dict) and item.get("dsn")]
