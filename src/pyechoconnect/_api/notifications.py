"""Notification endpoint: /api/notifications/createReminder."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from pyechoconnect._constants import NOTIFICATION_ENDPOINT
from pyechoconnect._transport import Transport
from pyechoconnect.models.notification import Notification


def build_notification_body(
    *,
    serial: str,
    device_type: str,
    notification_type: str,
    label: str,
    when_ms: int,
    status: str,
) -> dict[str, Any]:
    # The vendor wants the wall-clock date/time as seen on the device.
    when = datetime.fromtimestamp(when_ms / 1000)
    return {
        "type": notification_type,
        "status": status,
        "alarmTime": when_ms,
        "originalTime": when.strftime("%H:%M:%S.000"),
        "originalDate": when.strftime("%Y-%m-%d"),
        "timeZoneId": None,
        "reminderIndex": None,
        "sound": None,
        "deviceSerialNumber": serial,
        "deviceType": device_type,
        "recurringPattern": None,
        "reminderLabel": label,
        "isSaveInFlight": True,
        "id": "createReminder",
        "isRecurring": False,
        "createdDate": int(time.time() * 1000),
    }


async def create_notification(transport: Transport, body: dict[str, Any]) -> Notification | None:
    response = await transport.request("PUT", NOTIFICATION_ENDPOINT, json_body=body)
    if not isinstance(response, dict):
        return None
    return Notification.model_validate(response)
