"""Notification models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import AliasChoices, Field

from pyechoconnect.models._base import EchoBaseModel, EpochTimestamp


class NotificationType(StrEnum):
    REMINDER = "Reminder"
    ALARM = "Alarm"
    TIMER = "Timer"


class NotificationStatus(StrEnum):
    ON = "ON"
    OFF = "OFF"


class Notification(EchoBaseModel):
    """Notification created on a device."""

    notification_id: str = Field(default="", validation_alias=AliasChoices("notificationIndex", "id", "notification_id"))
    device_serial: str = Field(default="", validation_alias=AliasChoices("deviceSerialNumber", "device_serial"))
    type: str = ""
    status: str = ""
    label: str = Field(default="", validation_alias=AliasChoices("reminderLabel", "label"))
    alarm_time: EpochTimestamp = Field(default=None, validation_alias=AliasChoices("alarmTime", "alarm_time"))
