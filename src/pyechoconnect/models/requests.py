"""Pydantic request models for client entrypoints.

These models provide a consistent "validate -> normalize -> execute" flow
for outbound actions.  They are used internally by
:class:`pyechoconnect.client.EchoConnectClient`.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator

from pyechoconnect.models.notification import NotificationStatus, NotificationType
from pyechoconnect.models.routine import Routine

PlaybackAction = Literal["play", "pause", "next", "previous", "shuffle", "repeat"]
SpeechKind = Literal["speak", "whisper", "announce"]


class SerialRequest(BaseModel):
    """Request targeting one device."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    serial: str

    @field_validator("serial")
    @classmethod
    def _serial_non_empty(cls, value: str) -> str:
        serial = value.strip()
        if not serial:
            raise ValueError("serial must be non-empty")
        return serial


class VolumeRequest(SerialRequest):
    volume: StrictInt = Field(ge=0, le=100)


class TextRequest(SerialRequest):
    text: str

    @field_validator("text")
    @classmethod
    def _text_non_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("text must be non-empty")
        return text


class SpeechRequest(TextRequest):
    kind: SpeechKind = "speak"


class PlaybackRequest(SerialRequest):
    action: PlaybackAction
    value: StrictBool = True


class RoutineRequest(SerialRequest):
    routine: Routine

    @field_validator("routine", mode="before")
    @classmethod
    def _coerce_routine(cls, value: Any) -> Any:
        if isinstance(value, Routine):
            return value
        if isinstance(value, dict):
            return Routine.model_validate(value)
        return value

    @field_validator("routine")
    @classmethod
    def _routine_executable(cls, value: Routine) -> Routine:
        if not value.automation_id or not value.sequence:
            raise ValueError("routine must carry an automation id and a sequence")
        return value


class NotificationRequest(SerialRequest):
    notification_type: NotificationType = NotificationType.REMINDER
    label: str
    when_ms: StrictInt = Field(ge=0)
    """Trigger time as epoch milliseconds."""
    status: NotificationStatus = NotificationStatus.ON

    @field_validator("label")
    @classmethod
    def _label_non_empty(cls, value: str) -> str:
        label = value.strip()
        if not label:
            raise ValueError("label must be non-empty")
        return label


class DisplayPowerRequest(SerialRequest):
    enabled: StrictBool


class RoutineListRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    limit: StrictInt = Field(default=2000, ge=1)
    query: str | None = None
