"""Device models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pyechoconnect._constants import GROUP_FAMILY
from pyechoconnect.ingestion.normalize import safe_bool, safe_int
from pyechoconnect.models._base import EchoBaseModel


class DeviceRecord(EchoBaseModel):
    """A speaker, display or speaker group registered on the account.

    Fields are mapped from the ``/api/devices-v2/device`` response.
    """

    serial: str = Field(validation_alias=AliasChoices("serialNumber", "serial"))
    """Device serial number (``dsn``)."""
    display_name: str = Field(default="", validation_alias=AliasChoices("accountName", "displayName", "display_name"))
    """User-visible device name."""
    family: str = Field(default="", validation_alias=AliasChoices("deviceFamily", "family"))
    """Device family (e.g. ``"ECHO"``, ``"KNIGHT"``, ``"WHA"``)."""
    device_type: str = Field(default="", validation_alias=AliasChoices("deviceType", "device_type"))
    """Vendor device type identifier."""
    online: bool = Field(default=True, validation_alias=AliasChoices("online"))
    """Whether the cloud currently sees the device."""
    software_version: str = Field(default="", validation_alias=AliasChoices("softwareVersion", "software_version"))
    """Firmware version string."""

    @field_validator("serial")
    @classmethod
    def _normalize_serial(cls, value: str) -> str:
        serial = value.strip()
        if not serial:
            raise ValueError("serial must be non-empty")
        return serial

    @field_validator("online", mode="before")
    @classmethod
    def _coerce_online(cls, value: Any) -> bool:
        parsed = safe_bool(value)
        return True if parsed is None else parsed

    @property
    def is_group(self) -> bool:
        """Whether this record is a multi-room speaker group."""
        return self.family.upper() == GROUP_FAMILY

    @property
    def icon(self) -> str:
        return f"ic_{(self.family or 'default').lower()}.svg"


class DeviceVolume(EchoBaseModel):
    """Volume entry from ``allDeviceVolumes``."""

    serial: str = Field(validation_alias=AliasChoices("dsn", "serial"))
    device_type: str = Field(default="", validation_alias=AliasChoices("deviceType", "device_type"))
    speaker_volume: int | None = Field(default=None, validation_alias=AliasChoices("speakerVolume", "speaker_volume"))
    """Volume level 0-100."""
    speaker_muted: bool = Field(default=False, validation_alias=AliasChoices("speakerMuted", "speaker_muted"))

    @field_validator("speaker_volume", mode="before")
    @classmethod
    def _coerce_volume(cls, value: Any) -> int | None:
        return safe_int(value)
