"""Player and queue models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pyechoconnect._constants import PLAYER_STATE_PLAYING
from pyechoconnect.ingestion.normalize import dig, safe_int, safe_str
from pyechoconnect.models._base import EchoBaseModel

_SHUFFLE_STATES: dict[str, bool | None] = {"ENABLED": True, "DISABLED": False, "HIDDEN": None}
_REPEAT_STATES: dict[str, str] = {"ENABLED": "playlist", "DISABLED": "none", "HIDDEN": "disabled"}


class TrackInfo(BaseModel):
    """Now-playing metadata."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    artist: str = ""
    album: str = ""
    artwork: str = ""


class PlayerInfo(EchoBaseModel):
    """Parsed ``/api/np/player`` response.

    The vendor nests everything under ``playerInfo``; the validator
    flattens the handful of fields the library cares about.
    """

    state: str | None = None
    """Raw player state (``"PLAYING"``, ``"PAUSED"``, ``"IDLE"``)."""
    media_id: str | None = None
    track: TrackInfo = Field(default_factory=TrackInfo)
    volume: int | None = None
    """Player volume 0-100."""
    shuffle: bool | None = None
    """``None`` when the provider hides the shuffle control."""
    repeat: str | None = None
    """``"playlist"``, ``"none"`` or ``"disabled"``."""
    group_members: tuple[str, ...] = ()
    """Serials of group members when playback runs on a speaker group."""

    @model_validator(mode="before")
    @classmethod
    def _flatten_player_info(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "playerInfo" not in values:
            return values
        info = values.get("playerInfo")
        if not isinstance(info, dict):
            return {"raw": dict(values)}
        members = dig(info, "lemurVolume", "memberVolume")
        return {
            "state": safe_str(info.get("state")),
            "media_id": safe_str(info.get("mediaId")),
            "track": {
                "title": safe_str(dig(info, "infoText", "title")) or "",
                "artist": safe_str(dig(info, "infoText", "subText1")) or "",
                "album": safe_str(dig(info, "infoText", "subText2")) or "",
                "artwork": safe_str(dig(info, "mainArt", "url")) or "",
            },
            "volume": safe_int(dig(info, "volume", "volume")),
            "shuffle": _SHUFFLE_STATES.get(str(dig(info, "transport", "shuffle"))),
            "repeat": _REPEAT_STATES.get(str(dig(info, "transport", "repeat"))),
            "group_members": tuple(members.keys()) if isinstance(members, dict) else (),
            "raw": dict(values),
        }

    @property
    def playing(self) -> bool:
        return self.state == PLAYER_STATE_PLAYING

    @property
    def has_media(self) -> bool:
        return bool(self.media_id)


class PlayerDetail(BaseModel):
    """Normalized player state published with ``PlayerChanged``."""

    model_config = ConfigDict(frozen=True)

    serial: str
    """Device or group serial the player state belongs to."""
    media_id: str | None = None
    playing: bool = False
    track: TrackInfo = Field(default_factory=TrackInfo)
    is_playing_in_group: bool = False
    group_members: tuple[str, ...] = ()
    error: str | None = None
    """Error reported by the vendor with the state change, if any."""

    def concerns(self, serial: str) -> bool:
        """Whether this update applies to *serial* (directly or as a group member)."""
        if self.is_playing_in_group:
            return serial in self.group_members
        return serial == self.serial


class QueueDetail(EchoBaseModel):
    """Media queue status published with ``QueueChanged``."""

    serial: str = Field(validation_alias="deviceSerialNumber")
    change_type: str = ""
    play_back_order: str = ""
    """``"SHUFFLE_ALL"`` when shuffle is on."""
    loop_mode: str = ""
    """``"LOOP_QUEUE"`` when repeat is on."""

    @model_validator(mode="before")
    @classmethod
    def _lift_serial(cls, values: Any) -> Any:
        if isinstance(values, dict) and "deviceSerialNumber" not in values:
            serial = dig(values, "dopplerId", "deviceSerialNumber")
            if serial is not None:
                return {**values, "deviceSerialNumber": serial}
        return values

    @field_validator("serial")
    @classmethod
    def _strip_serial(cls, value: str) -> str:
        return value.strip()

    @property
    def shuffle(self) -> bool:
        return self.play_back_order == "SHUFFLE_ALL"

    @property
    def repeat(self) -> str:
        """Repeat mode as ``"track"`` or ``"none"``; Echo devices have no playlist repeat."""
        return "track" if self.loop_mode == "LOOP_QUEUE" else "none"
