"""Data models for Alexa API responses."""

from pyechoconnect.models._base import EchoBaseModel, EpochTimestamp, parse_epoch
from pyechoconnect.models.device import DeviceRecord, DeviceVolume
from pyechoconnect.models.notification import Notification, NotificationStatus, NotificationType
from pyechoconnect.models.player import PlayerDetail, PlayerInfo, QueueDetail, TrackInfo
from pyechoconnect.models.routine import Routine
from pyechoconnect.models.status import ConnectionStatus

__all__ = [
    "ConnectionStatus",
    "DeviceRecord",
    "DeviceVolume",
    "EchoBaseModel",
    "EpochTimestamp",
    "Notification",
    "NotificationStatus",
    "NotificationType",
    "PlayerDetail",
    "PlayerInfo",
    "QueueDetail",
    "Routine",
    "TrackInfo",
    "parse_epoch",
]
