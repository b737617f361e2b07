"""pyechoconnect - Async Python client for Amazon Echo devices via the Alexa cloud."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyechoconnect")
except PackageNotFoundError:
    __version__ = "0+local"
from pyechoconnect.client import EchoConnectClient
from pyechoconnect.config import CallDetectionSettings, EchoConfig
from pyechoconnect.events import (
    CredentialGenerated,
    EchoEvent,
    EventBus,
    PlayerChanged,
    PushConnected,
    PushDisconnected,
    QueueChanged,
    SessionConnected,
    SessionLost,
    VoiceTriggered,
    VolumeChanged,
)
from pyechoconnect.exceptions import (
    EchoAuthenticationError,
    EchoCommandError,
    EchoConfigError,
    EchoDisplaySettingError,
    EchoError,
    EchoInitializationError,
    EchoInvalidSerialError,
    EchoInvalidSettingError,
    EchoNotificationError,
    EchoNotSupportedError,
    EchoPlaybackError,
    EchoPushError,
    EchoRoutineError,
    EchoSpeakError,
    EchoTextCommandError,
    EchoTimeoutError,
    EchoTransportError,
    EchoValidationError,
    EchoVolumeError,
    ErrorCode,
    SchedulerError,
    is_authentication_failure,
)
from pyechoconnect.models import (
    ConnectionStatus,
    DeviceRecord,
    DeviceVolume,
    Notification,
    NotificationStatus,
    NotificationType,
    PlayerDetail,
    PlayerInfo,
    QueueDetail,
    Routine,
    TrackInfo,
)
from pyechoconnect.scheduler import SchedulerStats, TaskErrorRecord, TaskScheduler
from pyechoconnect.session import SessionConfig, is_credential_empty
from pyechoconnect.vendor import PushChannel, VendorEvent, VendorEventKind, VendorLink

__all__ = [
    "__version__",
    "CallDetectionSettings",
    "ConnectionStatus",
    "CredentialGenerated",
    "DeviceRecord",
    "DeviceVolume",
    "EchoAuthenticationError",
    "EchoCommandError",
    "EchoConfig",
    "EchoConfigError",
    "EchoConnectClient",
    "EchoDisplaySettingError",
    "EchoError",
    "EchoEvent",
    "EchoInitializationError",
    "EchoInvalidSerialError",
    "EchoInvalidSettingError",
    "EchoNotificationError",
    "EchoNotSupportedError",
    "EchoPlaybackError",
    "EchoPushError",
    "EchoRoutineError",
    "EchoSpeakError",
    "EchoTextCommandError",
    "EchoTimeoutError",
    "EchoTransportError",
    "EchoValidationError",
    "EchoVolumeError",
    "ErrorCode",
    "EventBus",
    "Notification",
    "NotificationStatus",
    "NotificationType",
    "PlayerChanged",
    "PlayerDetail",
    "PlayerInfo",
    "PushChannel",
    "PushConnected",
    "PushDisconnected",
    "QueueChanged",
    "QueueDetail",
    "Routine",
    "SchedulerError",
    "SchedulerStats",
    "SessionConfig",
    "SessionConnected",
    "SessionLost",
    "TaskErrorRecord",
    "TaskScheduler",
    "TrackInfo",
    "VendorEvent",
    "VendorEventKind",
    "VendorLink",
    "VoiceTriggered",
    "VolumeChanged",
    "is_authentication_failure",
    "is_credential_empty",
]
