"""Vendor constants shared across pyechoconnect modules."""

from __future__ import annotations

#: Device families kept in the registry (speakers, displays and speaker groups).
DEFAULT_DEVICE_FAMILIES: tuple[str, ...] = ("ECHO", "KNIGHT", "ROOK", "WHA")

#: Family used by the vendor for multi-room speaker groups.
GROUP_FAMILY = "WHA"

USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_6 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148 PitanguiBridge/2.2.595606.0-[HARDWARE=iPhone14_7][SOFTWARE=16.6]"
)

#: Literal credential value some hosts store for "no credential".
NULL_CREDENTIAL = "null"

#: Suffix appended to the random hex when generating a sign-in device id.
DEVICE_ID_SUFFIX = "23413249564c5635564d32573831"

#: Queue change type that carries shuffle/repeat state.
QUEUE_STATUS_CHANGED = "STATUS_CHANGED"

PLAYER_STATE_PLAYING = "PLAYING"

WHISPER_TEMPLATE = '<speak><amazon:effect name="whispered">{text}</amazon:effect></speak>'

# Alexa web API endpoints.
BOOTSTRAP_ENDPOINT = "/api/bootstrap"
DEVICES_ENDPOINT = "/api/devices-v2/device"
SEQUENCE_ENDPOINT = "/api/behaviors/preview"
PLAYER_COMMAND_ENDPOINT = "/api/np/command"
PLAYER_INFO_ENDPOINT = "/api/np/player"
DEVICE_VOLUMES_ENDPOINT = "/api/devices/deviceType/dsn/audio/v1/allDeviceVolumes"
ROUTINES_ENDPOINT = "/api/behaviors/v2/automations"
NOTIFICATION_ENDPOINT = "/api/notifications/createReminder"
DISPLAY_POWER_ENDPOINT = "/api/display-power"
