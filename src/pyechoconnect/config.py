"""Client configuration for pyechoconnect."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyechoconnect._constants import DEFAULT_DEVICE_FAMILIES


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class CallDetectionSettings:
    """Timing knobs for voice-trigger detection, in seconds."""

    window: float = 3.0
    inactivity: float = 2.0
    cooldown: float = 8.0
    tracker_idle: float = 300.0
    sweep_interval: float = 30.0


@dataclasses.dataclass(frozen=True)
class EchoConfig:
    """Client configuration.

    Parameters
    ----------
    amazon_page : str
        Amazon domain the account is registered on (e.g. ``"amazon.de"``).
    language : str
        Language used for the login proxy and ``Accept-Language``.
    app_name : str
        Application identity reported to the vendor.
    proxy_port : int
        Port of the login proxy started when a new login is required.
    proxy_own_ip : str or None
        Address advertised in the login URL.  Auto-detected when ``None``.
    close_window_message : str
        Message shown by the login proxy once authentication completes.
    close_window_image_url : str
        Optional image shown with ``close_window_message``.
    device_families : tuple of str
        Vendor device families kept in the device registry.
    max_init_retries : int
        Forced-refresh retries performed by ``init_session``.
    health_check_interval : float
        Seconds between periodic session health checks.
    event_wait_timeout : float
        Seconds to wait for a confirming push event after a command.
    request_timeout : float
        Total timeout for a single HTTP request.
    push_enabled : bool
        Start the push channel after a successful session init.
    calls : CallDetectionSettings
        Voice-trigger detection timings.
    """

    amazon_page: str = "amazon.de"
    language: str = "en_EN"
    app_name: str = "pyechoconnect"
    proxy_port: int = 3000
    proxy_own_ip: str | None = None
    close_window_message: str = "You can now close this window."
    close_window_image_url: str = ""
    device_families: tuple[str, ...] = DEFAULT_DEVICE_FAMILIES
    max_init_retries: int = 2
    health_check_interval: float = 3600.0
    event_wait_timeout: float = 5.0
    request_timeout: float = 30.0
    push_enabled: bool = True
    calls: CallDetectionSettings = dataclasses.field(default_factory=CallDetectionSettings)

    @property
    def alexa_base_url(self) -> str:
        """Base URL of the Alexa web API for ``amazon_page``."""
        return f"https://alexa.{self.amazon_page}"

    @classmethod
    def from_env(cls, **overrides: Any) -> EchoConfig:
        """Create configuration from environment variables.

        Reads optional ``ECHO_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        EchoConfig
            Populated configuration.
        """
        env = os.environ

        call_kwargs: dict[str, float] = {}
        _ENV_CALL_MAP = {
            "ECHO_CALL_WINDOW": "window",
            "ECHO_CALL_INACTIVITY": "inactivity",
            "ECHO_CALL_COOLDOWN": "cooldown",
            "ECHO_CALL_TRACKER_IDLE": "tracker_idle",
            "ECHO_CALL_SWEEP_INTERVAL": "sweep_interval",
        }
        for env_key, field_name in _ENV_CALL_MAP.items():
            val = env.get(env_key)
            if val is not None:
                call_kwargs[field_name] = float(val)

        # Allow overriding call timings via a nested dict
        call_overrides = overrides.pop("calls", None)
        if isinstance(call_overrides, dict):
            call_kwargs.update(call_overrides)
        elif isinstance(call_overrides, CallDetectionSettings):
            call_kwargs = dataclasses.asdict(call_overrides)

        calls = CallDetectionSettings(**call_kwargs) if call_kwargs else CallDetectionSettings()

        _ENV_CONFIG_MAP = {
            "ECHO_AMAZON_PAGE": "amazon_page",
            "ECHO_LANGUAGE": "language",
            "ECHO_APP_NAME": "app_name",
            "ECHO_PROXY_OWN_IP": "proxy_own_ip",
            "ECHO_CLOSE_WINDOW_MESSAGE": "close_window_message",
            "ECHO_CLOSE_WINDOW_IMAGE_URL": "close_window_image_url",
        }
        config_kwargs: dict[str, Any] = {"calls": calls}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        port_env = env.get("ECHO_PROXY_PORT")
        if port_env is not None and "proxy_port" not in overrides:
            config_kwargs["proxy_port"] = int(port_env)

        retries_env = env.get("ECHO_MAX_INIT_RETRIES")
        if retries_env is not None and "max_init_retries" not in overrides:
            config_kwargs["max_init_retries"] = int(retries_env)

        families_env = env.get("ECHO_DEVICE_FAMILIES")
        if families_env is not None and "device_families" not in overrides:
            config_kwargs["device_families"] = tuple(
                part.strip().upper() for part in families_env.split(",") if part.strip()
            )

        for env_key, field_name in (
            ("ECHO_HEALTH_CHECK_INTERVAL", "health_check_interval"),
            ("ECHO_EVENT_WAIT_TIMEOUT", "event_wait_timeout"),
            ("ECHO_REQUEST_TIMEOUT", "request_timeout"),
        ):
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        if "push_enabled" not in overrides:
            config_kwargs["push_enabled"] = _env_bool(env.get("ECHO_PUSH_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
