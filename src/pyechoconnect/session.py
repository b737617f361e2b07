"""Session configuration derived from an opaque credential."""

from __future__ import annotations

import contextlib
import json
import socket
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyechoconnect._api.login import render_close_window_html
from pyechoconnect._constants import NULL_CREDENTIAL
from pyechoconnect.config import EchoConfig

Credential = Mapping[str, Any] | str | None
"""Opaque authentication material (login cookie, CSRF token, registration data)."""


class ProxySettings(BaseModel):
    """Login proxy parameters used when a new login is required."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    own_ip: str
    port: int
    language: str
    close_window_html: str = Field(default="", repr=False)

    @property
    def url(self) -> str:
        return f"http://{self.own_ip}:{self.port}"


class SessionConfig(BaseModel):
    """Immutable connection parameters for one init attempt.

    Parameters
    ----------
    has_credential : bool
        Whether a usable credential was supplied.
    force_refresh : bool
        Whether the caller asked for a fresh login.
    cookie : str or None
        ``Cookie`` header value built from the credential.
    csrf : str or None
        CSRF token sent with mutating requests.
    former_registration_data : dict or None
        Registration data allowing the vendor to refresh the credential.
    proxy : ProxySettings or None
        Login proxy parameters; only set when no credential is usable.
    amazon_page : str
        Amazon domain of the account.
    language : str
        ``Accept-Language`` value.
    app_name : str
        Application identity.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    has_credential: bool
    force_refresh: bool = False
    cookie: str | None = Field(default=None, repr=False)
    csrf: str | None = Field(default=None, repr=False)
    former_registration_data: dict[str, Any] | None = Field(default=None, repr=False)
    proxy: ProxySettings | None = None
    amazon_page: str
    language: str
    app_name: str

    @property
    def proxy_only(self) -> bool:
        """Whether init should start the login proxy instead of using a cookie."""
        return self.proxy is not None

    @property
    def login_url(self) -> str | None:
        return self.proxy.url if self.proxy is not None else None


def parse_credential(credential: Credential) -> dict[str, Any] | None:
    """Return the credential as a dict, or ``None`` if it is not a JSON object."""
    if isinstance(credential, Mapping):
        return dict(credential)
    if isinstance(credential, str):
        try:
            parsed = json.loads(credential)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def is_credential_empty(credential: Any) -> bool:
    """Check whether *credential* carries no usable data.

    ``None``, the literal string ``"null"``, whitespace-only strings,
    strings parsing to an empty JSON value and empty mappings are empty.
    Strings that are not JSON at all are treated as opaque tokens and are
    not empty.
    """
    if credential is None or credential == NULL_CREDENTIAL:
        return True

    if isinstance(credential, str):
        if not credential.strip():
            return True
        try:
            parsed = json.loads(credential)
        except ValueError:
            return False
        if isinstance(parsed, (dict, list)):
            return len(parsed) == 0
        # JSON scalars have no keys to authenticate with.
        return True

    if isinstance(credential, Mapping):
        return len(credential) == 0

    return not credential


def detect_local_ip() -> str:
    """Best-effort local IPv4 address, ``"0.0.0.0"`` if none is found."""
    with contextlib.suppress(OSError), socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        # No packets are sent for a UDP connect; it only selects a route.
        sock.connect(("10.255.255.255", 1))
        address = sock.getsockname()[0]
        if address and not address.startswith("127."):
            return str(address)
    return "0.0.0.0"


def build_session_config(
    credential: Credential,
    config: EchoConfig,
    *,
    amazon_page: str | None = None,
    force_refresh: bool = False,
    own_ip: str = "0.0.0.0",
) -> SessionConfig:
    """Build the session configuration for one init attempt.

    A pure function of its inputs: the proxy address is passed in rather
    than detected here.
    """
    page = amazon_page or config.amazon_page
    has_credential = not is_credential_empty(credential)

    if not has_credential or force_refresh:
        return SessionConfig(
            has_credential=has_credential,
            force_refresh=force_refresh,
            proxy=ProxySettings(
                own_ip=config.proxy_own_ip or own_ip,
                port=config.proxy_port,
                language=config.language,
                close_window_html=render_close_window_html(
                    config.close_window_message,
                    config.close_window_image_url,
                ),
            ),
            amazon_page=page,
            language=config.language,
            app_name=config.app_name,
        )

    data = parse_credential(credential)
    if data is None:
        # Opaque string credential: treat it as a ready-made cookie header.
        return SessionConfig(
            has_credential=True,
            cookie=str(credential),
            amazon_page=page,
            language=config.language,
            app_name=config.app_name,
        )

    login_cookie = data.get("loginCookie") or data.get("localCookie") or ""
    csrf = data.get("csrf")
    cookie = f"{login_cookie}; csrf={csrf}" if csrf else str(login_cookie)
    return SessionConfig(
        has_credential=True,
        cookie=cookie or None,
        csrf=str(csrf) if csrf else None,
        former_registration_data=data,
        amazon_page=page,
        language=config.language,
        app_name=config.app_name,
    )
