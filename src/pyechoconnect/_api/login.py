"""Login helpers.

Builds the Amazon OpenID / PKCE sign-in URL and the page the login proxy
shows once authentication is complete.
"""

from __future__ import annotations

import base64
import hashlib
import html
import secrets
from dataclasses import dataclass
from urllib.parse import quote

from pyechoconnect._constants import DEVICE_ID_SUFFIX


@dataclass(frozen=True)
class LoginUrlDetails:
    """Sign-in URL plus the PKCE material needed to finish the exchange."""

    login_url: str
    device_id: str
    code_verifier: str
    code_challenge: str


def generate_device_id() -> str:
    """Random registration device id in the format the vendor expects."""
    random_hex = secrets.token_hex(16).upper()
    return random_hex.encode("ascii").hex() + DEVICE_ID_SUFFIX


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_challenge() -> tuple[str, str]:
    """Return a ``(code_verifier, code_challenge)`` pair for S256 PKCE."""
    code_verifier = _b64url(secrets.token_bytes(32))
    code_challenge = _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())
    return code_verifier, code_challenge


def page_handle(amazon_page: str) -> str:
    """Association handle suffix for *amazon_page* (only ``.jp`` uses one)."""
    tld = amazon_page.rsplit(".", 1)[-1]
    return f"_{tld}" if tld == "jp" else ""


def build_signin_url(
    amazon_page: str,
    language: str,
    *,
    device_id: str | None = None,
) -> LoginUrlDetails:
    """Build the Amazon sign-in URL for a new device registration.

    Parameters
    ----------
    amazon_page : str
        Amazon domain (e.g. ``"amazon.de"``).
    language : str
        Sign-in page language (e.g. ``"en_EN"``).
    device_id : str or None
        Registration device id to reuse; a new one is generated otherwise.
    """
    resolved_device_id = device_id or generate_device_id()
    code_verifier, code_challenge = generate_code_challenge()
    handle = page_handle(amazon_page)
    base = f"https://www.{amazon_page}"

    params = [
        ("openid.return_to", f"{base}/ap/maplanding"),
        ("openid.assoc_handle", f"amzn_dp_project_dee_ios{handle}"),
        ("openid.identity", "http://specs.openid.net/auth/2.0/identifier_select"),
        ("pageId", f"amzn_dp_project_dee_ios{handle}"),
        ("accountStatusPolicy", "P1"),
        ("openid.claimed_id", "http://specs.openid.net/auth/2.0/identifier_select"),
        ("openid.mode", "checkid_setup"),
        ("openid.ns.oa2", f"{base}/ap/ext/oauth/2"),
        ("openid.oa2.client_id", f"device:{resolved_device_id}"),
        ("openid.ns.pape", "http://specs.openid.net/extensions/pape/1.0"),
        ("openid.oa2.response_type", "code"),
        ("openid.ns", "http://specs.openid.net/auth/2.0"),
        ("openid.pape.max_auth_age", "0"),
        ("openid.oa2.scope", "device_auth_access"),
        ("openid.oa2.code_challenge_method", "S256"),
        ("openid.oa2.code_challenge", code_challenge),
        ("language", language),
    ]
    query = "&".join(f"{key}={quote(value, safe='')}" for key, value in params)
    return LoginUrlDetails(
        login_url=f"{base}/ap/signin?{query}",
        device_id=resolved_device_id,
        code_verifier=code_verifier,
        code_challenge=code_challenge,
    )


def render_close_window_html(message: str, image_url: str = "") -> str:
    """HTML page shown by the login proxy after a successful login."""
    image_html = (
        f'<div class="image-container"><img src="{html.escape(image_url, quote=True)}" alt=""></div>'
        if image_url
        else ""
    )
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="UTF-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
        "<title>Login complete</title>"
        "<style>"
        "body{font-family:Arial,sans-serif;display:flex;flex-direction:column;justify-content:center;"
        "align-items:center;height:100vh;margin:0;background-color:#f0f0f0}"
        ".image-container{margin-bottom:20px}img{max-width:100%;height:auto}"
        ".message{font-size:24px;color:#333;text-align:center}"
        "</style></head><body>"
        f'{image_html}<div class="message">{html.escape(message)}</div>'
        "</body></html>"
    )
