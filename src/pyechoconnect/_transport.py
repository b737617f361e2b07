"""HTTP transport with cookie and CSRF management."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from http.cookies import CookieError, SimpleCookie
from typing import Any, Protocol

import aiohttp

from pyechoconnect._constants import USER_AGENT
from pyechoconnect._redact import redact_for_log
from pyechoconnect.exceptions import EchoTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`AlexaTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any: ...


def parse_cookie_header(header: str) -> dict[str, str]:
    cookies: dict[str, str] = {}
    for part in header.split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            cookies[name] = value
    return cookies


class AlexaTransport:
    """HTTP transport that keeps the session cookie and CSRF token in sync."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        base_url: str,
        language: str = "en_EN",
        timeout: float = 30.0,
    ) -> None:
        self._http = http_session
        self._base_url = base_url.rstrip("/")
        self._language = language.replace("_", "-")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._cookies: dict[str, str] = {}
        self._cookie_header: str = ""
        self._csrf: str | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def has_cookie(self) -> bool:
        return bool(self._cookie_header)

    @property
    def cookie_header(self) -> str:
        return self._cookie_header

    @property
    def cookies(self) -> dict[str, str]:
        return dict(self._cookies)

    @property
    def csrf(self) -> str | None:
        return self._csrf

    def set_base_url(self, base_url: str) -> None:
        self._base_url = base_url.rstrip("/")

    def set_credentials(self, cookie: str | None, csrf: str | None) -> None:
        """Replace the stored cookie jar with *cookie* and use *csrf* for writes."""
        self._cookies = parse_cookie_header(cookie or "")
        self._csrf = csrf or self._cookies.get("csrf")
        self._rebuild_cookie_header()

    def clear_credentials(self) -> None:
        self._cookies = {}
        self._cookie_header = ""
        self._csrf = None

    def _rebuild_cookie_header(self) -> None:
        self._cookie_header = "; ".join(f"{k}={v}" for k, v in self._cookies.items())

    def _update_cookies(self, headers: Any) -> None:
        """Extract Set-Cookie headers and store them."""
        raw_cookies = headers.getall("Set-Cookie", [])
        changed = False
        for raw in raw_cookies:
            cookie: SimpleCookie = SimpleCookie()
            try:
                cookie.load(raw)
            except CookieError:
                _logger.debug("Ignoring malformed Set-Cookie header")
                continue
            for key, morsel in cookie.items():
                value = morsel.value
                if self._cookies.get(key) != value:
                    self._cookies[key] = value
                    changed = True
                if key == "csrf":
                    self._csrf = value

        if changed:
            self._rebuild_cookie_header()

    def _build_headers(self, method: str) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json; charset=utf-8",
            "accept-language": self._language,
            "user-agent": USER_AGENT,
            "referer": f"{self._base_url}/spa/index.html",
            "origin": self._base_url,
        }
        if self._cookie_header:
            headers["cookie"] = self._cookie_header
        if self._csrf and method.upper() != "GET":
            headers["csrf"] = self._csrf
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` when empty)."""
        url = f"{self._base_url}{endpoint}"
        headers = self._build_headers(method)
        data: str | None = None
        if json_body is not None:
            headers["content-type"] = "application/json; charset=UTF-8"
            data = json.dumps(json_body, separators=(",", ":"))

        _logger.debug("%s %s params=%s body=%s", method, url, params, redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=data,
                headers=headers,
                timeout=self._timeout,
                allow_redirects=False,
            ) as resp:
                self._update_cookies(resp.headers)
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise EchoTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except EchoTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise EchoTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
                cause=exc,
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise EchoTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
                cause=exc,
            ) from exc
