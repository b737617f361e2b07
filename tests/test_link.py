from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlsplit

import aiohttp
import pytest
from _fakes import KITCHEN, LIVING_ROOM

from pyechoconnect._transport import AlexaTransport, parse_cookie_header
from pyechoconnect.config import EchoConfig
from pyechoconnect.exceptions import (
    EchoAuthenticationError,
    EchoInvalidSerialError,
    EchoPushError,
    EchoTransportError,
)
from pyechoconnect.link import AlexaHttpLink
from pyechoconnect.models.routine import Routine
from pyechoconnect.session import SessionConfig, build_session_config
from pyechoconnect.vendor import VendorEvent, VendorEventKind, VendorListener

AUTHENTICATED = {"authentication": {"authenticated": True, "customerId": "A1CUSTOMER"}}

DEVICE_LIST = {
    "devices": [
        {
            "serialNumber": KITCHEN,
            "accountName": "Kitchen",
            "deviceFamily": "ECHO",
            "deviceType": "A3S5BH2HU6VAYF",
            "online": True,
            "deviceOwnerCustomerId": "A2OWNER",
        },
        {
            "serialNumber": LIVING_ROOM,
            "accountName": "Living Room",
            "deviceFamily": "KNIGHT",
            "deviceType": "A4ZP7ZC4PI6TO",
            "online": False,
        },
        {"serialNumber": "TABLET1", "accountName": "Fire Tablet", "deviceFamily": "TABLET"},
        {"accountName": "No serial", "deviceFamily": "ECHO"},
    ]
}


class _Headers:
    def __init__(self, cookies: list[str]) -> None:
        self._cookies = cookies

    def getall(self, name: str, default: list[str]) -> list[str]:
        if name.lower() == "set-cookie" and self._cookies:
            return list(self._cookies)
        return default


class _FakeResponse:
    def __init__(self, status: int = 200, body: Any = "", *, set_cookies: list[str] | None = None) -> None:
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)
        self.headers = _Headers(set_cookies or [])

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        return None




class _FakeHttp:
    """Minimal stand-in for ``aiohttp.ClientSession.request``."""

    def __init__(self, routes: dict[tuple[str, str], Any] | None = None) -> None:
        self.routes: dict[tuple[str, str], Any] = dict(routes or {})
        self.requests: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _FakeResponse:
        parts = urlsplit(url)
        record = {"method": method, "url": url, "host": parts.netloc, "path": parts.path, **kwargs}
        self.requests.append(record)
        route = self.routes.get((method, parts.path))
        if route is None:
            return _FakeResponse(404, "not found")
        if isinstance(route, BaseException):
            raise route
        if callable(route):
            return route(record)
        return route

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index]["data"])


class _FakeChannel:
    def __init__(self) -> None:
        self.connected = False
        self.session: SessionConfig | None = None
        self.emit: VendorListener | None = None

    async def connect(self, session: SessionConfig, emit: VendorListener) -> None:
        self.session = session
        self.emit = emit
        self.connected = True
        emit(VendorEvent(VendorEventKind.CONNECT))

    async def disconnect(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected


def _session(credential: Any = None, **config: Any) -> SessionConfig:
    return build_session_config(
        credential if credential is not None else {"loginCookie": "session-id=abc", "csrf": "tok"},
        EchoConfig(**config),
    )


async def _ready_link(http: _FakeHttp, **kwargs: Any) -> AlexaHttpLink:
    http.routes.setdefault(("GET", "/api/bootstrap"), _FakeResponse(200, AUTHENTICATED))
    http.routes.setdefault(("GET", "/api/devices-v2/device"), _FakeResponse(200, DEVICE_LIST))
    link = AlexaHttpLink(http, EchoConfig(), **kwargs)  # type: ignore[arg-type]
    await link.init(_session())
    await link.get_devices()
    return link


def test_parse_cookie_header() -> None:
    assert parse_cookie_header("a=1; b=2;  c=x=y; broken") == {"a": "1", "b": "2", "c": "x=y"}


@pytest.mark.asyncio
async def test_transport_sends_cookie_and_csrf_on_writes() -> None:
    http = _FakeHttp({("POST", "/x"): _FakeResponse(200, {"ok": True}), ("GET", "/x"): _FakeResponse(200, "")})
    transport = AlexaTransport(http, base_url="https://alexa.amazon.de/", language="de_DE")  # type: ignore[arg-type]
    transport.set_credentials("session-id=abc; csrf=tok", None)

    assert await transport.request("POST", "/x", json_body={"a": 1}) == {"ok": True}
    assert await transport.request("GET", "/x") is None

    post_headers = http.requests[0]["headers"]
    assert post_headers["cookie"] == "session-id=abc; csrf=tok"
    assert post_headers["csrf"] == "tok"
    assert post_headers["accept-language"] == "de-DE"
    assert http.body(0) == {"a": 1}
    assert "csrf" not in http.requests[1]["headers"]
    assert http.requests[1]["allow_redirects"] is False


@pytest.mark.asyncio
async def test_transport_error_mapping() -> None:
    http = _FakeHttp(
        {
            ("GET", "/denied"): _FakeResponse(401, "unauthorized"),
            ("GET", "/broken"): _FakeResponse(200, "{not json"),
            ("GET", "/offline"): aiohttp.ClientConnectionError("connection reset"),
            ("GET", "/slow"): TimeoutError(),
        }
    )
    transport = AlexaTransport(http, base_url="https://alexa.amazon.de")  # type: ignore[arg-type]

    with pytest.raises(EchoTransportError) as exc_info:
        await transport.request("GET", "/denied")
    assert exc_info.value.status_code == 401
    assert exc_info.value.is_unauthorized
    assert exc_info.value.endpoint == "/denied"

    with pytest.raises(EchoTransportError, match="Invalid JSON"):
        await transport.request("GET", "/broken")

    with pytest.raises(EchoTransportError) as exc_info:
        await transport.request("GET", "/offline")
    assert isinstance(exc_info.value.cause, aiohttp.ClientConnectionError)
    assert exc_info.value.status_code is None

    with pytest.raises(EchoTransportError):
        await transport.request("GET", "/slow")


@pytest.mark.asyncio
async def test_transport_tracks_rotated_cookies() -> None:
    http = _FakeHttp({("GET", "/x"): _FakeResponse(200, "{}", set_cookies=["session-id=new; Path=/", "csrf=t2"])})
    transport = AlexaTransport(http, base_url="https://alexa.amazon.de")  # type: ignore[arg-type]
    transport.set_credentials("session-id=old", "t1")

    await transport.request("GET", "/x")

    assert transport.cookies == {"session-id": "new", "csrf": "t2"}
    assert transport.csrf == "t2"


@pytest.mark.asyncio
async def test_init_rejects_proxy_only_session() -> None:
    link = AlexaHttpLink(_FakeHttp(), EchoConfig())  # type: ignore[arg-type]
    proxy_session = build_session_config(None, EchoConfig(), own_ip="10.0.0.2")

    with pytest.raises(EchoAuthenticationError):
        await link.init(proxy_session)


@pytest.mark.asyncio
async def test_init_uses_amazon_page_and_validates_cookie() -> None:
    http = _FakeHttp({("GET", "/api/bootstrap"): _FakeResponse(200, AUTHENTICATED)})
    link = AlexaHttpLink(http, EchoConfig())  # type: ignore[arg-type]
    events: list[VendorEvent] = []
    link.add_listener(events.append)

    await link.init(_session(amazon_page="amazon.co.uk"))

    assert http.requests[0]["host"] == "alexa.amazon.co.uk"
    assert http.requests[0]["params"] == {"version": "0"}
    assert events == []
    assert await link.check_authentication() is True


@pytest.mark.asyncio
async def test_init_emits_refreshed_credential() -> None:
    http = _FakeHttp(
        {("GET", "/api/bootstrap"): _FakeResponse(200, AUTHENTICATED, set_cookies=["session-id=rotated"])}
    )
    link = AlexaHttpLink(http, EchoConfig())  # type: ignore[arg-type]
    events: list[VendorEvent] = []
    link.add_listener(events.append)

    await link.init(_session({"loginCookie": "session-id=abc", "csrf": "tok", "macDms": {"device": "x"}}))

    assert [event.kind for event in events] == [VendorEventKind.CREDENTIAL_REFRESHED]
    credential = events[0].payload
    assert credential["loginCookie"] == "session-id=rotated; csrf=tok"
    assert credential["csrf"] == "tok"
    assert credential["macDms"] == {"device": "x"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [_FakeResponse(401, "denied"), _FakeResponse(200, {"authentication": {"authenticated": False}})],
)
async def test_init_rejected_credential(response: _FakeResponse) -> None:
    http = _FakeHttp({("GET", "/api/bootstrap"): response})
    link = AlexaHttpLink(http, EchoConfig())  # type: ignore[arg-type]

    with pytest.raises(EchoAuthenticationError):
        await link.init(_session())

    assert await link.check_authentication() is False


@pytest.mark.asyncio
async def test_init_server_error_propagates() -> None:
    http = _FakeHttp({("GET", "/api/bootstrap"): _FakeResponse(503, "unavailable")})
    link = AlexaHttpLink(http, EchoConfig())  # type: ignore[arg-type]

    with pytest.raises(EchoTransportError) as exc_info:
        await link.init(_session())
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_check_authentication_after_expiry() -> None:
    http = _FakeHttp()
    link = await _ready_link(http)

    http.routes[("GET", "/api/bootstrap")] = _FakeResponse(403, "expired")
    assert await link.check_authentication() is False

    http.routes[("GET", "/api/bootstrap")] = _FakeResponse(500, "boom")
    with pytest.raises(EchoTransportError):
        await link.check_authentication()


@pytest.mark.asyncio
async def test_get_devices_filters_families() -> None:
    http = _FakeHttp()
    link = await _ready_link(http)

    devices = await link.get_devices()

    assert [device.serial for device in devices] == [KITCHEN, LIVING_ROOM]
    assert devices[0].display_name == "Kitchen"
    assert devices[1].online is False
    assert http.requests[-1]["params"] == {"cached": "false"}


@pytest.mark.asyncio
async def test_send_sequence_command_builds_behavior() -> None:
    http = _FakeHttp({("POST", "/api/behaviors/preview"): _FakeResponse(200, "")})
    link = await _ready_link(http)

    await link.send_sequence_command(KITCHEN, "speak", "Hello")

    body = http.body()
    assert body["behaviorId"] == "PREVIEW"
    assert body["status"] == "ENABLED"
    node = json.loads(body["sequenceJson"])["startNode"]
    assert node["type"] == "Alexa.Speak"
    payload = node["operationPayload"]
    assert payload["textToSpeak"] == "Hello"
    assert payload["deviceSerialNumber"] == KITCHEN
    assert payload["customerId"] == "A2OWNER"
    assert payload["locale"] == "en-EN"
    assert http.requests[-1]["headers"]["csrf"] == "tok"


@pytest.mark.asyncio
async def test_sequence_commands_use_account_customer_by_default() -> None:
    http = _FakeHttp({("POST", "/api/behaviors/preview"): _FakeResponse(200, "")})
    link = await _ready_link(http)

    await link.send_sequence_command(LIVING_ROOM, "volume", 30)
    await link.send_sequence_command(LIVING_ROOM, "textCommand", "turn on the lights")

    volume_node = json.loads(http.body(-2)["sequenceJson"])["startNode"]
    assert volume_node["type"] == "Alexa.DeviceControls.Volume"
    assert volume_node["operationPayload"] == {
        "deviceType": "A4ZP7ZC4PI6TO",
        "deviceSerialNumber": LIVING_ROOM,
        "customerId": "A1CUSTOMER",
        "locale": "en-EN",
        "value": 30,
    }
    text_node = json.loads(http.body()["sequenceJson"])["startNode"]
    assert text_node["type"] == "Alexa.TextCommand"
    assert text_node["skillId"] == "amzn1.ask.1p.tellalexa"


@pytest.mark.asyncio
async def test_commands_for_unknown_serial() -> None:
    link = await _ready_link(_FakeHttp())
    with pytest.raises(EchoInvalidSerialError):
        await link.send_sequence_command("UNKNOWN", "speak", "Hello")


@pytest.mark.asyncio
async def test_player_command() -> None:
    http = _FakeHttp({("POST", "/api/np/command"): _FakeResponse(200, "")})
    link = await _ready_link(http)

    await link.send_command(KITCHEN, "shuffle", True)
    await link.send_command(KITCHEN, "next", True)

    assert http.requests[-2]["params"] == {"deviceSerialNumber": KITCHEN, "deviceType": "A3S5BH2HU6VAYF"}
    assert http.body(-2) == {"type": "ShuffleCommand", "shuffle": True}
    assert http.body() == {"type": "NextCommand"}


@pytest.mark.asyncio
async def test_execute_routine_binds_device() -> None:
    http = _FakeHttp({("POST", "/api/behaviors/preview"): _FakeResponse(200, "")})
    link = await _ready_link(http)
    routine = Routine.model_validate(
        {
            "automationId": "amzn1.alexa.automation.1",
            "name": "Morning",
            "sequence": {"startNode": {"deviceSerialNumber": "ALEXA_CURRENT_DSN", "customerId": "ALEXA_CUSTOMER_ID"}},
        }
    )

    await link.execute_routine(KITCHEN, routine)

    body = http.body()
    assert body["behaviorId"] == "amzn1.alexa.automation.1"
    sequence = json.loads(body["sequenceJson"])
    assert sequence["startNode"] == {"deviceSerialNumber": KITCHEN, "customerId": "A2OWNER"}


@pytest.mark.asyncio
async def test_routines_volumes_and_display_power() -> None:
    http = _FakeHttp(
        {
            ("GET", "/api/behaviors/v2/automations"): _FakeResponse(
                200,
                [
                    {"automationId": "a1", "name": "Morning", "sequence": {"x": 1}},
                    {"automationId": "a2", "name": "Empty"},
                ],
            ),
            ("GET", "/api/devices/deviceType/dsn/audio/v1/allDeviceVolumes"): _FakeResponse(
                200, {"volumes": [{"dsn": KITCHEN, "speakerVolume": 25}, {"speakerVolume": 10}]}
            ),
            ("GET", f"/api/display-power/{LIVING_ROOM}"): _FakeResponse(200, {"displayPowerState": "ON"}),
            ("PUT", f"/api/display-power/{LIVING_ROOM}"): _FakeResponse(200, ""),
        }
    )
    link = await _ready_link(http)

    routines = await link.get_routines(10)
    assert [routine.automation_id for routine in routines] == ["a1"]

    volumes = await link.get_all_device_volumes()
    assert [(volume.serial, volume.speaker_volume) for volume in volumes] == [(KITCHEN, 25)]

    assert await link.get_display_power(LIVING_ROOM) is True
    await link.set_display_power(LIVING_ROOM, False)
    assert http.body()["displayPowerState"] == "OFF"


@pytest.mark.asyncio
async def test_push_requires_channel_and_session() -> None:
    link = AlexaHttpLink(_FakeHttp(), EchoConfig())  # type: ignore[arg-type]
    with pytest.raises(EchoPushError):
        await link.init_push_connection()

    channel = _FakeChannel()
    link = AlexaHttpLink(_FakeHttp(), EchoConfig(), push_channel=channel)  # type: ignore[arg-type]
    with pytest.raises(EchoPushError):
        await link.init_push_connection()


@pytest.mark.asyncio
async def test_push_channel_events_reach_listeners() -> None:
    channel = _FakeChannel()
    link = await _ready_link(_FakeHttp(), push_channel=channel)
    events: list[VendorEvent] = []
    remove = link.add_listener(events.append)

    def _broken(_event: VendorEvent) -> None:
        raise RuntimeError("listener bug")

    link.add_listener(_broken)
    await link.init_push_connection()

    assert link.is_push_connected()
    assert channel.session is not None
    assert [event.kind for event in events] == [VendorEventKind.CONNECT]

    remove()
    assert channel.emit is not None
    channel.emit(VendorEvent(VendorEventKind.VOLUME_CHANGE, {"dopplerId": {"deviceSerialNumber": KITCHEN}}))
    assert len(events) == 1

    await link.stop()
    assert not link.is_push_connected()
