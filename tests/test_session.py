from __future__ import annotations

import pytest

from pyechoconnect.config import EchoConfig
from pyechoconnect.session import build_session_config, is_credential_empty, parse_credential


@pytest.mark.parametrize(
    "credential",
    [None, "null", "", "   ", "{}", "[]", '""', "0", {}],
)
def test_is_credential_empty_true(credential: object) -> None:
    assert is_credential_empty(credential) is True


@pytest.mark.parametrize(
    "credential",
    ['{"loginCookie": "a=b"}', "session-id=abc", {"loginCookie": "a=b"}, "[1]", 42, True],
)
def test_is_credential_empty_false(credential: object) -> None:
    assert is_credential_empty(credential) is False


def test_parse_credential_accepts_json_object_strings_only() -> None:
    assert parse_credential('{"csrf": "1"}') == {"csrf": "1"}
    assert parse_credential("[1, 2]") is None
    assert parse_credential("not json") is None
    assert parse_credential({"csrf": "1"}) == {"csrf": "1"}


def test_build_session_config_from_mapping() -> None:
    config = EchoConfig(amazon_page="amazon.co.uk", language="en_GB")
    credential = {"loginCookie": "session-id=abc", "csrf": "tok", "macDms": {"x": 1}}

    session = build_session_config(credential, config)

    assert session.has_credential is True
    assert session.proxy_only is False
    assert session.cookie == "session-id=abc; csrf=tok"
    assert session.csrf == "tok"
    assert session.former_registration_data == credential
    assert session.amazon_page == "amazon.co.uk"
    assert session.language == "en_GB"
    assert session.login_url is None


def test_build_session_config_opaque_string_is_cookie() -> None:
    session = build_session_config("session-id=abc", EchoConfig())
    assert session.cookie == "session-id=abc"
    assert session.csrf is None
    assert session.former_registration_data is None


def test_build_session_config_without_credential_uses_proxy() -> None:
    config = EchoConfig(proxy_port=3456)
    session = build_session_config(None, config, own_ip="10.0.0.7")

    assert session.has_credential is False
    assert session.proxy_only is True
    assert session.login_url == "http://10.0.0.7:3456"
    assert session.cookie is None
    assert session.proxy is not None
    assert "You can now close this window." in session.proxy.close_window_html


def test_build_session_config_force_refresh_ignores_credential() -> None:
    config = EchoConfig(proxy_own_ip="192.168.1.2")
    session = build_session_config({"loginCookie": "a=b"}, config, force_refresh=True, own_ip="10.0.0.7")

    assert session.has_credential is True
    assert session.force_refresh is True
    assert session.proxy_only is True
    assert session.login_url == "http://192.168.1.2:3000"


def test_build_session_config_amazon_page_override() -> None:
    session = build_session_config({"loginCookie": "a=b"}, EchoConfig(), amazon_page="amazon.com")
    assert session.amazon_page == "amazon.com"


def test_session_config_repr_hides_secrets() -> None:
    session = build_session_config({"loginCookie": "secret-cookie", "csrf": "secret-csrf"}, EchoConfig())
    text = repr(session)
    assert "secret-cookie" not in text
    assert "secret-csrf" not in text
