"""Tests for session.py state invariants."""

import httpx
import pytest

from storefront_launcher.exceptions import AddressError, SessionStateError
from storefront_launcher.session import GatewaySession, parse_authority


class TestParseAuthority:
    def test_https(self):
        url = parse_authority("https://gateway.example.com/")
        assert url.host == "gateway.example.com"

    @pytest.mark.parametrize("uri", ["", "gateway.example.com", "/Citrix/StoreWeb/", "ftp://gateway.example.com/", "https://"])
    def test_rejects(self, uri):
        with pytest.raises(AddressError):
            parse_authority(uri)


class TestGatewaySession:
    def test_starts_empty(self):
        session = GatewaySession.start("https://gateway.example.com/")
        assert session.initial_authority is None
        assert session.internal_authority is None
        assert session.csrf_token is None
        assert session.resource_list_path is None
        assert len(session.cookies.jar) == 0
        assert session.cookie_domain == "gateway.example.com"

    def test_each_session_gets_its_own_jar(self):
        first = GatewaySession.start("https://gateway.example.com/")
        first.cookies.set("CsrfToken", "abc", domain="gateway.example.com")
        second = GatewaySession.start("https://gateway.example.com/")
        assert len(second.cookies.jar) == 0

    def test_uses_given_jar(self):
        cookies = httpx.Cookies()
        session = GatewaySession.start("https://gateway.example.com/", cookies=cookies)
        session.cookies.set("a", "1", domain="gateway.example.com")
        assert cookies.get("a") == "1"

    def test_internal_requires_authentication(self):
        session = GatewaySession.start("https://gateway.example.com/")
        with pytest.raises(SessionStateError):
            session.set_internal(httpx.URL("https://gateway.example.com/Citrix/StoreWeb/"))
        assert session.internal_authority is None

    def test_internal_after_authentication(self):
        session = GatewaySession.start("https://gateway.example.com/")
        session.authenticated = True
        session.set_internal(httpx.URL("https://gateway.example.com/Citrix/StoreWeb/"))
        assert session.require_internal().path == "/Citrix/StoreWeb/"

    def test_require_internal_before_discovery(self):
        session = GatewaySession.start("https://gateway.example.com/")
        with pytest.raises(SessionStateError):
            session.require_internal()

    def test_missing_csrf_is_an_error(self):
        session = GatewaySession.start("https://gateway.example.com/")
        with pytest.raises(SessionStateError, match="CSRF"):
            session.require_csrf()
        session.csrf_token = ""
        with pytest.raises(SessionStateError):
            session.require_csrf()

    def test_require_field(self):
        session = GatewaySession.start("https://gateway.example.com/")
        with pytest.raises(SessionStateError, match="resource_list_path"):
            session.require("resource_list_path")
        session.resource_list_path = "Resources/List"
        assert session.require("resource_list_path") == "Resources/List"

    def test_empty_extracted_value_is_kept(self):
        session = GatewaySession.start("https://gateway.example.com/")
        session.resource_list_path = ""
        assert session.require("resource_list_path") == ""
