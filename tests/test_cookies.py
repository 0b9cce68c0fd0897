"""Tests for session cookie attributes."""
from flask import Response

from tests.conftest import parse_set_cookies
from utils.cookies import clear_session_cookies, set_session_cookies


def _cookies(app, remember_me, **config):
    app.config.update(config)
    with app.test_request_context():
        response = Response()
        set_session_cookies(response, "access.jwt", "refresh.jwt", remember_me)
    return parse_set_cookies(response)


class TestSessionCookies:
    def test_access_cookie_attributes(self, app):
        access = _cookies(app, remember_me=False)["access_token"]

        assert access.value == "access.jwt"
        assert access.attributes["path"] == "/"
        assert access.attributes["max-age"] == "900"
        assert access.attributes["samesite"] == "Strict"
        assert "httponly" in access.attributes
        assert "secure" not in access.attributes

    def test_refresh_cookie_is_scoped_to_auth(self, app):
        refresh = _cookies(app, remember_me=False)["refresh_token"]

        assert refresh.value == "refresh.jwt"
        assert refresh.attributes["path"] == "/auth"
        assert "httponly" in refresh.attributes

    def test_session_only_refresh_cookie_without_remember_me(self, app):
        refresh = _cookies(app, remember_me=False)["refresh_token"]

        assert "max-age" not in refresh.attributes
        assert "expires" not in refresh.attributes

    def test_persistent_refresh_cookie_with_remember_me(self, app):
        refresh = _cookies(app, remember_me=True)["refresh_token"]

        assert refresh.attributes["max-age"] == "604800"

    def test_secure_and_domain_from_config(self, app):
        cookies = _cookies(app, remember_me=False, COOKIE_SECURE=True, COOKIE_DOMAIN="example.com")

        for cookie in cookies.values():
            assert "secure" in cookie.attributes
            assert cookie.attributes["domain"] == "example.com"

    def test_blank_domain_is_host_only(self, app):
        cookies = _cookies(app, remember_me=False, COOKIE_DOMAIN="   ")

        for cookie in cookies.values():
            assert "domain" not in cookie.attributes

    def test_clear_session_cookies(self, app):
        with app.test_request_context():
            response = Response()
            clear_session_cookies(response)
        cookies = parse_set_cookies(response)

        assert cookies["access_token"].deleted
        assert cookies["access_token"].attributes["path"] == "/"
        assert cookies["refresh_token"].deleted
        assert cookies["refresh_token"].attributes["path"] == "/auth"
