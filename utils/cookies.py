"""
Session cookies.
- access_token: path "/", lives as long as the access token
- refresh_token: path "/auth" (only auth endpoints ever see it), persistent
  only when the session was opened with remember-me, else a browser-session cookie
Both are HttpOnly and SameSite=Strict; Secure follows COOKIE_SECURE.
"""
from __future__ import annotations

from flask import current_app

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
ACCESS_COOKIE_PATH = "/"
REFRESH_COOKIE_PATH = "/auth"


def _domain():
    domain = current_app.config.get("COOKIE_DOMAIN")
    return domain.strip() if domain and domain.strip() else None


def set_access_cookie(response, token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        token,
        max_age=int(current_app.config["JWT_ACCESS_TOKEN_EXPIRY_SECONDS"]),
        path=ACCESS_COOKIE_PATH,
        domain=_domain(),
        secure=bool(current_app.config.get("COOKIE_SECURE")),
        httponly=True,
        samesite="Strict",
    )


def set_refresh_cookie(response, token: str, remember_me: bool) -> None:
    max_age = int(current_app.config["JWT_REFRESH_TOKEN_EXPIRY_SECONDS"]) if remember_me else None
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=max_age,
        path=REFRESH_COOKIE_PATH,
        domain=_domain(),
        secure=bool(current_app.config.get("COOKIE_SECURE")),
        httponly=True,
        samesite="Strict",
    )


def set_session_cookies(response, access_token: str, refresh_token: str, remember_me: bool) -> None:
    set_access_cookie(response, access_token)
    set_refresh_cookie(response, refresh_token, remember_me)


def clear_session_cookies(response) -> None:
    response.delete_cookie(ACCESS_COOKIE, path=ACCESS_COOKIE_PATH, domain=_domain(),
                           httponly=True, samesite="Strict")
    response.delete_cookie(REFRESH_COOKIE, path=REFRESH_COOKIE_PATH, domain=_domain(),
                           httponly=True, samesite="Strict")
