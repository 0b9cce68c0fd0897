"""
Shared fixtures for the auth API tests.

Every `app` gets its own in-memory SQLite database and a recording email
sender, so codes that would be emailed can be read back by the tests. The
Flask client runs with its cookie jar disabled; `Browser` keeps cookies by
hand so a test can replay a stale cookie after it has been rotated away.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest
from sqlalchemy import func, select

from api import create_app
from api.errors import EmailServiceError
from models import storage
from models.refresh_token import RefreshToken
from services.email import EmailSender

PASSWORD = "correct-horse-battery"


@dataclass
class SentEmail:
    kind: str
    to: str
    first_name: str
    code: str


class RecordingEmailSender(EmailSender):
    """Keeps every message instead of delivering it; `fail` simulates an outage."""

    def __init__(self):
        self.sent: List[SentEmail] = []
        self.fail = False

    def _record(self, kind, to_email, first_name, code):
        if self.fail:
            raise EmailServiceError("Email service error: simulated outage")
        self.sent.append(SentEmail(kind, to_email, first_name, code))

    def send_confirmation_email(self, to_email, first_name, code):
        self._record("confirmation", to_email, first_name, code)

    def send_password_reset_email(self, to_email, first_name, code):
        self._record("password_reset", to_email, first_name, code)

    def send_email_change_email(self, to_email, first_name, code):
        self._record("email_change", to_email, first_name, code)

    def last_code(self, kind: str, to: Optional[str] = None) -> str:
        for email in reversed(self.sent):
            if email.kind == kind and (to is None or email.to == to):
                return email.code
        raise AssertionError(f"no {kind} email sent to {to or 'anyone'}")


@dataclass
class SetCookie:
    value: str
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def deleted(self) -> bool:
        return self.value == "" or self.attributes.get("max-age") == "0"


def parse_set_cookies(response) -> Dict[str, SetCookie]:
    cookies = {}
    for header in response.headers.getlist("Set-Cookie"):
        pair, *attrs = [part.strip() for part in header.split(";")]
        name, _, value = pair.partition("=")
        parsed = {}
        for attr in attrs:
            key, _, attr_value = attr.partition("=")
            parsed[key.lower()] = attr_value
        cookies[name] = SetCookie(value.strip('"'), parsed)
    return cookies


class Browser:
    """A test client that stores cookies from responses and sends them back."""

    def __init__(self, client):
        self.client = client
        self.cookies: Dict[str, str] = {}

    def request(self, method, path, json=None, cookies=None):
        jar = self.cookies if cookies is None else cookies
        headers = {"Cookie": "; ".join(f"{k}={v}" for k, v in jar.items())} if jar else {}
        response = self.client.open(path, method=method, json=json, headers=headers)
        for name, cookie in parse_set_cookies(response).items():
            if cookie.deleted:
                self.cookies.pop(name, None)
            else:
                self.cookies[name] = cookie.value
        return response

    def post(self, path, json=None, cookies=None):
        return self.request("POST", path, json=json, cookies=cookies)

    def get(self, path, cookies=None):
        return self.request("GET", path, cookies=cookies)


def scalar(query):
    """Run a scalar query on a fresh session and release it."""
    try:
        return storage.get_session().execute(query).scalar_one()
    finally:
        storage.close()


def token_counts(user_id: str) -> Dict[str, int]:
    active = scalar(
        select(func.count(RefreshToken.id)).where(
            RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False)
        )
    )
    revoked = scalar(
        select(func.count(RefreshToken.id)).where(
            RefreshToken.user_id == user_id, RefreshToken.revoked.is_(True)
        )
    )
    return {"active": active, "revoked": revoked}


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def app(email_sender):
    app = create_app("testing", email_sender=email_sender)
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client(use_cookies=False)


@pytest.fixture
def browser(client):
    return Browser(client)


@pytest.fixture
def sign_up(browser):
    def _sign_up(email="ada@example.com", first_name="Ada", last_name="Lovelace", password=PASSWORD):
        return browser.post(
            "/auth/sign-up",
            json={
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "password": password,
                "confirm": password,
            },
        )

    return _sign_up


@pytest.fixture
def confirmed_user(browser, sign_up, email_sender):
    """A signed-up, confirmed account (not logged in)."""
    response = sign_up()
    assert response.status_code == 201
    code = email_sender.last_code("confirmation", "ada@example.com")
    confirm = browser.post("/auth/confirm-email", json={"email": "ada@example.com", "auth_code": code})
    assert confirm.status_code == 200
    return {"id": response.get_json()["user_id"], "email": "ada@example.com", "password": PASSWORD}


@pytest.fixture
def logged_in(browser, confirmed_user):
    """`confirmed_user` with a live session in `browser.cookies`."""
    response = browser.post(
        "/auth/log-in", json={"email": confirmed_user["email"], "password": confirmed_user["password"]}
    )
    assert response.status_code == 200
    return confirmed_user
