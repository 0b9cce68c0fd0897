"""End-to-end tests for log-in, refresh, log-out and /auth/me."""
from tests.conftest import Browser, PASSWORD, parse_set_cookies, token_counts


class TestLogIn:
    def test_unconfirmed_account_cannot_log_in(self, browser, sign_up):
        sign_up()

        response = browser.post("/auth/log-in", json={"email": "ada@example.com", "password": PASSWORD})

        assert response.status_code == 403
        assert response.get_json()["error"]["code"] == "EMAIL_NOT_CONFIRMED"
        assert browser.cookies == {}

    def test_log_in_opens_one_session(self, browser, confirmed_user):
        response = browser.post("/auth/log-in", json={"email": "ADA@example.com", "password": PASSWORD})

        assert response.status_code == 200
        assert response.get_json() == {"message": "Logged in successfully.", "user_id": confirmed_user["id"]}
        assert set(browser.cookies) == {"access_token", "refresh_token"}
        assert token_counts(confirmed_user["id"]) == {"active": 1, "revoked": 0}

    def test_wrong_password_and_unknown_email_look_the_same(self, browser, confirmed_user):
        wrong = browser.post("/auth/log-in", json={"email": "ada@example.com", "password": "wrong-password"})
        unknown = browser.post("/auth/log-in", json={"email": "ghost@example.com", "password": PASSWORD})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {
            "error": {"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"}
        }
        assert token_counts(confirmed_user["id"]) == {"active": 0, "revoked": 0}

    def test_session_cookie_without_remember_me(self, browser, confirmed_user):
        response = browser.post("/auth/log-in", json={"email": "ada@example.com", "password": PASSWORD})

        refresh = parse_set_cookies(response)["refresh_token"]
        assert "max-age" not in refresh.attributes
        assert refresh.attributes["path"] == "/auth"

    def test_persistent_cookie_with_remember_me(self, browser, confirmed_user):
        response = browser.post(
            "/auth/log-in", json={"email": "ada@example.com", "password": PASSWORD, "remember_me": True}
        )

        assert parse_set_cookies(response)["refresh_token"].attributes["max-age"] == "604800"


class TestMe:
    def test_returns_profile(self, browser, logged_in):
        response = browser.get("/auth/me")

        assert response.status_code == 200
        user = response.get_json()["user"]
        assert user["id"] == logged_in["id"]
        assert user["email"] == "ada@example.com"
        assert user["first_name"] == "Ada"
        assert user["last_name"] == "Lovelace"
        assert user["email_confirmed"] is True
        assert "hashed_password" not in user

    def test_requires_access_cookie(self, browser):
        response = browser.get("/auth/me")

        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "UNAUTHORIZED"

    def test_rejects_garbage_token(self, browser):
        response = browser.get("/auth/me", cookies={"access_token": "garbage"})

        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_rejects_refresh_token_as_access(self, browser, logged_in):
        response = browser.get("/auth/me", cookies={"access_token": browser.cookies["refresh_token"]})

        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "TOKEN_INVALID"


class TestRefresh:
    def test_rotates_the_refresh_token(self, browser, logged_in):
        old_refresh = browser.cookies["refresh_token"]
        before = token_counts(logged_in["id"])

        response = browser.post("/auth/refresh")

        assert response.status_code == 200
        assert response.get_json() == {"message": "Session refreshed successfully."}
        assert browser.cookies["refresh_token"] != old_refresh
        after = token_counts(logged_in["id"])
        assert after["active"] == 1
        assert after["revoked"] >= before["revoked"] + 1

    def test_old_refresh_token_cannot_be_reused(self, browser, logged_in):
        stale = dict(browser.cookies)
        browser.post("/auth/refresh")

        response = browser.post("/auth/refresh", cookies=stale)

        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "UNAUTHORIZED"
        assert token_counts(logged_in["id"])["active"] == 1

    def test_requires_refresh_cookie(self, browser):
        response = browser.post("/auth/refresh")

        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "UNAUTHORIZED"

    def test_rejects_access_token_as_refresh(self, browser, logged_in):
        response = browser.post("/auth/refresh", cookies={"refresh_token": browser.cookies["access_token"]})

        assert response.status_code == 401
        assert response.get_json()["error"]["code"] == "TOKEN_INVALID"

    def test_keeps_remember_me(self, browser, confirmed_user):
        browser.post("/auth/log-in", json={"email": "ada@example.com", "password": PASSWORD, "remember_me": True})

        response = browser.post("/auth/refresh")

        assert parse_set_cookies(response)["refresh_token"].attributes["max-age"] == "604800"

    def test_keeps_session_only_cookie(self, browser, logged_in):
        response = browser.post("/auth/refresh")

        assert "max-age" not in parse_set_cookies(response)["refresh_token"].attributes


class TestLogOut:
    def test_revokes_and_clears(self, browser, logged_in):
        response = browser.post("/auth/log-out")

        assert response.status_code == 200
        assert response.get_json() == {"message": "Logged out successfully."}
        cookies = parse_set_cookies(response)
        assert cookies["access_token"].deleted
        assert cookies["refresh_token"].deleted
        assert browser.cookies == {}
        assert token_counts(logged_in["id"]) == {"active": 0, "revoked": 1}

    def test_succeeds_without_cookies(self, browser):
        response = browser.post("/auth/log-out")

        assert response.status_code == 200

    def test_succeeds_with_invalid_refresh_token(self, browser):
        response = browser.post("/auth/log-out", cookies={"refresh_token": "garbage"})

        assert response.status_code == 200

    def test_only_ends_the_presented_session(self, client, browser, logged_in):
        other = Browser(client)
        other.post("/auth/log-in", json={"email": "ada@example.com", "password": PASSWORD})

        browser.post("/auth/log-out")

        assert token_counts(logged_in["id"]) == {"active": 1, "revoked": 1}
        assert other.post("/auth/refresh").status_code == 200
