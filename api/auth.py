"""
Authentication blueprint:
- POST /auth/sign-up
- POST /auth/confirm-email
- POST /auth/log-in
- POST /auth/log-out
- POST /auth/refresh
- GET  /auth/me
- POST /auth/request-email-change
- POST /auth/confirm-email-change
- POST /auth/forgot-password
- POST /auth/verify-forgot-password
- POST /auth/change-password
- POST /auth/set-password

Sessions live in two HttpOnly cookies: a short-lived access token and a
refresh token whose jti hash is stored in refresh_tokens. Every use of a
refresh token consumes it and issues a new one in the same transaction as
whatever the consume authorizes, so a session never forks and never vanishes
half way.
"""
from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Tuple

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from api.errors import (
    ApiError,
    AuthCodeExpired,
    EmailAlreadyExists,
    EmailNotConfirmed,
    EmailServiceError,
    InvalidAuthCode,
    InvalidCredentials,
    TokenInvalid,
    Unauthorized,
)
from models import storage, code_store, session_store, user_store
from models.auth_code import AuthCodeType
from models.base_model import utcnow
from models.schemas.auth import (
    ChangePasswordSchema,
    ConfirmEmailChangeSchema,
    ConfirmEmailSchema,
    ForgotPasswordSchema,
    LogInSchema,
    RequestEmailChangeSchema,
    SetPasswordSchema,
    SignUpSchema,
    VerifyForgotPasswordSchema,
)
from models.schemas.user import UserOutSchema
from utils.codes import (
    generate_code,
    hash_code,
    hash_email_scoped,
    normalize_email,
    verify_code,
    verify_email_scoped,
)
from utils.cookies import REFRESH_COOKIE, clear_session_cookies, set_access_cookie, set_session_cookies
from utils.decorators import jwt_required
from utils.security import hash_password, hash_token_id, verify_password
from utils.tokens import RefreshTokenClaims, decode_refresh, issue_access, issue_refresh

bp = Blueprint("auth", __name__, url_prefix="/auth")

sign_up_schema = SignUpSchema()
confirm_email_schema = ConfirmEmailSchema()
log_in_schema = LogInSchema()
request_email_change_schema = RequestEmailChangeSchema()
confirm_email_change_schema = ConfirmEmailChangeSchema()
forgot_password_schema = ForgotPasswordSchema()
verify_forgot_password_schema = VerifyForgotPasswordSchema()
change_password_schema = ChangePasswordSchema()
set_password_schema = SetPasswordSchema()
user_out_schema = UserOutSchema()

EMAIL_CHANGE_MESSAGE = "If this email is available, a confirmation code has been sent."
FORGOT_PASSWORD_MESSAGE = "If an account with this email exists, a password reset code has been sent."


def _load(schema) -> dict:
    payload = request.get_json(silent=True) or {}
    return schema.load(payload)


def _email_sender():
    return current_app.extensions["email_sender"]


def _code_expires_at():
    return utcnow() + timedelta(seconds=current_app.config["AUTH_CODE_EXPIRY_SECONDS"])


def _issue_access(user_id: str, email: str) -> str:
    cfg = current_app.config
    return issue_access(user_id, email, cfg["JWT_SECRET"], cfg["JWT_ACCESS_TOKEN_EXPIRY_SECONDS"],
                        cfg["JWT_ALGORITHM"])


def _open_session(session, user_id: str, email: str, remember_me: bool) -> Tuple[str, str]:
    """Issue an access/refresh pair and store the refresh jti hash in `session`."""
    cfg = current_app.config
    ttl = cfg["JWT_REFRESH_TOKEN_EXPIRY_SECONDS"]
    access_token = _issue_access(user_id, email)
    refresh_token, jti = issue_refresh(user_id, cfg["JWT_SECRET"], ttl, remember_me, cfg["JWT_ALGORITHM"])
    session_store.create(session, user_id, hash_token_id(jti), utcnow() + timedelta(seconds=ttl))
    return access_token, refresh_token


def _refresh_claims() -> RefreshTokenClaims:
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise Unauthorized()
    return decode_refresh(token, current_app.config["JWT_SECRET"], current_app.config["JWT_ALGORITHM"])


def _subject_id(sub: str) -> str:
    try:
        return str(uuid.UUID(sub))
    except (TypeError, ValueError):
        raise TokenInvalid()


def _send_quietly(send, email_type: str, to_email: str) -> None:
    """Deliver a best-effort email; failures are logged, never surfaced to the caller."""
    try:
        send()
    except EmailServiceError as exc:
        current_app.logger.warning("Suppressed %s email failure for %s: %s", email_type, to_email, exc.message)


@bp.post("/sign-up")
def sign_up():
    """
    Register a new user and email a confirmation code.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [first_name, last_name, email, password, confirm]
          properties:
            first_name: { type: string }
            last_name: { type: string }
            email: { type: string }
            password: { type: string }
            confirm: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: EMAIL_ALREADY_EXISTS
    """
    data = _load(sign_up_schema)
    email = data["email"]

    if user_store.email_exists(storage.get_session(), email):
        raise EmailAlreadyExists()

    hashed_password = hash_password(data["password"])
    code = generate_code()

    # user, code and delivery succeed together or not at all; both rows are
    # flushed before the send and the commit is the last step
    try:
        with storage.transaction() as session:
            user = user_store.create_user(session, data["first_name"], data["last_name"], email, hashed_password)
            code_store.create(session, user.id, hash_code(code), AuthCodeType.EMAIL_CONFIRMATION,
                              _code_expires_at())
            _email_sender().send_confirmation_email(email, data["first_name"], code)
    except IntegrityError:
        raise EmailAlreadyExists()

    return jsonify(
        {
            "message": "Account created. Please check your email for a confirmation code.",
            "user_id": user.id,
        }
    ), 201


@bp.post("/confirm-email")
def confirm_email():
    """
    Confirm an email address with the code sent at sign-up.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, auth_code]
          properties:
            email: { type: string }
            auth_code: { type: string }
    responses:
      200:
        description: Confirmed (or already confirmed)
      400:
        description: AUTH_CODE_EXPIRED / INVALID_AUTH_CODE
      401:
        description: INVALID_CREDENTIALS
    """
    data = _load(confirm_email_schema)
    session = storage.get_session()

    user = user_store.find_by_email(session, data["email"])
    if not user:
        raise InvalidCredentials()
    if user.email_confirmed:
        return jsonify({"message": "Email already confirmed."}), 200

    auth_code = code_store.find_valid(session, user.id, AuthCodeType.EMAIL_CONFIRMATION)
    if not auth_code:
        raise AuthCodeExpired()
    if not verify_code(data["auth_code"], auth_code.code_hash):
        raise InvalidAuthCode()

    with storage.transaction() as session:
        if not code_store.mark_used(session, auth_code.id):
            raise AuthCodeExpired()
        user_store.confirm_email(session, user.id)

    return jsonify({"message": "Email confirmed successfully."}), 200


@bp.post("/log-in")
def log_in():
    """
    Log in: sets access_token and refresh_token cookies
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
             remember_me: { type: boolean }
    responses:
      200:
        description: OK (cookies set)
      401:
        description: INVALID_CREDENTIALS
      403:
        description: EMAIL_NOT_CONFIRMED
    """
    data = _load(log_in_schema)
    session = storage.get_session()

    user = user_store.find_by_email(session, data["email"])
    if not user or not verify_password(data["password"], user.hashed_password):
        raise InvalidCredentials()
    if not user.email_confirmed:
        raise EmailNotConfirmed()

    remember_me = data["remember_me"]
    with storage.transaction() as session:
        access_token, refresh_token = _open_session(session, user.id, user.email, remember_me)

    response = jsonify({"message": "Logged in successfully.", "user_id": user.id})
    set_session_cookies(response, access_token, refresh_token, remember_me)
    return response, 200


@bp.post("/log-out")
def log_out():
    """
    Log out: revokes the refresh token if one is presented and clears both cookies
    ---
    tags:
      - Auth
    responses:
      200:
        description: Always succeeds
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if token:
        try:
            claims = decode_refresh(token, current_app.config["JWT_SECRET"], current_app.config["JWT_ALGORITHM"])
        except ApiError:
            claims = None
        if claims is not None:
            try:
                with storage.transaction() as session:
                    session_store.revoke_by_hash(session, hash_token_id(claims.jti))
            except SQLAlchemyError:
                current_app.logger.warning("Could not revoke refresh token during log-out", exc_info=True)

    response = jsonify({"message": "Logged out successfully."})
    clear_session_cookies(response)
    return response, 200


@bp.post("/refresh")
def refresh():
    """
    Rotate the session: consumes the refresh cookie and issues new cookies
    ---
    tags:
      - Auth
    security:
      - RefreshCookie: []
    responses:
      200:
        description: OK (cookies rotated)
      401:
        description: UNAUTHORIZED / TOKEN_INVALID / TOKEN_EXPIRED
    """
    claims = _refresh_claims()
    user_id = _subject_id(claims.sub)

    user = user_store.find_by_id(storage.get_session(), user_id)
    if not user:
        raise Unauthorized()

    with storage.transaction() as session:
        if not session_store.consume(session, user.id, hash_token_id(claims.jti)):
            raise Unauthorized()
        access_token, refresh_token = _open_session(session, user.id, user.email, claims.remember_me)

    response = jsonify({"message": "Session refreshed successfully."})
    set_session_cookies(response, access_token, refresh_token, claims.remember_me)
    return response, 200


@bp.get("/me")
@jwt_required()
def me():
    """
    Get current user profile
    ---
    tags:
      - Auth
    security:
      - AccessCookie: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"user": user_out_schema.dump(g.current_user)}), 200


@bp.post("/request-email-change")
@jwt_required()
def request_email_change():
    """
    Send an email-change code to the new address
    ---
    tags:
      - Auth
    security:
      - AccessCookie: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [new_email]
           properties:
             new_email: { type: string }
    responses:
      200:
        description: Generic message, whether or not a code was sent
      401:
        description: Unauthorized
    """
    data = _load(request_email_change_schema)
    new_email = data["new_email"]
    user = g.current_user
    first_name = user.first_name

    # same answer for the current address and for one owned by someone else
    if new_email == normalize_email(user.email) or user_store.email_exists(
        storage.get_session(), new_email, exclude_user_id=user.id
    ):
        return jsonify({"message": EMAIL_CHANGE_MESSAGE}), 200

    code = generate_code()
    with storage.transaction() as session:
        code_store.invalidate(session, user.id, AuthCodeType.EMAIL_CHANGE)
        code_store.create(session, user.id, hash_email_scoped(code, new_email), AuthCodeType.EMAIL_CHANGE,
                          _code_expires_at())

    _send_quietly(lambda: _email_sender().send_email_change_email(new_email, first_name, code),
                  "email change", new_email)
    return jsonify({"message": EMAIL_CHANGE_MESSAGE}), 200


@bp.post("/confirm-email-change")
@jwt_required()
def confirm_email_change():
    """
    Apply an email change with the code sent to the new address
    ---
    tags:
      - Auth
    security:
      - AccessCookie: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [new_email, auth_code]
           properties:
             new_email: { type: string }
             auth_code: { type: string }
    responses:
      200:
        description: Email changed, access cookie re-issued
      400:
        description: AUTH_CODE_EXPIRED / INVALID_AUTH_CODE
      401:
        description: Unauthorized
      409:
        description: EMAIL_ALREADY_EXISTS
    """
    data = _load(confirm_email_change_schema)
    new_email = data["new_email"]
    user_id = g.current_user_id

    auth_code = code_store.find_valid(storage.get_session(), user_id, AuthCodeType.EMAIL_CHANGE)
    if not auth_code:
        raise AuthCodeExpired()
    if not verify_email_scoped(data["auth_code"], new_email, auth_code.code_hash):
        raise InvalidAuthCode()

    try:
        with storage.transaction() as session:
            if not code_store.mark_used(session, auth_code.id):
                raise AuthCodeExpired()
            if not user_store.update_email_if_available(session, user_id, new_email):
                raise EmailAlreadyExists()
    except IntegrityError:
        raise EmailAlreadyExists()

    response = jsonify({"message": "Email changed successfully."})
    set_access_cookie(response, _issue_access(user_id, new_email))
    return response, 200


@bp.post("/forgot-password")
def forgot_password():
    """
    Email a password reset code (response never reveals whether the account exists)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email]
           properties:
             email: { type: string }
    responses:
      200:
        description: Generic message
    """
    data = _load(forgot_password_schema)
    email = data["email"]

    user = user_store.find_by_email(storage.get_session(), email)
    if not user:
        return jsonify({"message": FORGOT_PASSWORD_MESSAGE}), 200
    first_name = user.first_name

    code = generate_code()
    with storage.transaction() as session:
        code_store.invalidate(session, user.id, AuthCodeType.PASSWORD_RESET)
        code_store.create(session, user.id, hash_code(code), AuthCodeType.PASSWORD_RESET, _code_expires_at())

    _send_quietly(lambda: _email_sender().send_password_reset_email(email, first_name, code),
                  "password reset", email)
    return jsonify({"message": FORGOT_PASSWORD_MESSAGE}), 200


@bp.post("/verify-forgot-password")
def verify_forgot_password():
    """
    Verify a password reset code; opens a session so the user can set a new password
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, auth_code]
           properties:
             email: { type: string }
             auth_code: { type: string }
    responses:
      200:
        description: Code verified, cookies set
      400:
        description: AUTH_CODE_EXPIRED / INVALID_AUTH_CODE
      401:
        description: INVALID_CREDENTIALS
    """
    data = _load(verify_forgot_password_schema)
    session = storage.get_session()

    user = user_store.find_by_email(session, data["email"])
    if not user:
        raise InvalidCredentials()

    auth_code = code_store.find_valid(session, user.id, AuthCodeType.PASSWORD_RESET)
    if not auth_code:
        raise AuthCodeExpired()
    if not verify_code(data["auth_code"], auth_code.code_hash):
        raise InvalidAuthCode()

    with storage.transaction() as session:
        if not code_store.mark_used(session, auth_code.id):
            raise AuthCodeExpired()
        access_token, refresh_token = _open_session(session, user.id, user.email, True)

    response = jsonify({"message": "Code verified. You can now set a new password."})
    set_session_cookies(response, access_token, refresh_token, True)
    return response, 200


@bp.post("/change-password")
@jwt_required()
def change_password():
    """
    Change password (requires the current password and an active refresh session)
    ---
    tags:
      - Auth
    security:
      - AccessCookie: []
      - RefreshCookie: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [current_password, new_password, confirm]
           properties:
             current_password: { type: string }
             new_password: { type: string }
             confirm: { type: string }
    responses:
      200:
        description: Password changed, cookies rotated
      401:
        description: UNAUTHORIZED / INVALID_CREDENTIALS
    """
    data = _load(change_password_schema)
    user = g.current_user
    user_id, email, current_hash = user.id, user.email, user.hashed_password

    claims = _refresh_claims()
    if claims.sub != user_id:
        raise Unauthorized()

    with storage.transaction() as session:
        # consuming first means a logged-out (revoked) cookie can never change the password
        if not session_store.consume(session, user_id, hash_token_id(claims.jti)):
            raise Unauthorized()
        if not verify_password(data["current_password"], current_hash):
            raise InvalidCredentials()
        user_store.update_password(session, user_id, hash_password(data["new_password"]))
        session_store.revoke_all(session, user_id)
        access_token, refresh_token = _open_session(session, user_id, email, claims.remember_me)

    response = jsonify({"message": "Password changed successfully."})
    set_session_cookies(response, access_token, refresh_token, claims.remember_me)
    return response, 200


@bp.post("/set-password")
@jwt_required()
def set_password():
    """
    Set a new password after a verified reset (requires an active refresh session)
    ---
    tags:
      - Auth
    security:
      - AccessCookie: []
      - RefreshCookie: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [password, confirm]
           properties:
             password: { type: string }
             confirm: { type: string }
    responses:
      200:
        description: Password updated, cookies rotated
      401:
        description: Unauthorized
    """
    data = _load(set_password_schema)
    user = g.current_user
    user_id, email = user.id, user.email

    claims = _refresh_claims()
    if claims.sub != user_id:
        raise Unauthorized()

    with storage.transaction() as session:
        if not session_store.consume(session, user_id, hash_token_id(claims.jti)):
            raise Unauthorized()
        user_store.update_password(session, user_id, hash_password(data["password"]))
        session_store.revoke_all(session, user_id)
        access_token, refresh_token = _open_session(session, user_id, email, True)

    response = jsonify({"message": "Password updated successfully."})
    set_session_cookies(response, access_token, refresh_token, True)
    return response, 200
