"""Transactional email for the auth flows.

`EmailSender` is the interface the handlers depend on; the application factory
picks `ResendEmailSender` when an API key is configured and `LogEmailSender`
otherwise (development only; production refuses to start without a key).
Senders are shared across request threads and keep no per-call state.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from html import escape
from typing import Dict

import resend

from api.errors import EmailServiceError

CONFIRMATION_SUBJECT = "Confirm your account"
PASSWORD_RESET_SUBJECT = "Reset your password"
EMAIL_CHANGE_SUBJECT = "Confirm your new email"

CONFIRMATION_TEXT = """Hi {first_name},

Your confirmation code is: {code}

This code expires in {minutes} minutes.
If you didn't create an account, please ignore this email.
"""

CONFIRMATION_HTML = """
<h2>Confirm your account</h2>
<p>Hi {first_name},</p>
<p>Your confirmation code is: <strong>{code}</strong></p>
<p>This code expires in {minutes} minutes.</p>
<p>If you didn't create an account, please ignore this email.</p>
"""

PASSWORD_RESET_TEXT = """Hi {first_name},

Your password reset code is: {code}

This code expires in {minutes} minutes.
If you didn't request a password reset, please ignore this email.
"""

PASSWORD_RESET_HTML = """
<h2>Reset your password</h2>
<p>Hi {first_name},</p>
<p>Your password reset code is: <strong>{code}</strong></p>
<p>This code expires in {minutes} minutes.</p>
<p>If you didn't request a password reset, please ignore this email.</p>
"""

EMAIL_CHANGE_TEXT = """Hi {first_name},

Your email-change code is: {code}

This code expires in {minutes} minutes.
If you didn't request this change, you can safely ignore this email.
"""

EMAIL_CHANGE_HTML = """
<h2>Confirm your new email</h2>
<p>Hi {first_name},</p>
<p>Your email-change code is: <strong>{code}</strong></p>
<p>This code expires in {minutes} minutes.</p>
<p>If you didn't request this change, you can safely ignore this email.</p>
"""


class EmailSender(ABC):
    @abstractmethod
    def send_confirmation_email(self, to_email: str, first_name: str, code: str) -> None:
        ...

    @abstractmethod
    def send_password_reset_email(self, to_email: str, first_name: str, code: str) -> None:
        ...

    @abstractmethod
    def send_email_change_email(self, to_email: str, first_name: str, code: str) -> None:
        ...


class TemplatedEmailSender(EmailSender):
    """Renders the three auth templates and hands them to `_send`."""

    def __init__(self, code_expiry_seconds: int = 600, logger: logging.Logger | None = None):
        self._minutes = max(1, int(code_expiry_seconds) // 60)
        self._logger = logger or logging.getLogger(__name__)

    def _render(self, template: str, first_name: str, code: str) -> str:
        return template.format(first_name=first_name, code=code, minutes=self._minutes)

    def _render_html(self, template: str, first_name: str, code: str) -> str:
        return self._render(template, escape(first_name), code)

    @abstractmethod
    def _send(self, to_email: str, subject: str, text: str, html: str, email_type: str) -> None:
        ...

    def send_confirmation_email(self, to_email, first_name, code):
        self._send(to_email, CONFIRMATION_SUBJECT,
                   self._render(CONFIRMATION_TEXT, first_name, code),
                   self._render_html(CONFIRMATION_HTML, first_name, code),
                   "confirmation")

    def send_password_reset_email(self, to_email, first_name, code):
        self._send(to_email, PASSWORD_RESET_SUBJECT,
                   self._render(PASSWORD_RESET_TEXT, first_name, code),
                   self._render_html(PASSWORD_RESET_HTML, first_name, code),
                   "password_reset")

    def send_email_change_email(self, to_email, first_name, code):
        self._send(to_email, EMAIL_CHANGE_SUBJECT,
                   self._render(EMAIL_CHANGE_TEXT, first_name, code),
                   self._render_html(EMAIL_CHANGE_HTML, first_name, code),
                   "email_change")


class ResendEmailSender(TemplatedEmailSender):
    """Delivers through the Resend HTTP API."""

    def __init__(self, api_key: str, from_email: str, code_expiry_seconds: int = 600,
                 logger: logging.Logger | None = None):
        super().__init__(code_expiry_seconds, logger)
        resend.api_key = api_key
        self._from_email = from_email

    def _send(self, to_email, subject, text, html, email_type):
        params: Dict = {
            "from": self._from_email,
            "to": [to_email],
            "subject": subject,
            "html": html,
            "text": text,
        }
        try:
            response = resend.Emails.send(params)
        except Exception as exc:
            self._logger.warning("Failed to send %s email to %s: %s", email_type, to_email, exc)
            raise EmailServiceError(f"Email service error: {exc}") from exc
        email_id = response.get("id") if isinstance(response, dict) else None
        self._logger.info("Sent %s email to %s (id=%s)", email_type, to_email, email_id)


class LogEmailSender(TemplatedEmailSender):
    """Development sender: writes the message to the log instead of delivering it."""

    def _send(self, to_email, subject, text, html, email_type):
        self._logger.warning("Email delivery disabled; %s email to %s\nSubject: %s\n%s",
                             email_type, to_email, subject, text)
