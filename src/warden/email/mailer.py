"""Outgoing mail.

Learn: Two layers:
1. Mailer → delivers one message: send(to, template_id, context)
2. EmailService → knows which template and context each auth flow needs

SmtpMailer uses the stdlib smtplib client in a worker thread. When no
SMTP host is configured (local development) it logs the message
instead of sending it. Delivery failures propagate to the caller.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Protocol

import structlog

from warden.email.templates import render
from warden.errors import UnsupportedLanguageError

logger = structlog.get_logger()

ALLOWED_LANGUAGES = ("en", "de")


def redact_email(email: str) -> str:
    """Keep addresses out of the logs."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def ensure_supported_language(language: str) -> None:
    if language not in ALLOWED_LANGUAGES:
        raise UnsupportedLanguageError(
            f"Language {language} is not supported. "
            f"Allowed languages are: {', '.join(ALLOWED_LANGUAGES)}"
        )


class Mailer(Protocol):
    async def send(self, to_address: str, template_id: str, context: dict) -> None: ...


class SmtpMailer:
    """Deliver rendered templates over SMTP (STARTTLS when enabled)."""

    def __init__(
        self,
        host: str = "",
        port: int = 587,
        user: str = "",
        password: str = "",
        use_tls: bool = True,
        from_address: str = "no-reply@warden.local",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def _build_message(self, to_address: str, template_id: str, context: dict) -> EmailMessage:
        subject, body = render(template_id, context)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to_address
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)

    async def send(self, to_address: str, template_id: str, context: dict) -> None:
        msg = self._build_message(to_address, template_id, context)

        if not self.is_configured:
            # Dev mode: log the email instead of sending
            logger.info(
                "email.dev_mode",
                to=redact_email(to_address),
                template=template_id,
                subject=msg["Subject"],
            )
            return

        await asyncio.to_thread(self._deliver, msg)
        logger.info("email.sent", to=redact_email(to_address), template=template_id)


class EmailService:
    """The three mails the auth flows send."""

    def __init__(self, mailer: Mailer):
        self.mailer = mailer

    @staticmethod
    def _template(name: str, language: str) -> str:
        ensure_supported_language(language)
        return f"{name}_{language}"

    async def send_confirm_email(
        self, email: str, username: str, confirmation_link: str, language: str = "en"
    ) -> None:
        await self.mailer.send(
            email,
            self._template("confirm-user", language),
            {"username": username, "confirmation_link": confirmation_link},
        )

    async def send_password_reset_email(
        self, email: str, username: str, password_reset_link: str, language: str = "en"
    ) -> None:
        await self.mailer.send(
            email,
            self._template("request-password-reset", language),
            {"username": username, "password_reset_link": password_reset_link},
        )

    async def send_two_factor_code_email(
        self, email: str, code: str, language: str = "en"
    ) -> None:
        await self.mailer.send(
            email,
            self._template("two-factor-auth-code", language),
            {"code": code},
        )
