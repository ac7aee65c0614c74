"""
Outgoing mail for the account flows.

The flows only rely on Mailer.send(template, recipient, variables) and on it
raising MailerError when the message could not be handed off.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from .config import settings
from .templates import render_email

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """The message could not be delivered to the mail server."""


class Mailer(ABC):
    @abstractmethod
    def send(self, template: str, recipient: str, variables: Dict[str, Any]) -> None:
        """Render the template and hand the message off; raises MailerError on failure."""


class ConsoleMailer(Mailer):
    """Dev tier: write the rendered mail to the logs instead of sending it."""

    def send(self, template: str, recipient: str, variables: Dict[str, Any]) -> None:
        subject, _ = render_email(template, variables)
        logger.info(
            "[DEV] Mail template=%s to=%s subject=%r token=%s",
            template, recipient, subject, variables.get("token")
        )


class SmtpMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, template: str, recipient: str, variables: Dict[str, Any]) -> None:
        subject, body_html = render_email(template, variables)

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.sender
        msg['To'] = recipient
        msg.attach(MIMEText(body_html, 'html'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send mail template=%s to=%s: %s", template, recipient, e)
            raise MailerError(str(e)) from e

        logger.info("Mail sent: template=%s to=%s", template, recipient)


def build_mailer() -> Mailer:
    if settings.MAIL_BACKEND == "smtp":
        return SmtpMailer(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.MAIL_FROM,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )
    if settings.MAIL_BACKEND == "console":
        return ConsoleMailer()
    raise ValueError(f"Unknown MAIL_BACKEND '{settings.MAIL_BACKEND}'")


_mailer = None


def get_mailer() -> Mailer:
    """FastAPI dependency returning the process-wide mailer."""
    global _mailer
    if _mailer is None:
        _mailer = build_mailer()
    return _mailer
