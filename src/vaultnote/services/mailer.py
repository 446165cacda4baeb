"""Outbound mail for verification codes.

The contract: send a 6-digit code to an address, stating that it expires
in a given number of minutes. Delivery is bounded by a connection timeout
and failures surface as MailDeliveryError.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

from vaultnote.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Your verification code"


def build_verification_message(
    sender: str, recipient: str, code: str, ttl_minutes: int
) -> EmailMessage:
    """Compose the verification email."""
    message = EmailMessage()
    message["Subject"] = VERIFICATION_SUBJECT
    message["From"] = sender
    message["To"] = recipient
    message.set_content(
        f"Your verification code is {code}.\n\n"
        f"It expires in {ttl_minutes} minutes. "
        "If you did not create an account, ignore this email.\n"
    )
    return message


class Mailer(Protocol):
    """Anything that can deliver a verification code."""

    def send_verification_code(self, email: str, code: str, ttl_minutes: int) -> None:
        ...


class SmtpMailer:
    """Delivers verification codes over SMTP, optionally with STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender: str = "no-reply@vaultnote.local",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def send_verification_code(self, email: str, code: str, ttl_minutes: int) -> None:
        message = build_verification_message(self.sender, email, code, ttl_minutes)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send verification email via {self.host}:{self.port}: {e}")
            raise MailDeliveryError(original_error=e) from e

        logger.info("Verification email sent")


class LogMailer:
    """Development mailer: writes the code to the log instead of sending it."""

    def send_verification_code(self, email: str, code: str, ttl_minutes: int) -> None:
        logger.warning(
            f"No SMTP host configured; verification code for {email} is {code} "
            f"(expires in {ttl_minutes} minutes)"
        )


def create_mailer(settings) -> Mailer:
    """Build the mailer described by configuration."""
    if settings.smtp_host:
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            sender=settings.mail_from,
            timeout=settings.mail_timeout_seconds,
        )
    return LogMailer()
