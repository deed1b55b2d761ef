"""SMTP delivery for digest emails."""

from __future__ import annotations

import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Final

from loguru import logger


class EmailError(Exception):
    """Raised when an email cannot be delivered."""
    pass


class AuthenticationError(EmailError):
    """Raised when the SMTP server rejects the login."""
    pass


@dataclass(frozen=True)
class EmailConfig:
    """Connection settings for the SMTP account digests are sent from.

    Built from the email section of the encrypted configuration.
    """
    smtp_server: str
    smtp_port: int
    username: str
    password: str  # App password for Gmail
    from_email: str
    from_name: str
    timeout_seconds: int = 30

    def __post_init__(self) -> None:
        """Reject settings that could never reach a server."""
        if not self.smtp_server.strip():
            raise ValueError("SMTP server is required")
        if not (1 <= self.smtp_port <= 65535):
            raise ValueError(f"SMTP port out of range: {self.smtp_port}")
        if not self.username.strip():
            raise ValueError("SMTP username is required")
        if not self.password.strip():
            raise ValueError("SMTP password is required")
        if "@" not in self.from_email:
            raise ValueError(f"Sender address is not an email address: {self.from_email}")
        if self.timeout_seconds <= 0:
            raise ValueError("SMTP timeout must be positive")


class EmailService:
    """SMTP email service. Each send is a single attempt."""

    GMAIL_SMTP_SERVER: Final[str] = "smtp.gmail.com"
    GMAIL_SMTP_PORT: Final[int] = 587

    def __init__(self, config: EmailConfig) -> None:
        self.config: EmailConfig = config
        logger.debug(f"Email service initialized for {config.from_email}")

    @classmethod
    def create_gmail_config(cls, username: str, app_password: str, from_name: str = "") -> EmailConfig:
        """Build a config for a Gmail account using an app password.

        Raises:
            ValueError: If the username is not a Gmail address.
        """
        if "@gmail.com" not in username.lower():
            raise ValueError(f"Not a Gmail address: {username}")

        return EmailConfig(
            smtp_server=cls.GMAIL_SMTP_SERVER,
            smtp_port=cls.GMAIL_SMTP_PORT,
            username=username,
            password=app_password,
            from_email=username,
            from_name=from_name or username
        )

    def _create_connection(self) -> smtplib.SMTP:
        """Open a STARTTLS session and log in.

        Raises:
            AuthenticationError: If authentication fails.
            EmailError: If connection fails.
        """
        try:
            logger.debug(f"Opening SMTP session with {self.config.smtp_server}:{self.config.smtp_port}")

            server: smtplib.SMTP = smtplib.SMTP(
                self.config.smtp_server,
                self.config.smtp_port,
                timeout=self.config.timeout_seconds
            )
            server.starttls(context=ssl.create_default_context())
            server.login(self.config.username, self.config.password)

            logger.debug(f"Logged in to {self.config.smtp_server} as {self.config.username}")
            return server

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP login rejected for {self.config.username}: {e}")
            raise AuthenticationError(f"SMTP login rejected: {e}") from e
        except smtplib.SMTPException as e:
            logger.error(f"SMTP handshake failed: {e}")
            raise EmailError(f"SMTP handshake failed: {e}") from e
        except OSError as e:
            logger.error(f"Could not reach email server: {e}")
            raise EmailError(f"Could not reach {self.config.smtp_server}: {e}") from e

    def build_message(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        text_content: str,
        html_content: str = ""
    ) -> MIMEMultipart:
        """Assemble a multipart/alternative message.

        Raises:
            ValueError: If the recipient, subject or body is missing.
        """
        if not to_email.strip() or "@" not in to_email:
            raise ValueError(f"Recipient is not an email address: {to_email!r}")
        if not subject.strip():
            raise ValueError("Subject is required")
        if not text_content.strip() and not html_content.strip():
            raise ValueError("Message has no text or HTML body")

        msg: MIMEMultipart = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.config.from_name, self.config.from_email))
        msg["To"] = formataddr((to_name, to_email)) if to_name else to_email
        msg["Date"] = formatdate(localtime=True)

        # Later parts are preferred by mail clients, so HTML goes last.
        if text_content.strip():
            msg.attach(MIMEText(text_content, "plain", "utf-8"))
        if html_content.strip():
            msg.attach(MIMEText(html_content, "html", "utf-8"))

        return msg

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_content: str,
        html_content: str = "",
        to_name: str = ""
    ) -> None:
        """Send one email.

        Raises:
            ValueError: If the message is incomplete.
            AuthenticationError: If the server rejects the credentials.
            EmailError: If sending fails.
        """
        msg: MIMEMultipart = self.build_message(to_email, to_name, subject, text_content, html_content)

        server: smtplib.SMTP | None = None
        try:
            server = self._create_connection()
            server.sendmail(self.config.from_email, [to_email], msg.as_string())
            logger.info(f"Email sent successfully to {to_email}")
        except EmailError:
            raise
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Sending to {to_email} failed: {e}")
            raise EmailError(f"Sending to {to_email} failed: {e}") from e
        finally:
            if server is not None:
                try:
                    server.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"SMTP session did not close cleanly: {e}")

    def test_connection(self) -> bool:
        """Log in and out once; True when the credentials work."""
        try:
            logger.info(f"Checking SMTP login on {self.config.smtp_server}")
            self._create_connection().quit()
            logger.info("SMTP login check passed")
            return True
        except (EmailError, smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP login check failed: {e}")
            return False
