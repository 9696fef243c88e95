"""Outbound email."""
from __future__ import annotations

import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

from quoteflow.errors import DependencyFailure
from quoteflow.utils.logger import get_logger

logger = get_logger("quoteflow.integrations.mailer")


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    mimetype: str = "application/octet-stream"


class EmailNotifier(ABC):
    @abstractmethod
    def send(self, to: list[str] | str, subject: str, html_body: str,
             attachments: list[EmailAttachment] | None = None) -> None:
        """Deliver one message. Raises DependencyFailure on provider errors."""


class SmtpEmailNotifier(EmailNotifier):
    def __init__(self, server: str, port: int, *, username: str | None = None, password: str | None = None,
                 use_tls: bool = True, sender: str, timeout: float = 10):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def _build_message(self, recipients: list[str], subject: str, html_body: str,
                       attachments: list[EmailAttachment] | None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html_body, subtype="html")
        for attachment in attachments or []:
            maintype, _, subtype = attachment.mimetype.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return message

    def send(self, to, subject, html_body, attachments=None):
        recipients = [to] if isinstance(to, str) else list(to)
        if not recipients:
            logger.debug(f"No recipients for '{subject}', skipping")
            return
        message = self._build_message(recipients, subject, html_body, attachments)
        try:
            with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise DependencyFailure(f"Email delivery failed: {e}") from e
        logger.info(f"Email '{subject}' sent to {len(recipients)} recipient(s)")


class LoggingEmailNotifier(EmailNotifier):
    """Used when no mail server is configured."""

    def send(self, to, subject, html_body, attachments=None):
        recipients = [to] if isinstance(to, str) else list(to)
        logger.info(
            f"Email (not sent, no MAIL_SERVER): to={recipients} subject='{subject}' "
            f"attachments={[a.filename for a in attachments or []]}"
        )
