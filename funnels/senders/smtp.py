# funnels/senders/smtp.py
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from funnels import conf
from funnels.senders.base import EmailSender, SendError

logger = logging.getLogger(__name__)


class SmtpEmailSender(EmailSender):
    """Sends HTML email through an SMTP relay."""

    def __init__(
        self,
        host: str = conf.SMTP_HOST,
        port: int = conf.SMTP_PORT,
        username: Optional[str] = conf.SMTP_USERNAME,
        password: Optional[str] = conf.SMTP_PASSWORD,
        use_tls: bool = conf.SMTP_USE_TLS,
        from_address: str = conf.SMTP_FROM,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    def _build_message(self, to_address: str, subject: str, body: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to_address
        message["Subject"] = subject
        message.attach(MIMEText(body, "html", "utf-8"))
        return message

    def send(self, to_address: str, subject: str, body: str) -> None:
        message = self._build_message(to_address, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.from_address, [to_address], message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise SendError(f"SMTP delivery to {to_address} failed: {e}") from e

        logger.info("Email sent → %s", to_address)
