# funnels/senders/console.py
from __future__ import annotations

import logging
from typing import List

from funnels.senders.base import EmailSender, WhatsAppSender

logger = logging.getLogger(__name__)


class LoggingEmailSender(EmailSender):
    """Development sender: logs the email instead of delivering it."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        logger.info("[email] to=%s subject=%r (%d chars)", to_address, subject, len(body))


class LoggingWhatsAppSender(WhatsAppSender):
    """Development sender: logs the message instead of delivering it."""

    def send_hybrid(self, to: str, template_name: str, variables: List[str], fallback_text: str) -> None:
        logger.info("[whatsapp] to=%s template=%s text=%r", to, template_name, fallback_text[:80])
