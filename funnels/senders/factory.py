# funnels/senders/factory.py
from __future__ import annotations

from funnels import conf
from funnels.senders.base import EmailSender, WhatsAppSender
from funnels.senders.console import LoggingEmailSender, LoggingWhatsAppSender


def create_email_sender(backend: str | None = None) -> EmailSender:
    """
    Build the email sender selected by FUNNELS_EMAIL_BACKEND.

    Raises:
        ValueError: If the backend is unknown
    """
    backend = backend or conf.EMAIL_BACKEND
    if backend == "log":
        return LoggingEmailSender()
    elif backend == "smtp":
        from funnels.senders.smtp import SmtpEmailSender

        return SmtpEmailSender()
    else:
        raise ValueError(f"Unknown email backend: {backend}")


def create_whatsapp_sender(backend: str | None = None) -> WhatsAppSender:
    """
    Build the WhatsApp sender selected by FUNNELS_WHATSAPP_BACKEND.

    Raises:
        ValueError: If the backend is unknown or not configured
    """
    backend = backend or conf.WHATSAPP_BACKEND
    if backend == "log":
        return LoggingWhatsAppSender()
    elif backend == "cloud":
        from funnels.senders.whatsapp_cloud import CloudApiWhatsAppSender

        return CloudApiWhatsAppSender()
    else:
        raise ValueError(f"Unknown WhatsApp backend: {backend}")
