# funnels/senders/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

# Template name telling a WhatsApp sender to skip provider templates and
# deliver the fallback text as a plain message.
FORCE_FALLBACK = "FORCE_FALLBACK"


class SendError(Exception):
    """Raised by a sender when a message could not be delivered."""


class EmailSender(ABC):
    """Delivers a single email. Raises on failure."""

    @abstractmethod
    def send(self, to_address: str, subject: str, body: str) -> None:
        pass


class WhatsAppSender(ABC):
    """Delivers a single WhatsApp message. Raises on failure."""

    @abstractmethod
    def send_hybrid(self, to: str, template_name: str, variables: List[str], fallback_text: str) -> None:
        """
        Send a provider template, falling back to plain text.

        Args:
            to: Recipient phone number
            template_name: Provider template name, or FORCE_FALLBACK
            variables: Positional template variables
            fallback_text: Plain message used when no template applies
        """
        pass
