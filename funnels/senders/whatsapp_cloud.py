# funnels/senders/whatsapp_cloud.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from funnels import conf
from funnels.senders.base import FORCE_FALLBACK, SendError, WhatsAppSender

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"


def clean_phone(phone: str) -> str:
    """Cloud API expects digits only, international format without '+'."""
    return "".join(ch for ch in phone if ch.isdigit())


class CloudApiWhatsAppSender(WhatsAppSender):
    """WhatsApp Cloud API sender (Meta Graph API)."""

    def __init__(
        self,
        phone_number_id: str = conf.WA_PHONE_NUMBER_ID,
        access_token: str = conf.WA_ACCESS_TOKEN,
        api_version: str = conf.WA_API_VERSION,
        language_code: str = conf.WA_LANGUAGE_CODE,
        timeout_s: float = conf.WA_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ):
        if not phone_number_id or not access_token:
            raise ValueError("WA_PHONE_NUMBER_ID and WA_ACCESS_TOKEN must be configured")
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.language_code = language_code
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            }
        )

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_URL}/{self.api_version}/{self.phone_number_id}/messages"

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(self.messages_url, json=payload, timeout=self.timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SendError(f"WhatsApp Cloud API request failed: {e}") from e
        return response.json()

    def send_text(self, to: str, text: str) -> Dict[str, Any]:
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": clean_phone(to),
            "type": "text",
            "text": {"preview_url": True, "body": text},
        }
        return self._post(payload)

    def send_template(self, to: str, template_name: str, variables: List[str]) -> Dict[str, Any]:
        template: Dict[str, Any] = {
            "name": template_name,
            "language": {"code": self.language_code},
        }
        if variables:
            template["components"] = [
                {
                    "type": "body",
                    "parameters": [{"type": "text", "text": value} for value in variables],
                }
            ]
        payload = {
            "messaging_product": "whatsapp",
            "to": clean_phone(to),
            "type": "template",
            "template": template,
        }
        return self._post(payload)

    def send_hybrid(self, to: str, template_name: str, variables: List[str], fallback_text: str) -> None:
        if template_name and template_name != FORCE_FALLBACK:
            try:
                self.send_template(to, template_name, variables)
                logger.info("WhatsApp template %s sent → %s", template_name, to)
                return
            except SendError as e:
                logger.warning("Template %s failed for %s, falling back to text: %s", template_name, to, e)

        self.send_text(to, fallback_text)
        logger.info("WhatsApp text sent → %s", to)
