# api_server/schemas/funnels.py
from pydantic import BaseModel

from funnels.models import Funnel, WhatsAppTemplate


class FunnelListResponse(BaseModel):
    """List of funnels."""

    funnels: list[Funnel]


class WhatsAppTemplateListResponse(BaseModel):
    """List of WhatsApp templates."""

    templates: list[WhatsAppTemplate]
