# api_server/schemas/leads.py
from typing import Optional

from pydantic import BaseModel, Field

from funnels.models import Lead


class SubscribeRequest(BaseModel):
    """Request to subscribe (create or refresh) a lead."""

    email: str = Field(..., min_length=3, description="Lead email, unique")
    source: str = Field("api", description="Where the subscription came from")
    name: Optional[str] = Field(None, description="Lead name")
    phone: Optional[str] = Field(None, description="Phone in international format")


class TagRequest(BaseModel):
    tag: str = Field(..., min_length=1, description="Tag to add")


class TagResponse(BaseModel):
    lead_id: str
    tag: str
    added: bool


class LeadListResponse(BaseModel):
    """List of leads."""

    leads: list[Lead]
