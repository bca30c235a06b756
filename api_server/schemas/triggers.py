# api_server/schemas/triggers.py
from typing import Dict, Optional

from pydantic import BaseModel, Field


class TriggerRequest(BaseModel):
    """Fire a trigger for a single lead."""

    trigger: str = Field(..., min_length=1, description="Event name, e.g. 'lead_subscribed'")
    lead_id: str = Field(..., description="Lead the funnels run against")
    context: Optional[Dict[str, str]] = Field(None, description="Placeholder values for templates")


class BroadcastRequest(BaseModel):
    """Fire a trigger for every active lead."""

    trigger: str = Field(..., min_length=1, description="Event name, e.g. 'new_post_published'")
    context: Optional[Dict[str, str]] = Field(None, description="Placeholder values for templates")


class TriggerResponse(BaseModel):
    """Executions created by a trigger."""

    trigger: str
    created: int
    execution_ids: list[str]
