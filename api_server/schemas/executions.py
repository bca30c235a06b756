# api_server/schemas/executions.py
from pydantic import BaseModel

from funnels.models import FunnelExecution


class ExecutionListResponse(BaseModel):
    """List of funnel executions."""

    executions: list[FunnelExecution]
    total: int
