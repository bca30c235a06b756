# api_server/routers/triggers.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from api_server.auth import verify_api_key
from api_server.schemas.triggers import BroadcastRequest, TriggerRequest, TriggerResponse
from funnels.engine import FunnelEngine, get_funnel_engine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/triggers", response_model=TriggerResponse)
def trigger_endpoint(
    request: TriggerRequest,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Start the funnels listening on a trigger for one lead."""
    lead = engine.leads.get_lead(request.lead_id)
    if not lead:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")

    created = engine.trigger_funnel(request.trigger, lead, request.context)
    return TriggerResponse(
        trigger=request.trigger,
        created=len(created),
        execution_ids=[e.id for e in created],
    )


@router.post("/triggers/broadcast", response_model=TriggerResponse)
def broadcast_endpoint(
    request: BroadcastRequest,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Start the funnels listening on a trigger for every active lead."""
    try:
        created = engine.trigger_global_funnel(request.trigger, request.context)
    except Exception as e:
        logger.error("Error broadcasting %s: %s", request.trigger, e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal server error: {str(e)}"
        )
    return TriggerResponse(
        trigger=request.trigger,
        created=len(created),
        execution_ids=[e.id for e in created],
    )
