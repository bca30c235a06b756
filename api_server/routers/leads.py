# api_server/routers/leads.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError

from api_server.auth import verify_api_key
from api_server.schemas.leads import LeadListResponse, SubscribeRequest, TagRequest, TagResponse
from funnels.engine import FunnelEngine, get_funnel_engine
from funnels.models import Lead

router = APIRouter()


@router.get("/leads", response_model=LeadListResponse)
def list_leads_endpoint(
    status_filter: str | None = Query(None, alias="status", description="Filter by lead status"),
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """List leads."""
    return LeadListResponse(leads=engine.leads.list_leads(status=status_filter))


@router.post("/leads", response_model=Lead, status_code=status.HTTP_201_CREATED)
def subscribe_endpoint(
    request: SubscribeRequest,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Subscribe a lead and fire the lead_subscribed trigger."""
    try:
        return engine.subscribe_lead(request.email, request.source, name=request.name, phone=request.phone)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/leads/{lead_id}", response_model=Lead)
def get_lead_endpoint(
    lead_id: str,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    lead = engine.leads.get_lead(lead_id)
    if not lead:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")
    return lead


@router.post("/leads/{lead_id}/tags", response_model=TagResponse)
def add_tag_endpoint(
    lead_id: str,
    request: TagRequest,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Tag a lead; a new tag fires the tag_added:<tag> trigger."""
    if not engine.leads.get_lead(lead_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")

    added = engine.tag_lead(lead_id, request.tag)
    return TagResponse(lead_id=lead_id, tag=request.tag, added=added)
