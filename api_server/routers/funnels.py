# api_server/routers/funnels.py
from fastapi import APIRouter, Depends, HTTPException, status

from api_server.auth import verify_api_key
from api_server.schemas.funnels import FunnelListResponse, WhatsAppTemplateListResponse
from funnels.defaults import create_default_post_update_funnel
from funnels.engine import FunnelEngine, get_funnel_engine
from funnels.models import Funnel, WhatsAppTemplate

router = APIRouter()


@router.get("/funnels", response_model=FunnelListResponse)
def list_funnels_endpoint(
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """List funnel definitions."""
    return FunnelListResponse(funnels=engine.store.list_funnels())


@router.post("/funnels", response_model=Funnel, status_code=status.HTTP_201_CREATED)
def save_funnel_endpoint(
    funnel: Funnel,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Create a funnel, or replace the funnel with the same id."""
    return engine.store.save_funnel(funnel)


@router.post("/funnels/defaults/post-update", response_model=Funnel, status_code=status.HTTP_201_CREATED)
def create_post_update_funnel_endpoint(
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Create the stock "new post published" funnel and its WhatsApp template."""
    return create_default_post_update_funnel(engine.store, engine.templates)


@router.get("/funnels/{funnel_id}", response_model=Funnel)
def get_funnel_endpoint(
    funnel_id: str,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Get a funnel definition."""
    funnel = engine.store.get_funnel(funnel_id)
    if not funnel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Funnel not found")
    return funnel


@router.delete("/funnels/{funnel_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_funnel_endpoint(
    funnel_id: str,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Delete a funnel. Running executions are completed on their next pass."""
    if not engine.store.delete_funnel(funnel_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Funnel not found")


@router.get("/whatsapp-templates", response_model=WhatsAppTemplateListResponse)
def list_templates_endpoint(
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """List internal WhatsApp templates."""
    return WhatsAppTemplateListResponse(templates=engine.templates.list_templates())


@router.post("/whatsapp-templates", response_model=WhatsAppTemplate, status_code=status.HTTP_201_CREATED)
def save_template_endpoint(
    template: WhatsAppTemplate,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Create or replace an internal WhatsApp template."""
    return engine.templates.save_template(template)
