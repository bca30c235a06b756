# api_server/routers/executions.py
from fastapi import APIRouter, Depends, HTTPException, Query, status

from api_server.auth import verify_api_key
from api_server.schemas.executions import ExecutionListResponse
from funnels.engine import FunnelEngine, get_funnel_engine
from funnels.models import ExecutionStatus, FunnelExecution, PassReport

router = APIRouter()


@router.get("/executions", response_model=ExecutionListResponse)
def list_executions_endpoint(
    status_filter: ExecutionStatus | None = Query(None, alias="status", description="Filter by status"),
    funnel_id: str | None = Query(None, description="Filter by funnel"),
    lead_id: str | None = Query(None, description="Filter by lead"),
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """List executions with filtering."""
    executions = engine.store.list_executions(status=status_filter, funnel_id=funnel_id, lead_id=lead_id)
    return ExecutionListResponse(executions=executions, total=len(executions))


@router.post("/executions/process", response_model=PassReport)
def process_executions_endpoint(
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Run a processing pass now instead of waiting for the worker."""
    return engine.process_executions()


@router.get("/executions/{execution_id}", response_model=FunnelExecution)
def get_execution_endpoint(
    execution_id: str,
    engine: FunnelEngine = Depends(get_funnel_engine),
    api_key: str = Depends(verify_api_key),
):
    """Get execution state and history."""
    execution = engine.store.get_execution(execution_id)
    if not execution:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Execution not found")
    return execution
