# api_server/routers/health.py
from fastapi import APIRouter

from api_server.services.worker import is_worker_running

router = APIRouter()


@router.get("/health")
def health_check():
    """Liveness probe."""
    return {"status": "ok", "worker": "running" if is_worker_running() else "stopped"}
