# api_server/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api_server.routers import executions, funnels, health, leads, triggers

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    from api_server.services.worker import start_worker, stop_worker
    from funnels.engine import get_funnel_engine

    # Build the engine (DB schema, senders) before the worker starts polling
    get_funnel_engine()
    start_worker()
    logger.info("API server started")

    yield

    # Shutdown
    stop_worker()
    logger.info("API server stopped")


app = FastAPI(
    title="Funnel Engine API",
    description="Marketing automation funnels: triggers, executions and leads",
    version="0.1.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(health.router, tags=["health"])
app.include_router(funnels.router, prefix="/api/v1", tags=["funnels"])
app.include_router(executions.router, prefix="/api/v1", tags=["executions"])
app.include_router(triggers.router, prefix="/api/v1", tags=["triggers"])
app.include_router(leads.router, prefix="/api/v1", tags=["leads"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
