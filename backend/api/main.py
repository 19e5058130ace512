import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.api.routers import (
    catalog_router,
    history_router,
    invoices_router,
    orders_router,
    settlement_router,
    workspace_router,
)
from backend.core.config import settings
from backend.core.db import init_db
from backend.core.llm import check_available

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown."""
    init_db()
    if not settings.CLAUDE_API_KEY:
        logger.warning("CLAUDE_API_KEY not set; product matching runs without the oracle")

    yield  # Application runs here


app = FastAPI(title="Harvest Desk", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog_router)
app.include_router(orders_router)
app.include_router(invoices_router)
app.include_router(settlement_router)
app.include_router(history_router)
app.include_router(workspace_router)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "version": VERSION, "oracleConfigured": bool(settings.CLAUDE_API_KEY)}


@app.get("/api/health/oracle")
def oracle_health():
    """Round-trip to the Claude API; slow, so kept off the main health check."""
    return {"available": check_available()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
