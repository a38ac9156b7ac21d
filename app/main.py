"""
Freight Gateway
FastAPI application entry point

- Endpoint registry built once at startup (carrier definitions + optional JSON file)
- One shared carrier HTTP client with explicit timeout and per-carrier rate limit
- Shipment status poller started on startup, cancelled on shutdown
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.api.routes import carriers, fedex_records, shipped_orders
from app.core.config import settings
from app.core.database import AsyncSessionLocal, Base, engine
from app.core.error_handler import register_error_handlers
from app.core.http_client import CarrierHTTPClient
from app.jobs.status_poller import StatusPoller, StatusPollScheduler
from app.modules.shipping.registry import build_registry
from app.services.fedex_record_store import FedexRecordStore
from app.services.gateway_service import CarrierGatewayService
from app.services.order_store import SqlAlchemyOrderStore

# Import models to register them with SQLAlchemy
from app.models import ShippedOrder, CarrierToken, FedexRecord  # noqa: F401

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build shared collaborators on startup and release them on shutdown.

    The registry is validated here: a bad body template or duplicate
    endpoint stops the app from starting.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    registry = build_registry(settings)
    http_client = CarrierHTTPClient()
    await http_client.init()
    order_store = SqlAlchemyOrderStore(AsyncSessionLocal)

    app.state.registry = registry
    app.state.http_client = http_client
    app.state.order_store = order_store
    app.state.fedex_record_store = FedexRecordStore(AsyncSessionLocal)
    app.state.status_scheduler = None

    if settings.STATUS_UPDATE_ENABLED:
        gateway = CarrierGatewayService(registry, http_client, order_store)
        scheduler = StatusPollScheduler(StatusPoller(gateway, order_store))
        scheduler.start()
        app.state.status_scheduler = scheduler
        logger.info("[STATUS_POLL] Status update service ENABLED")
    else:
        logger.info("[STATUS_POLL] Status update service DISABLED via config")

    yield

    if app.state.status_scheduler:
        await app.state.status_scheduler.stop()

    await http_client.close()
    logger.info("Carrier HTTP client closed")
    await engine.dispose()


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Unified REST gateway over freight carrier APIs",
    version="1.0.0",
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(carriers.router, prefix="/api")
app.include_router(shipped_orders.router, prefix="/api")
app.include_router(fedex_records.router, prefix="/api")


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check with a database ping and the poller's last cycle. 503 if the DB is unreachable."""
    scheduler = getattr(app.state, "status_scheduler", None)
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "status_poller": {
            "running": bool(scheduler and scheduler.running),
            "cycles": scheduler.cycles if scheduler else 0,
            "last_summary": (
                scheduler.last_summary.to_dict()
                if scheduler and scheduler.last_summary
                else None
            ),
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["database"] = f"error: {type(e).__name__}: {str(e)[:100]}"
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/")
async def root():
    return {"name": settings.APP_NAME, "docs": "/docs"}
