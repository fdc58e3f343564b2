"""
The Menu.ca API: one FastAPI app serving the admin dashboard, kitchen
tablets and the customer storefront. Run with `uvicorn menuca.main:app`.

Routers:
    - /api/admin-users, /api/roles: admin accounts and RBAC
    - /api/restaurants, /api/menu, /api/storage: restaurant management
    - /api/admin/promotions, /api/coupons, /api/promotions: promotions
    - /api/onboarding, /api/franchise, /api/domains: platform operations
    - /api/admin/devices, /api/tablet: kitchen tablets
    - /api/customer, /api/search: storefront, checkout and discovery
    - /api/users: customer accounts for admins
    - /api/dashboard, /api/orders: reporting
    - /health, /health/ready: health checks
"""

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.api.routes import (
    admin_users,
    coupons,
    customer,
    dashboard,
    devices,
    domains,
    franchise,
    menu,
    onboarding,
    promotions,
    restaurants,
    roles,
    search,
    storage,
    tablet,
    users,
)
from menuca.core.config import get_settings, setup_logging
from menuca.core.errors import register_error_handlers
from menuca.database import close_db, get_db, init_db
from menuca.schemas import HealthResponse
from menuca.services.geo import get_geo_service
from menuca.services.identity import get_identity_service
from menuca.services.payment import get_payment_service
from menuca.utils import utcnow

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"{settings.app_name} {settings.app_version} starting "
        f"(env={settings.env_mode.value}, debug={settings.debug})"
    )
    await init_db(create_tables=settings.database_create_tables)

    providers = {
        "identity": get_identity_service().provider_name,
        "payments": get_payment_service().provider_name,
        "geocoding": get_geo_service().provider_name,
    }
    logger.info(f"Providers: {providers}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Unset for a real-services deployment: {', '.join(missing)}")

    yield

    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    description="Admin dashboard, kitchen tablet and storefront API for Menu.ca restaurants.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

for module in (
    admin_users,
    roles,
    restaurants,
    storage,
    menu,
    promotions,
    coupons,
    onboarding,
    franchise,
    domains,
    devices,
    tablet,
    customer,
    search,
    users,
    dashboard,
):
    app.include_router(module.router)


@app.get("/", tags=["Root"])
async def index():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "docs": "/docs",
        "health": "/health",
    }


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
        return "healthy"
    except Exception as e:
        logger.error(f"Health: database unreachable: {e}")
        return f"unhealthy: {e}"


async def _redis_status() -> str:
    client = aioredis.from_url(settings.redis_url, socket_timeout=2)
    try:
        await client.ping()
        return "healthy"
    except Exception as e:
        logger.error(f"Health: redis unreachable: {e}")
        return f"unhealthy: {e}"
    finally:
        await client.aclose()


@app.get("/health", response_model=HealthResponse, tags=["Health"], summary="System Health Check")
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Ping every backing service; any failure marks the API degraded."""
    db_status = await _database_status(db)
    redis_status = await _redis_status()
    payment_status = "healthy" if await get_payment_service().health_check() else "unhealthy"
    geo_status = "healthy" if await get_geo_service().health_check() else "unhealthy"
    identity_status = "healthy" if await get_identity_service().health_check() else "unhealthy"

    statuses = [db_status, redis_status, payment_status, geo_status, identity_status]
    overall = "operational" if all(s == "healthy" for s in statuses) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        payment_service=payment_status,
        geo_service=geo_status,
        identity_service=identity_status,
        timestamp=utcnow(),
    )


@app.get("/health/ready", tags=["Health"])
async def readiness(db: AsyncSession = Depends(get_db)):
    """Readiness check: 503 until the database answers."""
    db_status = await _database_status(db)
    if db_status != "healthy":
        return JSONResponse(status_code=503, content={"status": "not_ready", "database": db_status})
    return {"status": "ready"}
