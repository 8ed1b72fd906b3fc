"""Institute Management Platform - FastAPI Application."""

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api.errors import register_exception_handlers
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.deps import DbSession
from app.core.feature_flags import feature_flags
from app.core.logging import configure_logging
from app.models.institute import Institute
from app.modules import module_registry
from app.modules.catalog import register_modules
from app.services.base import BaseService

configure_logging()
logger = logging.getLogger(__name__)

_, flag_errors = feature_flags.validate_configuration(settings.ENVIRONMENT)
for error in flag_errors:
    logger.warning("Feature flags: %s", error)

register_modules(module_registry)

app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


class _HealthService(BaseService[Institute]):
    model = Institute
    model_name = "Database"


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "modules": module_registry.get_statistics()["enabled"]}


@app.get("/health/database")
async def database_health_check(db: DbSession):
    """Check that the database answers queries."""
    result = await _HealthService(db).get_health_status()
    return JSONResponse(
        status_code=200 if result.success else 503,
        content=result.to_dict(),
    )
