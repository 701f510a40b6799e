import logging

from fastapi import FastAPI

from app.api.dependencies import get_statement_cache
from app.api.routes_health import router as health_router
from app.api.routes_metrics import router as metrics_router
from app.api.routes_reports import router as reports_router
from app.core.config import settings
from app.core.errors import register_error_handlers
from app.core.logger import init_logging
from app.services.statements.invalidation import register_invalidation_listeners

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    init_logging()

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    register_error_handlers(app)
    app.include_router(reports_router, tags=["reports"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)

    cache = get_statement_cache()
    if cache is not None:
        register_invalidation_listeners(cache)

    @app.on_event("shutdown")
    async def shutdown_event():
        from app.db.redis_client import close_redis_pool
        close_redis_pool()

    logger.info("Application created env=%s cache=%s", settings.ENV, cache is not None)
    return app


app = create_app()
