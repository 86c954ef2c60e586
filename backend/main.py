"""
ASGI entry point of the file storage service.

Run locally with ``python main.py`` or ``uvicorn main:app``.
"""
from cloudfs.api.router import api_router
from cloudfs.core.config import settings
from cloudfs.core.events import lifespan
from cloudfs.core.exceptions import setup_exception_handlers
from cloudfs.core.logger import get_logger
from cloudfs.core.middleware import setup_middleware
from fastapi import FastAPI

logger = get_logger(__name__)


def create_application() -> FastAPI:
    """Assemble the app: middleware, error envelope handlers and routes."""
    docs = settings.is_development
    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
    )

    setup_middleware(app)
    setup_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "api": "/api/v1",
        }

    @app.get("/health", include_in_schema=False)
    async def health():
        """Process liveness, no store round trip."""
        return {"status": "healthy"}

    logger.debug("Application assembled", routes=len(app.routes))
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    # logging is configured by cloudfs.core.logger
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_config=None,
    )
