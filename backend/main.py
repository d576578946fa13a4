from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from api.router import api_router
from core.config import Settings, get_settings
from core.errors import install_error_handlers
from core.logging import configure_logging
from database.session import init_db
from services.container import build_services

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(services.engine)
        logger.info("app_started", env=settings.env, api_prefix=settings.api_prefix)
        yield
        services.engine.dispose()
        logger.info("app_stopped")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
