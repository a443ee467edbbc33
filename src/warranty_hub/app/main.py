"""FastAPI application entry point for the WarrantyHub API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from warranty_hub.app.config import Settings, get_settings
from warranty_hub.app.exception_handlers import setup_exception_handlers
from warranty_hub.app.routes.batches import router as batches_router
from warranty_hub.app.routes.contracts import router as contracts_router
from warranty_hub.app.routes.dealers import router as dealers_router
from warranty_hub.app.routes.marketplace import router as marketplace_router
from warranty_hub.app.routes.pricing import router as pricing_router
from warranty_hub.app.routes.products import router as products_router
from warranty_hub.infra.database import create_engine, create_session_factory, init_db
from warranty_hub.infra.repositories import Repositories, build_repositories
from warranty_hub.services.vin_decoder import VinDecoder

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: compose the persistence backend on startup."""
    settings: Settings = app.state.settings
    engine = None
    if app.state.repositories is None:
        session_factory = None
        if settings.is_hosted:
            engine = create_engine(settings.database_url)
            await init_db(engine)
            session_factory = create_session_factory(engine)
        app.state.repositories = build_repositories(settings, session_factory=session_factory)
    yield
    if engine is not None:
        await engine.dispose()


def create_app(
    settings: Settings | None = None,
    repositories: Repositories | None = None,
    vin_decoder: VinDecoder | None = None,
) -> FastAPI:
    """Build the API. Tests pass pre-built repositories and a stubbed decoder."""
    settings = settings or get_settings()

    app = FastAPI(
        title="WarrantyHub API",
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.repositories = repositories
    app.state.vin_decoder = vin_decoder or VinDecoder(
        settings.vin_decode_base_url, timeout=settings.vin_decode_timeout_seconds
    )

    # CORS middleware: allow all origins in debug mode
    cors_origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=("*" not in cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    app.include_router(contracts_router)
    app.include_router(batches_router)
    app.include_router(products_router)
    app.include_router(pricing_router)
    app.include_router(marketplace_router)
    app.include_router(dealers_router)

    @app.get("/health", tags=["health"])
    async def health_check():
        """Return service health status."""
        return {"status": "ok", "service": "warranty-hub", "mode": settings.app_mode.value}

    return app


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = create_app(settings)


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "warranty_hub.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
