"""
UserHub API: FastAPI main application
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from userhub.api.dependencies import run_blocking
from userhub.api.errors import register_exception_handlers
from userhub.api.responses import envelope
from userhub.api.router import build_api_router
from userhub.core.config import Settings
from userhub.core.logging import get_logger, setup_logging
from userhub.gql.schema import build_graphql_router
from userhub.services.user_service import UserService
from userhub.storage import UserStore, build_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare storage on startup and release it on shutdown."""
    store: UserStore = app.state.store
    logger.info("UserHub starting with %s storage", store.name)
    store.startup()
    yield
    store.shutdown()
    logger.info("UserHub stopped")


def create_app(settings: Optional[Settings] = None, store: Optional[UserStore] = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.log_level, settings.log_format)
    store = store or build_store(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Users CRUD with cursor pagination, search and an ad-hoc query DSL, over REST and GraphQL",
        version=settings.version,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store settings and singletons on app state
    app.state.settings = settings
    app.state.store = store
    app.state.user_service = UserService(store, settings.display_timezone)

    register_exception_handlers(app)

    # Routes
    app.include_router(build_api_router(settings.api_prefix))
    app.include_router(build_graphql_router(), prefix=settings.graphql_path)

    @app.get("/health")
    async def health():
        return envelope(
            "Server is running",
            status="ok",
            version=settings.version,
            storage=store.name,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @app.get("/health/ready")
    async def ready():
        try:
            ok = await run_blocking(app.state.user_service.ping)
        except Exception as exc:
            logger.warning("Readiness check failed: %s", exc)
            ok = False
        status_code = 200 if ok else 503
        return JSONResponse(
            status_code=status_code,
            content=envelope("Storage reachable" if ok else "Storage unreachable", success=ok, storage=store.name),
        )

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.version,
            "docs": "/docs",
            "graphql": settings.graphql_path,
            "health": "/health",
        }

    return app
