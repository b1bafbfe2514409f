"""AAILAR Backend Application.

This is the main entry point for the AAILAR backend service: a shared file
and link library with a real-time chat room.

Modules:
    - chat: WebSocket chat room (admission, authentication, history, presence)
    - files: DuckDB-backed file library (upload, search, preview, delete)
    - links: DuckDB-backed shared links library
    - admin: Room password management and member overview
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp

from aailar.admin.router import router as admin_router
from aailar.chat.manager import get_manager
from aailar.chat.router import router as chat_router
from aailar.config import get_config
from aailar.files.router import get_file_service, router as files_router
from aailar.links.router import get_link_service, router as links_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

for _noisy in ("duckdb", "multipart", "python_multipart"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in aailar.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    service = get_file_service()
    links = get_link_service()
    manager = get_manager()
    logger.info(
        "Chat room ready (max %d connections, %d per origin, history %d)",
        manager.guard.max_total,
        manager.guard.max_per_origin,
        manager.room.history.limit,
    )
    logger.info(f"File library ready at {service.settings.upload_dir}")
    logger.info(f"Link library ready at {links.settings.db_path}")

    yield  # Application runs here

    # Shutdown
    service.close()
    links.close()
    logger.info("Application shutdown complete")


class ConfiguredCORSMiddleware(CORSMiddleware):
    """CORS middleware whose allowed origins come from ``server.allowed_origins``.

    Starlette builds the middleware stack on the app's first ASGI call, so the
    origins are read from the config in effect when the app starts serving.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(
            app,
            allow_origins=get_config().server.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def create_app() -> FastAPI:
    """Create the FastAPI application with all routers registered."""
    application = FastAPI(
        title="AAILAR API",
        description="Shared file and link library with a real-time chat room",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.add_middleware(ConfiguredCORSMiddleware)

    # Register all routers
    application.include_router(chat_router)
    application.include_router(files_router)
    application.include_router(links_router)
    application.include_router(admin_router)
    application.add_api_route("/health", health, methods=["GET"])
    return application


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "aailar.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level,
    )
