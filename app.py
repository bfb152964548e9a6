from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from routers.ws import ws_router
from coordinator import RoomCoordinator
from registry import WebSocketRegistry
from relay import SignalingRelay
from constants import CORS_ORIGINS, DEFAULT_CODE, LOG_FILE, LOG_LEVEL, OUTBOX_MAX_SIZE
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(default_code: str = DEFAULT_CODE, max_outbox_size: int = OUTBOX_MAX_SIZE) -> FastAPI:
    """Build the application with its own registry, coordinator and relay."""
    registry = WebSocketRegistry(max_outbox_size=max_outbox_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, closing outboxes")
        await registry.shutdown()

    app = FastAPI(title="Code Rooms", lifespan=lifespan)

    # Configure CORS (all origins unless CORS_ORIGINS is set)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.registry = registry
    app.state.coordinator = RoomCoordinator(registry, default_code=default_code)
    app.state.relay = SignalingRelay(registry)

    app.include_router(rooms_router)
    app.include_router(ws_router)

    @app.get("/health")
    async def healthcheck():
        return {"status": "ok"}

    logger.info("FastAPI application initialized")
    return app


app = create_app()
