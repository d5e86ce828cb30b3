"""
Main FastAPI application for User Service.

Serves CRUD for users and, in the background, relays every user mutation
from the change feed to the event bus.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import AsyncSessionLocal, init_db
from .core.background_tasks import background_task_manager
from .adapters import MemoryUserEventPublisher, NatsUserEventPublisher, UserEventPublisher
from .crud import ChangeFeed, ChangeStreamOptions
from .services import UserService
from .watchers import UserChangeFeedWatcher
from .api import router

# Configure logging with timestamps
logging.basicConfig(
    level=logging.DEBUG if settings.IS_LOCAL_TESTING else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def get_publisher() -> UserEventPublisher:
    """
    Factory function to create the appropriate publisher based on configuration.
    """
    adapter_type = settings.EVENT_ADAPTER.lower()

    if adapter_type == "nats":
        return NatsUserEventPublisher(
            url=settings.NATS_URL,
            topic=settings.USER_EVENTS_TOPIC,
            reconnect_time_wait=settings.NATS_RECONNECT_TIME_WAIT,
            max_reconnect_attempts=settings.NATS_MAX_RECONNECT_ATTEMPTS,
        )
    elif adapter_type == "memory":
        return MemoryUserEventPublisher(topic=settings.USER_EVENTS_TOPIC)
    else:
        raise ValueError(f"Unknown adapter type: {adapter_type}")


def get_change_stream_options() -> ChangeStreamOptions:
    """Change cursor options from configuration."""
    return ChangeStreamOptions(
        full_document_before_change="whenAvailable" if settings.CHANGE_FEED_PRE_IMAGES else "off",
        batch_size=settings.CHANGE_FEED_BATCH_SIZE,
        poll_interval=settings.CHANGE_FEED_POLL_INTERVAL,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup: create tables (local mode), connect the publisher, start the relay.
    Shutdown: stop the relay, then disconnect the publisher.
    """
    if settings.IS_LOCAL_TESTING:
        await init_db()

    publisher = get_publisher()
    watcher = UserChangeFeedWatcher(ChangeFeed(AsyncSessionLocal), get_change_stream_options())
    app.state.user_service = UserService(publisher=publisher, watcher=watcher)

    logger.info(f"Starting User Service with {publisher.name}")
    await publisher.connect()

    if settings.RELAY_ENABLED:
        await background_task_manager.start(app.state.user_service)

    yield

    logger.info("Shutting down User Service")
    await background_task_manager.stop(timeout=settings.RELAY_SHUTDOWN_TIMEOUT)
    await publisher.disconnect()
    logger.info("User Service shutdown complete")


# Create FastAPI application
# Disable docs in production for security
app = FastAPI(
    title="User Service",
    description="User records with a change-feed relay to the event bus",
    version=settings.SERVICE_VERSION,
    docs_url="/docs" if not settings.IS_PROD else None,
    redoc_url="/redoc" if not settings.IS_PROD else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    response = {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "status": "operational"
    }
    # Only include docs URL in non-production environments
    if not settings.IS_PROD:
        response["docs"] = "/docs"
    return response


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Reports publisher connection state and whether the relay is running.
    """
    user_service: UserService | None = getattr(app.state, "user_service", None)
    publisher = user_service.publisher if user_service else None
    connected = publisher.is_connected if publisher else False
    return {
        "status": "healthy" if connected else "degraded",
        "publisher": publisher.name if publisher else "none",
        "connected": connected,
        "relay": background_task_manager.is_running,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
