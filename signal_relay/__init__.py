# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from signal_relay.logging import logger
from signal_relay.middlewares.correlation_id import CorrelationIDMiddleware
from signal_relay.relay.server import RelayServer
from signal_relay.routing import collect_subrouters
from signal_relay.settings import app_settings

__version__ = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown.

    Startup operations:
    - Builds the relay server (fresh, empty registry) from settings
    - Binds the relay WebSocket listener and starts the heartbeat
    - Initializes Prometheus metrics

    Shutdown operations:
    - Cancels the heartbeat, closes every relay connection and the listener
    """
    # Startup
    logger.info("Application startup: initializing resources")

    relay_server = RelayServer.from_settings(app_settings)
    await relay_server.start()
    app.state.relay_server = relay_server

    from signal_relay.utils.metrics import app_info

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT,
    ).set(1)
    logger.info("Initialized Prometheus metrics")

    yield  # Application runs here

    # Shutdown
    logger.info("Application shutdown: cleaning up resources")

    try:
        await relay_server.stop()
    except Exception as ex:
        logger.error(f"Error stopping relay server: {ex}")

    logger.info("Application shutdown complete")


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    The HTTP application hosts the operational endpoints (health, metrics,
    registry view) and owns the signaling relay through its lifespan.

    Routers are collected from `signal_relay/api/http` by
    `signal_relay.routing.collect_subrouters()`, and the
    `CorrelationIDMiddleware` tags every request with a correlation id.
    """
    app = FastAPI(
        title="Signal relay",
        description="WebRTC signaling relay for the advice marketplace",
        version=__version__,
        lifespan=lifespan,
    )

    # Collect routers
    app.include_router(collect_subrouters())

    app.add_middleware(CorrelationIDMiddleware)

    return app


app = application()  # Need for fastapi cli
