"""
ZoneWatch Control API

A FastAPI application serving zone management and the external control
protocol: controllers drive what viewer screens display (radar vs. zone view,
range, aircraft selection) through session-keyed WebSocket messages.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zonewatch import __version__
from zonewatch.core import get_settings, init_db, close_db, AsyncSessionLocal
from zonewatch.routers import control, zones, system
from zonewatch.routers.control import get_control_service
from zonewatch.services.control_protocol import ControlService, serve_control_socket
from zonewatch.services.zones import DatabaseZoneDirectory

settings = get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(f"Starting ZoneWatch Control API v{__version__}")

    await init_db()
    logger.info("Database initialized")

    service = ControlService(
        zones=DatabaseZoneDirectory(AsyncSessionLocal),
        session_timeout=settings.control_session_timeout,
    )
    service.start(cleanup_interval=settings.control_cleanup_interval)
    app.state.control = service
    logger.info("External control service initialized")

    logger.info(f"Antenna location: {settings.antenna_lat}, {settings.antenna_lon}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await service.stop()
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="ZoneWatch Control API",
    version=__version__,
    description="""
## Overview
Zone management and session-keyed external control of viewer screens.

## External Control
Viewers and controllers join a session over `/ws/control` by ID. Controllers
send `MODE`, `RANGE`, `ZONES` and `SELECT`; every client of the session
receives the resulting `STATE_UPDATE`.

## Authentication
This API does not require authentication. Anyone who knows a session ID can
join it.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Control",
            "description": "External control sessions"
        },
        {
            "name": "Zones",
            "description": "Geographic zones cycled through by MODE"
        },
        {
            "name": "System",
            "description": "Health checks, status and metrics"
        },
    ]
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(control.router)
app.include_router(zones.router)
app.include_router(system.router)


@app.websocket("/ws/control")
async def control_websocket(
    websocket: WebSocket,
    service: ControlService = Depends(get_control_service),
):
    """
    WebSocket endpoint for external control.

    Register first, then send control messages:
    {"type": "REGISTER_VIEWER", "sessionId": "1234", "currentView": {"mode": "radar", "range": 10}}
    {"type": "REGISTER_CONTROLLER", "sessionId": "1234"}
    {"type": "MODE", "sessionId": "1234", "direction": "forward"}

    Server pushes:
    {"type": "STATE_UPDATE", "sessionId": "1234", "state": {...}}
    {"type": "SELECT_AIRCRAFT", "sessionId": "1234", "direction": "forward"}
    """
    await serve_control_socket(websocket, service, receive_timeout=settings.control_receive_timeout)


@app.get("/")
async def root():
    return JSONResponse({"message": f"ZoneWatch Control API v{__version__}", "docs": "/docs"})


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(
        "zonewatch.main:app",
        host="0.0.0.0",
        port=settings.port,
    )


if __name__ == "__main__":
    run()
