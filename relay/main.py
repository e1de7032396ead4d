"""
FastAPI server relaying Telnyx media streams to Hume EVI.

This module builds the FastAPI application that Telnyx connects to. Each
WebSocket connection on /telnyx becomes one session paired with one Hume EVI
connection; Hume audio output is handed to the speak webhook and Hume emotion
predictions are answered with a canned text turn.

The server also exposes a health endpoint reporting liveness and the number of
active sessions, and drains every session before exiting on SIGTERM or SIGINT.

Usage:
    telnyx-hume-relay [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

import dotenv
import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay.bot.telnyx_hume_bridge import TelnyxHumeBridge
from relay.config.constants import (
    LOGGER_NAME,
    SERVICE_NAME,
    SERVICE_VERSION,
    TELNYX_WS_PATH,
)
from relay.config.logging_config import configure_logging
from relay.config.settings import ConfigurationError, RelaySettings, load_settings
from relay.models.message_schemas import utc_timestamp
from relay.models.session import SessionManager
from relay.server import RelayServer
from relay.services.speak_webhook import SpeakWebhook
from relay.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = logging.getLogger(LOGGER_NAME)


def create_app(
    settings: RelaySettings,
    session_manager: Optional[SessionManager] = None,
    bridge: Optional[TelnyxHumeBridge] = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        settings: Validated relay settings
        session_manager: Registry of active sessions, created from settings when omitted
        bridge: Hume bridge, created from settings when omitted

    Returns:
        FastAPI: The configured application
    """
    if session_manager is None:
        session_manager = SessionManager(max_sessions=settings.max_sessions)
    if bridge is None:
        webhook = SpeakWebhook(settings.webhook_speak_url, timeout=settings.webhook_timeout)
        bridge = TelnyxHumeBridge(settings, webhook)
    websocket_manager = WebSocketManager(session_manager, bridge)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Bridge service ready, WebSocket endpoint: {TELNYX_WS_PATH}")
        yield
        await session_manager.close_all()
        await bridge.aclose()
        logger.info("Bridge service closed")

    app = FastAPI(
        title="Telnyx Hume Relay",
        description="Relay between Telnyx media streams and Hume EVI",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_manager = session_manager
    app.state.websocket_manager = websocket_manager

    @app.websocket(TELNYX_WS_PATH)
    async def telnyx_endpoint(websocket: WebSocket):
        """WebSocket endpoint for Telnyx media streams.

        An optional sessionId query parameter is reused as the session identifier.
        """
        await websocket_manager.handle_websocket(websocket)

    @app.get("/health")
    async def health_check():
        """Health check endpoint reporting liveness and active sessions.

        Returns:
            dict: Service status, timestamp, active connection count and which
            required settings are configured
        """
        return {
            "status": "OK",
            "service": SERVICE_NAME,
            "timestamp": utc_timestamp(),
            "connections": session_manager.count,
            "environment": settings.environment_status(),
        }

    @app.get("/hc", response_class=PlainTextResponse)
    async def liveness_probe():
        return "ok"

    @app.get("/")
    async def root():
        """Root endpoint to display basic information about the relay."""
        return {
            "name": SERVICE_NAME,
            "description": app.description,
            "version": SERVICE_VERSION,
            "endpoints": {
                TELNYX_WS_PATH: "WebSocket endpoint for Telnyx media streams",
                "/health": "Health check endpoint",
                "/hc": "Plain-text liveness probe",
            },
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse({"error": "Not Found"}, status_code=404)
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    return app


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Telnyx to Hume relay"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the server on (default: PORT, BRIDGE_PORT or 3001)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind the server to (default: HOST or 0.0.0.0)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point: validate configuration, then serve until a termination signal."""
    args = parse_args(argv)
    logger = configure_logging(args.log_level)
    logger.info("Bridge Service Starting...")

    try:
        settings = load_settings()
        overrides = {
            key: value
            for key, value in (
                ("host", args.host),
                ("port", args.port),
                ("log_level", args.log_level),
            )
            if value is not None
        }
        if overrides:
            settings = RelaySettings(**{**settings.model_dump(), **overrides})
    except ConfigurationError as e:
        logger.error(f"{e}")
        logger.error("Required: HUME_WS_URL, HUME_API_KEY, WEBHOOK_SPEAK_URL")
        return 1
    except ValueError as e:
        logger.error(f"Invalid command line option: {e}")
        return 1

    logger.setLevel(settings.log_level)
    logger.info(f"Environment Check: {settings.environment_status()}, PORT: {settings.port}")

    session_manager = SessionManager(max_sessions=settings.max_sessions)
    app = create_app(settings, session_manager=session_manager)

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        ws="websockets",
        access_log=False,
    )
    server = RelayServer(config, session_manager)

    logger.info(f"Bridge Service listening on port {settings.port}")
    logger.info(f"WebSocket endpoint: ws://{settings.host}:{settings.port}{TELNYX_WS_PATH}")
    logger.info(f"Health check: http://{settings.host}:{settings.port}/health")
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
