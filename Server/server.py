"""
RoomBook Server - Main FastAPI Application

This module assembles the FastAPI application for the RoomBook meeting-room
booking portal: logging, service objects on app.state, CORS, the
validation error handler and the API routers.
"""

import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from auth_service import AuthService
from config import ServerConfig, LoadConfig
from managers.database_manager import DatabaseManager
from sessions import CleanupExpiredSessions

logger = logging.getLogger(__name__)


# ==================== Logging ====================

def ConfigureLogging(config: ServerConfig) -> None:
    """
    Log to the console and to a rotating daily file under config.log_dir

    Args:
        config: Server configuration (log_level, log_dir)
    """
    logs_dir = Path(config.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Create log filename with timestamp
    log_filename = logs_dir / f"roombook-server-{datetime.now().strftime('%Y-%m-%d')}.log"

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            # Console handler
            logging.StreamHandler(),
            # File handler with rotation (max 10MB per file, keep 10 backup files)
            RotatingFileHandler(
                log_filename,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=10,
                encoding='utf-8'
            )
        ]
    )


# ==================== Error Handlers ====================

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report request validation failures as 400 with one entry per field
    """
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "Invalid value")
        })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors}
    )


# ==================== Application Factory ====================

def CreateApp(config: Optional[ServerConfig] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        config: Server configuration (loaded from the environment if None)

    Returns:
        FastAPI: Configured application; services are created on startup
    """
    if config is None:
        config = LoadConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        FastAPI lifespan event handler for startup and shutdown
        Manages database initialization and the authentication service
        """
        # Startup
        if config.log_dir:
            ConfigureLogging(config)

        logger.info("RoomBook Server starting up...")

        db_manager = DatabaseManager(config.database_url)

        # Creates tables if needed, but won't recreate admin if exists
        admin_password = db_manager.InitializeDatabase(
            admin_username=config.default_admin_username,
            admin_email=config.default_admin_email,
            admin_password=config.default_admin_password
        )
        if admin_password:
            logger.warning("=" * 60)
            logger.warning("NEW ADMIN USER CREATED")
            logger.warning(f"Username: {config.default_admin_username}")
            logger.warning(f"Password: {admin_password}")
            logger.warning("SAVE THIS PASSWORD - IT WILL NOT BE SHOWN AGAIN!")
            logger.warning("=" * 60)

        logger.info("Database initialized successfully")

        CleanupExpiredSessions(db_manager)

        auth_service = AuthService(db_manager, config)
        auth_service.LoadActiveConfig()

        app.state.config = config
        app.state.db_manager = db_manager
        app.state.auth_service = auth_service

        logger.info("Server startup complete")

        yield

        # Shutdown
        logger.info("RoomBook Server shutting down...")
        db_manager.engine.dispose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="RoomBook Server",
        description="Meeting room booking portal",
        version="1.0.0",
        lifespan=lifespan
    )

    # ==================== CORS Middleware ====================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # ==================== Include Routers ====================

    from routes import status as status_routes, auth, rooms, bookings, stats

    app.include_router(status_routes.router)
    app.include_router(auth.router)
    app.include_router(rooms.router)
    app.include_router(bookings.router)
    app.include_router(stats.router)

    return app


app = CreateApp()


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    logger.info("Starting RoomBook Server...")

    # host="0.0.0.0" allows connections from other machines on the network
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info"
    )
