"""
RoomBook Server - Database Module

FastAPI dependencies that hand routes the per-application service objects.
The lifespan handler in server.py stores them on app.state.
"""

from fastapi import Request

from config import ServerConfig
from managers.database_manager import DatabaseManager


def GetDatabaseManager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def GetServerConfig(request: Request) -> ServerConfig:
    return request.app.state.config
