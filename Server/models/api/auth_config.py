"""
RoomBook Server - Auth Configuration API Models

Pydantic models for the admin authentication configuration endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel


class AuthConfigRequest(BaseModel):
    """Request model for switching the active authentication strategy"""
    auth_type: Literal["jwt", "ldap", "oidc"]
    config: Optional[Dict[str, Any]] = None


class AuthConfigResponse(BaseModel):
    """Active authentication strategy, with secrets redacted"""
    auth_type: str
    config: Dict[str, Any] = {}
    is_active: bool = True
    changed_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class AuthMethodsResponse(BaseModel):
    current: str
    available: List[str]
