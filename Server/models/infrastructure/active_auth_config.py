"""
RoomBook Server - Active Auth Config Model

Dataclass holding the authentication strategy currently in force.
"""

from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


AUTH_TYPE_JWT = "jwt"
AUTH_TYPE_LDAP = "ldap"
AUTH_TYPE_OIDC = "oidc"
AVAILABLE_AUTH_TYPES = [AUTH_TYPE_JWT, AUTH_TYPE_LDAP, AUTH_TYPE_OIDC]

# Config keys whose values are never echoed back to clients
SECRET_CONFIG_KEYS = ("bindPassword", "clientSecret")
REDACTED_VALUE = "********"


@dataclass(frozen=True)
class ActiveAuthConfig:
    """Selected strategy (auth_type is the discriminant) and its settings"""
    auth_type: str = AUTH_TYPE_JWT
    config: Dict[str, Any] = field(default_factory=dict)
    changed_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    def Redacted(self) -> Dict[str, Any]:
        """Copy of config with secret values masked"""
        return {
            key: (REDACTED_VALUE if key in SECRET_CONFIG_KEYS and value else value)
            for key, value in self.config.items()
        }
