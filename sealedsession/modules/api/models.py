"""
Session API data models.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# Request Models (API Input)


class LoginRequest(BaseModel):
    """Request to attach a user to the current session."""

    user_id: str = Field(..., description="User identifier", min_length=1, max_length=200)
    name: Optional[str] = Field(None, description="Display name")

    def to_user(self) -> Dict[str, Any]:
        user = {"id": self.user_id}
        if self.name:
            user["name"] = self.name
        return user


# Response Models (API Output)


class SessionResponse(BaseModel):
    """Current session as seen by the client."""

    authenticated: bool
    user: Optional[Dict[str, Any]] = None
    cookie: Dict[str, Any] = Field(default_factory=dict)
