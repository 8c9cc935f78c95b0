from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


NO_PLAN = "none"


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    email: str
    stripe_id: str
    plan: str = NO_PLAN
    created_at: Optional[datetime] = None


class Identity(BaseModel):
    """Authenticated identity as reported by the identity provider."""
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_provider_user(cls, payload: Dict[str, Any]) -> "Identity":
        metadata = payload.get("user_metadata") or {}
        display = metadata.get("full_name") or metadata.get("name")
        return cls(id=str(payload["id"]), email=payload.get("email") or None, display_name=display)


class AuthSession(BaseModel):
    """Session obtained from a code exchange."""
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)
