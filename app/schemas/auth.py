from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class OwnerContext(BaseModel):
    """Verified identity of the authenticated form owner.

    Built once per request from the bearer token and passed explicitly to
    every owner-only operation.
    """

    user_id: UUID
    email: Optional[str] = None
    session_id: Optional[str] = None
    expires_at: Optional[datetime] = None


class SessionOut(BaseModel):
    """Response body for GET /auth/session (``session`` is null when signed out)."""

    session: Optional[OwnerContext] = None
