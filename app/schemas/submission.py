from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubmissionRecord(BaseModel):
    """The fact row the forwarder receives for a stored submission."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    form_id: UUID
    calculated_score: int
    submitted_data: Dict[str, str] = Field(default_factory=dict)
    utm_params: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime


class SubmissionWebhookPayload(BaseModel):
    """Database-webhook envelope: ``{"type": "INSERT", "record": {...}}``."""

    type: Optional[str] = None
    table: Optional[str] = None
    record: SubmissionRecord


class ForwardResult(BaseModel):
    success: bool = True
    forwarded: bool
    message: Optional[str] = None
