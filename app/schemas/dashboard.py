from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class KpiOut(BaseModel):
    total_forms: int = 0
    active_forms: int = 0
    total_submissions: int = 0


class FormSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_name: str
    subdomain: str
    score_threshold: int
    is_active: bool
    submission_count: int = 0


class DashboardResponse(BaseModel):
    """Both dashboard reads, each of which may independently fail.

    A section that failed is filled from the last good value when one is
    cached (``*_stale`` is then ``True``) and is ``None`` otherwise; the
    failure is always listed in ``errors``.
    """

    kpis: Optional[KpiOut] = None
    forms: Optional[List[FormSummary]] = None
    kpis_stale: bool = False
    forms_stale: bool = False
    errors: List[str] = Field(default_factory=list)
