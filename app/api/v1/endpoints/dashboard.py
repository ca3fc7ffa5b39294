from fastapi import APIRouter, Depends

from app.schemas.auth import OwnerContext
from app.schemas.dashboard import DashboardResponse
from app.services.dashboard_service import DashboardService
from app.api.deps import get_current_owner, get_dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    owner: OwnerContext = Depends(get_current_owner),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    """KPIs plus the owner's forms with submission counts.

    The two reads succeed or fail independently; see ``errors`` and the
    ``*_stale`` flags in the response.
    """
    return await service.get_dashboard(owner.user_id)
