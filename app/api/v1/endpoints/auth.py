from typing import Optional

from fastapi import APIRouter, Depends

from app.core.cache import CacheService
from app.core.security import revoke_session
from app.schemas.auth import OwnerContext, SessionOut
from app.schemas.common import SuccessResponse
from app.api.deps import get_cache_service, get_current_owner, get_optional_owner

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/session", response_model=SessionOut)
async def get_session(
    owner: Optional[OwnerContext] = Depends(get_optional_owner),
) -> SessionOut:
    """Return the signed-in owner, or ``{"session": null}``."""
    return SessionOut(session=owner)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    owner: OwnerContext = Depends(get_current_owner),
    cache: CacheService = Depends(get_cache_service),
) -> SuccessResponse:
    """Revoke the current session so its token stops working."""
    await revoke_session(owner, cache)
    return SuccessResponse()
