from fastapi import APIRouter

from app.api.v1.endpoints import auth, dashboard, drafts, forms, health, public, webhooks

router = APIRouter(prefix="/api/v1")

router.include_router(health.router)
router.include_router(auth.router)
router.include_router(dashboard.router)
router.include_router(forms.router)
router.include_router(drafts.router)
router.include_router(public.router)
router.include_router(webhooks.router)
