from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Liveness probe; touches neither Postgres nor Redis."""
    return {"status": "ok"}
