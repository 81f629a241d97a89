from fastapi import APIRouter

from fiscal_tracker.config.settings import settings

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok", "message": f"{settings.APP_NAME} running"}
