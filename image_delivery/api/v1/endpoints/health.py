"""Health/Readiness check endpoints (로그 제외 - 노이즈 방지)."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from image_delivery.core.constants import SERVICE_NAME

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness():
    return {"status": "ready", "service": SERVICE_NAME}


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "Dynamic Image Service ready"
