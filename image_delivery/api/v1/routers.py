from fastapi import APIRouter

from image_delivery.api.v1.endpoints import health, image, upload

# 변환 URL 은 외부에 배포된 공개 계약이므로 버전 prefix 없이 노출
api_router = APIRouter()
api_router.include_router(image.router)
api_router.include_router(upload.router)

health_router = APIRouter()
health_router.include_router(health.router)

__all__ = ["api_router", "health_router"]
