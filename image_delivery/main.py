import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from image_delivery.api.errors import register_exception_handlers
from image_delivery.api.v1.routers import api_router, health_router
from image_delivery.core.config import Settings, get_settings
from image_delivery.core.constants import SERVICE_VERSION
from image_delivery.core.logging import configure_logging
from image_delivery.metrics import register_metrics

logger = logging.getLogger(__name__)

# 구조화된 로깅 설정 (ECS JSON 포맷)
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield

    # 진행 중인 워커는 채널 취소로 종료되므로 기다리지 않음
    app.state.transform_executor.shutdown(wait=False, cancel_futures=True)
    logger.info("Transform executor stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Settings are resolved eagerly so that a missing bucket, region or signing
    secret stops the process here instead of failing on the first request.
    """
    if settings is None:
        try:
            settings = get_settings()
        except ValidationError:
            logger.error(
                "Missing required configuration: IMAGE_S3_BUCKET, IMAGE_AWS_REGION, "
                "IMAGE_SIGNING_SECRET (or S3_BUCKET, S3_REGION, IMG_SIGNING_SECRET)"
            )
            raise

    app = FastAPI(
        title=settings.app_name,
        description="Signed on-demand image transformations from S3",
        version=SERVICE_VERSION,
        docs_url="/docs",
        openapi_url="/openapi.json",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings
    app.state.transform_executor = ThreadPoolExecutor(
        max_workers=settings.transform_workers,
        thread_name_prefix="image-transform",
    )

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.cors_origin],
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router)
    register_metrics(app)

    logger.info(
        "Image service configured",
        extra={
            "bucket": settings.s3_bucket,
            "region": settings.aws_region,
            "auto_webp": settings.auto_webp,
            "cors_enabled": settings.cors_enabled,
            "transform_workers": settings.transform_workers,
        },
    )
    return app


def run() -> None:
    import uvicorn

    app = create_app()
    # log_config=None: uvicorn 로거도 루트 핸들러(ECS JSON)로 전달
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port, log_config=None)


if __name__ == "__main__":
    run()
