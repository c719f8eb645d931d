"""Dependency Injection for FastAPI."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import TYPE_CHECKING

import boto3
from fastapi import Depends, Request

from image_delivery.core.config import Settings, get_settings
from image_delivery.services import RequestAuthenticator, TransformPipeline, UploadSigner, UrlIssuer

if TYPE_CHECKING:
    from botocore.client import BaseClient

logger = logging.getLogger(__name__)


@lru_cache
def _build_s3_client(region: str) -> "BaseClient":
    logger.info("S3 client created", extra={"region": region})
    return boto3.client("s3", region_name=region)


def get_s3_client(settings: Settings = Depends(get_settings)) -> "BaseClient":
    """S3 클라이언트 싱글톤을 반환합니다 (리전별)."""
    return _build_s3_client(settings.aws_region)


def get_authenticator(settings: Settings = Depends(get_settings)) -> RequestAuthenticator:
    return RequestAuthenticator(settings.signing_secret.get_secret_value())


def get_url_issuer(settings: Settings = Depends(get_settings)) -> UrlIssuer:
    return UrlIssuer(
        settings.signing_secret.get_secret_value(),
        base_url=settings.base_public_url,
    )


def get_transform_executor(request: Request) -> ThreadPoolExecutor:
    """앱 수명 동안 공유되는 변환 전용 스레드 풀 (create_app 에서 생성)."""
    return request.app.state.transform_executor


def get_pipeline(
    settings: Settings = Depends(get_settings),
    s3_client: "BaseClient" = Depends(get_s3_client),
    executor: ThreadPoolExecutor = Depends(get_transform_executor),
) -> TransformPipeline:
    return TransformPipeline(
        s3_client,
        settings.s3_bucket,
        chunk_size=settings.stream_chunk_size,
        queue_size=settings.stream_queue_size,
        executor=executor,
        start_timeout=settings.transform_start_timeout,
        idle_timeout=settings.stream_idle_timeout,
    )


def get_upload_signer(
    settings: Settings = Depends(get_settings),
    s3_client: "BaseClient" = Depends(get_s3_client),
) -> UploadSigner:
    return UploadSigner(
        s3_client,
        settings.s3_bucket,
        expires_seconds=settings.upload_expires_seconds,
        max_bytes=settings.upload_max_bytes,
    )
