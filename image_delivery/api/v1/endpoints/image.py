"""Transform and signed-URL endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from image_delivery.api.v1.dependencies import get_authenticator, get_pipeline, get_url_issuer
from image_delivery.core.config import Settings, get_settings
from image_delivery.core.constants import ISSUE_PATH, TRANSFORM_PATH_PREFIX
from image_delivery.metrics import URLS_ISSUED
from image_delivery.schemas.image import SignedUrlResponse, TransformRequest
from image_delivery.services.signing import transform_path
from image_delivery.services import (
    RequestAuthenticator,
    TransformPipeline,
    UrlIssuer,
    cache_headers,
    negotiate,
)

router = APIRouter(tags=["images"])


@router.get(
    TRANSFORM_PATH_PREFIX + "/{object_key:path}",
    summary="Transform an image from storage (signed URL)",
    response_class=StreamingResponse,
)
async def transform_image(
    object_key: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    authenticator: RequestAuthenticator = Depends(get_authenticator),
    pipeline: TransformPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    """서명 검증 후 원본을 변환하여 스트리밍합니다.

    검증 실패(서명, 만료, 키, 파라미터)는 스토리지 접근 전에 JSON 에러로 반환됩니다.
    """
    query = dict(request.query_params)
    authenticator.authenticate(transform_path(object_key), query)

    params = TransformRequest.from_query(object_key, query)
    output_format = negotiate(params.format, settings.auto_webp, request.headers.get("accept"))

    stream = await pipeline.transform(params, output_format)
    return StreamingResponse(
        stream.iter_bytes(),
        media_type=stream.content_type,
        headers=cache_headers(),
    )


@router.get(ISSUE_PATH, response_model=SignedUrlResponse, summary="Issue a signed transform URL")
async def issue_image_url(
    key: Optional[str] = Query(None, description="Storage object key"),
    w: Optional[str] = Query(None),
    h: Optional[str] = Query(None),
    fit: Optional[str] = Query(None),
    fmt: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    expires: Optional[str] = Query(None, description="UTC YYYYMMDDTHHmmssZ"),
    issuer: UrlIssuer = Depends(get_url_issuer),
) -> JSONResponse:
    url = issuer.issue(
        key or "",
        {"w": w, "h": h, "fit": fit, "fmt": fmt, "q": q, "expires": expires},
    )
    URLS_ISSUED.inc()
    return JSONResponse(
        content=SignedUrlResponse(url=url).model_dump(),
        headers=cache_headers(),
    )
