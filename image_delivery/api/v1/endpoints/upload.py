import asyncio

from fastapi import APIRouter, Depends

from image_delivery.api.v1.dependencies import get_upload_signer
from image_delivery.core.constants import UPLOAD_SIGN_PATH
from image_delivery.schemas.image import UploadSignRequest, UploadSignResponse
from image_delivery.services import UploadSigner

router = APIRouter(tags=["uploads"])


@router.post(
    UPLOAD_SIGN_PATH,
    response_model=UploadSignResponse,
    summary="Create presigned POST for direct browser upload",
)
async def sign_upload(
    payload: UploadSignRequest,
    signer: UploadSigner = Depends(get_upload_signer),
) -> UploadSignResponse:
    # boto3 서명 계산은 동기 호출 - 이벤트 루프 블로킹 방지
    return await asyncio.to_thread(signer.create, payload.key)
