from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError

from image_delivery.core.exceptions import MissingKeyError, PresignError
from image_delivery.schemas.image import UploadSignResponse

if TYPE_CHECKING:
    from botocore.client import BaseClient

logger = logging.getLogger(__name__)


class UploadSigner:
    """Issues S3 presigned POST credentials for direct browser uploads."""

    def __init__(
        self,
        s3_client: "BaseClient",
        bucket: str,
        expires_seconds: int = 900,
        max_bytes: int = 25 * 1024 * 1024,
    ) -> None:
        self._s3 = s3_client
        self._bucket = bucket
        self._expires_seconds = expires_seconds
        self._max_bytes = max_bytes

    def create(self, key: str) -> UploadSignResponse:
        if not key:
            raise MissingKeyError()
        try:
            presigned = self._s3.generate_presigned_post(
                Bucket=self._bucket,
                Key=key,
                Conditions=[["content-length-range", 0, self._max_bytes]],
                ExpiresIn=self._expires_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Presigned POST failed", extra={"object_key": key})
            raise PresignError() from exc

        logger.info(
            "Presigned POST issued",
            extra={"object_key": key, "expires_in": self._expires_seconds},
        )
        return UploadSignResponse(url=presigned["url"], fields=presigned["fields"])
