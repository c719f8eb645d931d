"""Inbound transform request authentication.

Unverified -> signature present -> expiry checked -> signature verified -> accepted.
각 단계는 실패 시 즉시 예외를 던지며 스토리지에는 접근하지 않습니다.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime
from typing import Callable, Mapping

from image_delivery.core.constants import PARAM_EXPIRES, PARAM_SIGNATURE
from image_delivery.core.exceptions import (
    ImageServiceError,
    MissingSignatureError,
    SignatureMismatchError,
)
from image_delivery.metrics import AUTH_REJECTIONS
from image_delivery.services.expiry import check_expiry, utc_now
from image_delivery.services.signing import canonicalize, sign

logger = logging.getLogger(__name__)


class RequestAuthenticator:
    """Accepts or rejects a transform request by path and raw query params.

    Args:
        secret: HMAC 서명 키 (UrlIssuer 와 동일해야 함)
        clock: 현재 UTC 시각 (테스트 주입용)
    """

    def __init__(
        self,
        secret: str | bytes,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._secret = secret
        self._clock = clock

    def expected_signature(self, path: str, query: Mapping[str, str]) -> str:
        return sign(path, canonicalize(query), self._secret)

    def authenticate(self, path: str, query: Mapping[str, str]) -> None:
        """Raise on the first failed step; return None when accepted.

        Raises:
            MissingSignatureError, ExpiryFormatError, RequestExpiredError,
            SignatureMismatchError
        """
        try:
            self._verify(path, query)
        except ImageServiceError as exc:
            AUTH_REJECTIONS.labels(code=exc.code).inc()
            logger.warning(
                "Transform request rejected",
                extra={"url_path": path, "error_code": exc.code},
            )
            raise

    def _verify(self, path: str, query: Mapping[str, str]) -> None:
        provided = query.get(PARAM_SIGNATURE)
        if not provided:
            raise MissingSignatureError()

        check_expiry(query.get(PARAM_EXPIRES), now=self._clock())

        expected = self.expected_signature(path, query)
        if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            raise SignatureMismatchError()
