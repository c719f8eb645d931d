"""URL canonicalization and HMAC signing.

The issuer (``UrlIssuer``) and the verifier
(``image_delivery.services.authenticator.RequestAuthenticator``) both go
through ``canonicalize`` and ``sign`` below; any asymmetry between the two
sides breaks every issued URL.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime
from typing import Callable, Mapping, Optional
from urllib.parse import quote, urlencode

from image_delivery.core.constants import (
    PARAM_EXPIRES,
    PARAM_SIGNATURE,
    TRANSFORM_PARAMS,
    TRANSFORM_PATH_PREFIX,
)
from image_delivery.core.exceptions import MissingKeyError
from image_delivery.schemas.image import TransformRequest
from image_delivery.services.expiry import check_expiry, utc_now

logger = logging.getLogger(__name__)


def canonicalize(params: Mapping[str, str]) -> str:
    """Serialize query params (minus ``signature``) as sorted ``k=v`` pairs.

    Sorting is ordinal on the parameter name; values are used verbatim.
    """
    pairs = sorted(
        (name, value) for name, value in params.items() if name != PARAM_SIGNATURE
    )
    return "&".join(f"{name}={value}" for name, value in pairs)


def signing_input(path: str, canonical_query: str) -> str:
    return f"{path}?{canonical_query}" if canonical_query else path


def sign(path: str, canonical_query: str, secret: str | bytes) -> str:
    """HMAC-SHA256 over the signing input, lowercase hex."""
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    message = signing_input(path, canonical_query).encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def transform_path(object_key: str) -> str:
    return f"{TRANSFORM_PATH_PREFIX}/{object_key}"


class UrlIssuer:
    """Mints signed transform URLs.

    Args:
        secret: HMAC 서명 키
        base_url: 발급 URL 을 절대 경로로 만들 때 붙이는 prefix (없으면 상대 URL)
        clock: 현재 UTC 시각 (테스트 주입용)
    """

    def __init__(
        self,
        secret: str | bytes,
        base_url: str = "",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._secret = secret
        self._base_url = base_url.rstrip("/")
        self._clock = clock

    def issue(self, object_key: str, params: Mapping[str, Optional[str]]) -> str:
        """Build the signed URL for ``object_key`` with the given transform params.

        Empty and unknown params are dropped. Values are validated with the
        same parser the transform endpoint uses, and ``expires`` goes through
        the expiry check, so callers get immediate feedback.

        Raises:
            MissingKeyError, InvalidParameterError, ExpiryFormatError, RequestExpiredError
        """
        if not object_key:
            raise MissingKeyError()

        selected = {
            name: str(params[name])
            for name in TRANSFORM_PARAMS
            if params.get(name) not in (None, "")
        }
        TransformRequest.from_query(object_key, selected)
        check_expiry(selected.get(PARAM_EXPIRES), now=self._clock())

        path = transform_path(object_key)
        canonical = canonicalize(selected)
        signature = sign(path, canonical, self._secret)

        query = urlencode(sorted(selected.items()) + [(PARAM_SIGNATURE, signature)])
        url = f"{self._base_url}{quote(path, safe='/')}?{query}"
        logger.info(
            "Signed URL issued",
            extra={"object_key": object_key, "params": sorted(selected)},
        )
        return url
