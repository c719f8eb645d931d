"""서명 URL 인증 관련 예외."""

from image_delivery.core.constants import EXPIRES_EXAMPLE
from image_delivery.core.exceptions.base import ImageServiceError


class MissingSignatureError(ImageServiceError):
    """signature 쿼리 파라미터가 누락됨."""

    code = "MissingSignature"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Missing signature query param.")


class ExpiryFormatError(ImageServiceError):
    """expires 값이 YYYYMMDDTHHmmssZ 형식이 아님."""

    code = "ExpiryFormatError"
    status_code = 400

    def __init__(self) -> None:
        super().__init__(
            f"Invalid expires; must be YYYYMMDDTHHmmssZ (e.g., {EXPIRES_EXAMPLE})."
        )


class RequestExpiredError(ImageServiceError):
    """expires 시각이 지남."""

    code = "RequestExpired"
    status_code = 403

    def __init__(self) -> None:
        super().__init__("Request has expired.")


class SignatureMismatchError(ImageServiceError):
    """재계산한 서명과 요청 서명이 다름."""

    code = "SignatureMismatch"
    status_code = 403

    def __init__(self) -> None:
        super().__init__("Signature does not match.")
