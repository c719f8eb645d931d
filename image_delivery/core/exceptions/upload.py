"""업로드 관련 예외."""

from image_delivery.core.exceptions.base import ImageServiceError


class PresignError(ImageServiceError):
    """Presigned POST 생성 실패."""

    code = "PresignError"
    status_code = 500

    def __init__(self) -> None:
        super().__init__("Could not create presigned POST.")
