"""이미지 서비스 예외 베이스 클래스."""


class ImageServiceError(Exception):
    """모든 서비스 예외의 베이스 클래스.

    ``code`` 는 응답 본문의 실패 종류, ``status_code`` 는 HTTP 상태입니다.
    """

    code = "InternalError"
    status_code = 500

    def __init__(self, message: str = "Unexpected error.") -> None:
        self.message = message
        super().__init__(message)
