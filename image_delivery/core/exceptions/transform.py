"""변환 요청 및 파이프라인 관련 예외."""

from image_delivery.core.exceptions.base import ImageServiceError


class MissingKeyError(ImageServiceError):
    """경로에서 오브젝트 키를 추출할 수 없음."""

    code = "MissingKey"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("No object key in path.")


class InvalidParameterError(ImageServiceError):
    """변환 파라미터 값이 유효하지 않음."""

    code = "InvalidParameter"
    status_code = 400

    def __init__(self, name: str, value: object) -> None:
        self.name = name
        super().__init__(f"Invalid value for '{name}': {value!r}.")


class StorageFetchError(ImageServiceError):
    """스토리지에서 원본을 읽지 못함."""

    code = "StorageFetchError"
    status_code = 500

    def __init__(self, message: str = "Could not read source image from storage.") -> None:
        super().__init__(message)


class ObjectNotFoundError(StorageFetchError):
    """원본 오브젝트가 존재하지 않음."""

    code = "ObjectNotFound"
    status_code = 404

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Source image not found: {key}")


class TransformInternalError(ImageServiceError):
    """출력 시작 전 파이프라인 실패."""

    code = "InternalError"
    status_code = 500

    def __init__(self, message: str = "Image processing failed.") -> None:
        super().__init__(message)


class TransformBusyError(ImageServiceError):
    """워커 스레드가 모두 사용 중이라 시간 안에 변환을 시작하지 못함."""

    code = "ServiceBusy"
    status_code = 503

    def __init__(self) -> None:
        super().__init__("Image workers are busy; retry later.")


class PipelineCancelledError(Exception):
    """소비자가 스트림을 닫아 파이프라인이 중단됨 (HTTP 응답으로 변환되지 않음)."""


class ConsumerStalledError(Exception):
    """응답 소비자가 idle timeout 동안 청크를 읽지 않음."""


class TransformAbortedError(Exception):
    """출력 시작 후 파이프라인 실패 - 응답 본문이 잘린 채 종료됨."""
