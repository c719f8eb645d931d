"""Core Exceptions."""

from image_delivery.core.exceptions.auth import (
    ExpiryFormatError,
    MissingSignatureError,
    RequestExpiredError,
    SignatureMismatchError,
)
from image_delivery.core.exceptions.base import ImageServiceError
from image_delivery.core.exceptions.transform import (
    ConsumerStalledError,
    InvalidParameterError,
    MissingKeyError,
    ObjectNotFoundError,
    PipelineCancelledError,
    StorageFetchError,
    TransformAbortedError,
    TransformBusyError,
    TransformInternalError,
)
from image_delivery.core.exceptions.upload import PresignError

__all__ = [
    "ConsumerStalledError",
    "ExpiryFormatError",
    "ImageServiceError",
    "InvalidParameterError",
    "MissingKeyError",
    "MissingSignatureError",
    "ObjectNotFoundError",
    "PipelineCancelledError",
    "PresignError",
    "RequestExpiredError",
    "SignatureMismatchError",
    "StorageFetchError",
    "TransformAbortedError",
    "TransformBusyError",
    "TransformInternalError",
]
