from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from image_delivery.core.constants import (
    MAX_DIMENSION,
    MAX_QUALITY,
    MIN_DIMENSION,
    MIN_QUALITY,
    PARAM_EXPIRES,
    PARAM_FIT,
    PARAM_FORMAT,
    PARAM_HEIGHT,
    PARAM_QUALITY,
    PARAM_SIGNATURE,
    PARAM_WIDTH,
)
from image_delivery.core.exceptions import InvalidParameterError, MissingKeyError


class ImageFormat(str, Enum):
    webp = "webp"
    avif = "avif"
    jpeg = "jpeg"
    png = "png"

    @property
    def media_type(self) -> str:
        return f"image/{self.value}"

    @property
    def supports_quality(self) -> bool:
        return self is not ImageFormat.png


class FitMode(str, Enum):
    cover = "cover"
    contain = "contain"
    fill = "fill"
    inside = "inside"
    outside = "outside"


def clamp(value: int, lower: int, upper: int) -> int:
    return min(max(value, lower), upper)


def _parse_int(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError("expected an integer")
    if isinstance(value, int):
        return value
    return int(str(value).strip())


class TransformRequest(BaseModel):
    """변환 요청 (요청마다 새로 생성, 저장하지 않음).

    w/h 는 [1, 4096], q 는 [1, 100] 범위로 clamp 됩니다.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    object_key: str = Field(..., min_length=1)
    width: Optional[int] = Field(default=None, alias=PARAM_WIDTH)
    height: Optional[int] = Field(default=None, alias=PARAM_HEIGHT)
    fit: Optional[FitMode] = Field(default=None, alias=PARAM_FIT)
    format: Optional[ImageFormat] = Field(default=None, alias=PARAM_FORMAT)
    quality: Optional[int] = Field(default=None, alias=PARAM_QUALITY)
    expires: Optional[str] = Field(default=None, alias=PARAM_EXPIRES)
    signature: Optional[str] = Field(default=None, alias=PARAM_SIGNATURE)

    @field_validator("width", "height", mode="before")
    @classmethod
    def _clamp_dimension(cls, value: object) -> Optional[int]:
        if value is None or value == "":
            return None
        return clamp(_parse_int(value), MIN_DIMENSION, MAX_DIMENSION)

    @field_validator("quality", mode="before")
    @classmethod
    def _clamp_quality(cls, value: object) -> Optional[int]:
        if value is None or value == "":
            return None
        return clamp(_parse_int(value), MIN_QUALITY, MAX_QUALITY)

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, value: object) -> object:
        if value == "":
            return None
        if value == "jpg":
            return ImageFormat.jpeg
        return value

    @field_validator("fit", mode="before")
    @classmethod
    def _empty_fit(cls, value: object) -> object:
        return None if value == "" else value

    @classmethod
    def from_query(cls, object_key: str, query: Mapping[str, str]) -> "TransformRequest":
        """경로의 키와 쿼리 파라미터로 요청을 만듭니다.

        Raises:
            MissingKeyError: object_key 가 비어 있음
            InvalidParameterError: 파라미터 값을 해석할 수 없음
        """
        if not object_key:
            raise MissingKeyError()
        data = {
            name: query[name]
            for name in (
                PARAM_WIDTH,
                PARAM_HEIGHT,
                PARAM_FIT,
                PARAM_FORMAT,
                PARAM_QUALITY,
                PARAM_EXPIRES,
                PARAM_SIGNATURE,
            )
            if name in query
        }
        try:
            return cls(object_key=object_key, **data)
        except ValidationError as exc:
            error = exc.errors()[0]
            name = str(error["loc"][0]) if error.get("loc") else "query"
            raise InvalidParameterError(name, error.get("input")) from None

    @property
    def wants_resize(self) -> bool:
        return self.width is not None or self.height is not None

    @property
    def wants_reencode(self) -> bool:
        return self.wants_resize or self.format is not None or self.quality is not None


class SignedUrlResponse(BaseModel):
    url: str


class UploadSignRequest(BaseModel):
    key: str = Field(default="", max_length=1024)


class UploadSignResponse(BaseModel):
    url: str
    fields: dict[str, str]
