"""
Runtime Settings (FastAPI Official Pattern)

환경변수 기반 동적 설정 - 배포 환경별로 변경됨
Reference: https://fastapi.tiangolo.com/advanced/settings/
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the image delivery service.

    ``s3_bucket``, ``aws_region`` and ``signing_secret`` have no defaults:
    constructing Settings without them raises ``ValidationError`` so the
    service refuses to start.
    """

    app_name: str = "Image Delivery API"

    s3_bucket: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("IMAGE_S3_BUCKET", "S3_BUCKET", "s3_bucket"),
    )
    aws_region: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices(
            "IMAGE_AWS_REGION", "S3_REGION", "AWS_REGION", "aws_region"
        ),
    )
    signing_secret: SecretStr = Field(
        ...,
        validation_alias=AliasChoices(
            "IMAGE_SIGNING_SECRET", "IMG_SIGNING_SECRET", "signing_secret"
        ),
    )

    # Accept 헤더 기반 포맷 협상 (AUTO_WEBP=Yes|No)
    auto_webp: bool = Field(
        False,
        validation_alias=AliasChoices("IMAGE_AUTO_WEBP", "AUTO_WEBP", "auto_webp"),
    )
    cors_enabled: bool = Field(
        False,
        validation_alias=AliasChoices("IMAGE_CORS_ENABLED", "CORS_ENABLED", "cors_enabled"),
    )
    cors_origin: str = Field(
        "*",
        validation_alias=AliasChoices("IMAGE_CORS_ORIGIN", "CORS_ORIGIN", "cors_origin"),
    )
    base_public_url: str = Field(
        "",
        description="Prefix that makes issued URLs absolute (e.g. https://img.example.com)",
        validation_alias=AliasChoices(
            "IMAGE_BASE_PUBLIC_URL", "BASE_PUBLIC_URL", "base_public_url"
        ),
    )

    # Streaming pipeline
    stream_chunk_size: int = Field(
        64 * 1024,
        ge=4 * 1024,
        le=4 * 1024 * 1024,
        description="Bytes per storage read and per emitted response chunk",
        validation_alias=AliasChoices("IMAGE_STREAM_CHUNK_SIZE", "stream_chunk_size"),
    )
    stream_queue_size: int = Field(
        8,
        ge=1,
        le=256,
        description="Encoded chunks buffered between encoder and response",
        validation_alias=AliasChoices("IMAGE_STREAM_QUEUE_SIZE", "stream_queue_size"),
    )

    # 변환 전용 스레드 풀 (asyncio.to_thread 기본 풀과 분리)
    transform_workers: int = Field(
        8,
        ge=1,
        le=128,
        validation_alias=AliasChoices("IMAGE_TRANSFORM_WORKERS", "transform_workers"),
    )
    transform_start_timeout: float = Field(
        10.0,
        gt=0,
        description="Seconds to wait for a free worker and the first chunk before 503",
        validation_alias=AliasChoices(
            "IMAGE_TRANSFORM_START_TIMEOUT", "transform_start_timeout"
        ),
    )
    stream_idle_timeout: float = Field(
        30.0,
        gt=0,
        description="Seconds a response may go without reading before the stream is aborted",
        validation_alias=AliasChoices("IMAGE_STREAM_IDLE_TIMEOUT", "stream_idle_timeout"),
    )

    # Direct upload (presigned POST)
    upload_expires_seconds: int = Field(
        900,
        ge=60,
        le=7 * 24 * 60 * 60,
        validation_alias=AliasChoices("IMAGE_UPLOAD_EXPIRES", "upload_expires_seconds"),
    )
    upload_max_bytes: int = Field(
        25 * 1024 * 1024,
        ge=1,
        validation_alias=AliasChoices("IMAGE_UPLOAD_MAX_BYTES", "upload_max_bytes"),
    )

    port: int = Field(
        5000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
    )

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator("signing_secret")
    @classmethod
    def _require_secret(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("signing_secret must not be empty")
        return value

    @field_validator("base_public_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance (FastAPI pattern)."""
    return Settings()
