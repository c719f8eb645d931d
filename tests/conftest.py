"""Shared fixtures for image delivery tests."""

from __future__ import annotations

import io
import os
from datetime import datetime, timezone
from typing import Callable
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from PIL import Image

# get_settings() 를 직접 호출하는 코드 경로용 기본값
os.environ.setdefault("IMAGE_S3_BUCKET", "test-bucket")
os.environ.setdefault("IMAGE_AWS_REGION", "ap-northeast-2")
os.environ.setdefault("IMAGE_SIGNING_SECRET", "test-secret")

from image_delivery.core.config import Settings  # noqa: E402

SECRET = "unit-test-signing-secret"
FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def make_image_bytes(
    fmt: str = "JPEG",
    size: tuple[int, int] = (1600, 1200),
    mode: str = "RGB",
    color: object = (200, 40, 40),
) -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_s3_client(objects: dict[str, tuple[bytes, str]]) -> MagicMock:
    """get_object 가 실제 StreamingBody 를 반환하는 S3 mock."""
    client = MagicMock()

    def get_object(Bucket: str, Key: str) -> dict:
        if Key not in objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject",
            )
        data, content_type = objects[Key]
        return {
            "Body": StreamingBody(io.BytesIO(data), len(data)),
            "ContentType": content_type,
            "ContentLength": len(data),
        }

    client.get_object = MagicMock(side_effect=get_object)
    return client


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def test_settings() -> Settings:
    """Test settings."""
    return Settings(
        s3_bucket="test-bucket",
        aws_region="ap-northeast-2",
        signing_secret=SECRET,
        auto_webp=False,
        stream_chunk_size=4096,
        stream_queue_size=4,
    )


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG", (1600, 1200))


@pytest.fixture
def png_rgba_bytes() -> bytes:
    return make_image_bytes("PNG", (400, 200), mode="RGBA", color=(10, 20, 30, 128))


@pytest.fixture
def s3_objects(jpeg_bytes: bytes, png_rgba_bytes: bytes) -> dict[str, tuple[bytes, str]]:
    return {
        "products/sku123.jpg": (jpeg_bytes, "image/jpeg"),
        "logos/brand.png": (png_rgba_bytes, "image/png"),
        "broken/not-an-image.jpg": (b"definitely not an image" * 10, "image/jpeg"),
    }


@pytest.fixture
def mock_s3_client(s3_objects: dict[str, tuple[bytes, str]]) -> MagicMock:
    """Mock S3 client."""
    return make_s3_client(s3_objects)
