"""HTTP 엔드포인트 테스트 (TestClient + mock S3)."""

from __future__ import annotations

import io
from unittest.mock import AsyncMock
from urllib.parse import quote, urlencode

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from PIL import Image

from image_delivery.api.v1.dependencies import get_pipeline, get_s3_client
from image_delivery.core.constants import CACHE_CONTROL_IMMUTABLE
from image_delivery.core.exceptions import TransformBusyError
from image_delivery.main import create_app
from image_delivery.services.signing import canonicalize, sign, transform_path
from tests.conftest import SECRET


def signed_url(key: str, params: dict[str, str] | None = None, secret: str = SECRET) -> str:
    params = params or {}
    path = transform_path(key)
    query = dict(params, signature=sign(path, canonicalize(params), secret))
    return f"{quote(path)}?{urlencode(query)}"


def build_client(settings, s3_client, **kwargs) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_s3_client] = lambda: s3_client
    return TestClient(app, **kwargs)


@pytest.fixture
def client(test_settings, mock_s3_client):
    with build_client(test_settings, mock_s3_client) as test_client:
        yield test_client


class TestIssueAndTransform:
    """발급 후 변환 (end-to-end)."""

    def test_issued_url_serves_transformed_image(self, client) -> None:
        response = client.get(
            "/image-url",
            params={"key": "products/sku123.jpg", "w": "800", "fmt": "webp", "q": "70"},
        )
        assert response.status_code == 200
        assert response.headers["cache-control"] == CACHE_CONTROL_IMMUTABLE
        url = response.json()["url"]
        assert url.startswith("/img/products/sku123.jpg?fmt=webp&q=70&w=800&signature=")

        image_response = client.get(url)
        assert image_response.status_code == 200
        assert image_response.headers["content-type"] == "image/webp"
        assert image_response.headers["cache-control"] == CACHE_CONTROL_IMMUTABLE
        image = Image.open(io.BytesIO(image_response.content))
        assert image.size == (800, 600)

    def test_tampered_url_rejected(self, client, mock_s3_client) -> None:
        url = client.get(
            "/image-url",
            params={"key": "products/sku123.jpg", "w": "800", "fmt": "webp", "q": "70"},
        ).json()["url"]

        response = client.get(url.replace("q=70", "q=71"))

        assert response.status_code == 403
        assert response.json() == {
            "status": 403,
            "code": "SignatureMismatch",
            "detail": "Signature does not match.",
        }
        mock_s3_client.get_object.assert_not_called()

    def test_passthrough(self, client, jpeg_bytes) -> None:
        """파라미터 없는 서명 URL 은 원본 그대로."""
        response = client.get(signed_url("products/sku123.jpg"))
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.content == jpeg_bytes

    def test_issue_rejects_invalid_fit(self, client) -> None:
        response = client.get("/image-url", params={"key": "a.jpg", "fit": "zoom"})
        assert response.status_code == 400
        assert response.json()["code"] == "InvalidParameter"

    def test_issue_requires_key(self, client) -> None:
        response = client.get("/image-url", params={"w": "100"})
        assert response.status_code == 400
        assert response.json()["code"] == "MissingKey"

    def test_issue_uses_base_public_url(self, test_settings, mock_s3_client) -> None:
        settings = test_settings.model_copy(update={"base_public_url": "https://img.example.com"})
        with build_client(settings, mock_s3_client) as client:
            url = client.get("/image-url", params={"key": "a.jpg"}).json()["url"]
        assert url.startswith("https://img.example.com/img/a.jpg?signature=")


class TestTransformRejections:
    """검증 실패는 스토리지 접근 없이 JSON 에러."""

    @pytest.mark.parametrize(
        ("url", "status", "code"),
        [
            ("/img/products/sku123.jpg?w=10", 400, "MissingSignature"),
            ("/img/products/sku123.jpg?w=10&signature=", 400, "MissingSignature"),
            ("/img/products/sku123.jpg?expires=not-a-date&signature=abc", 400, "ExpiryFormatError"),
            ("/img/products/sku123.jpg?expires=20000101T000000Z&signature=abc", 403, "RequestExpired"),
            ("/img/products/sku123.jpg?w=10&signature=abc", 403, "SignatureMismatch"),
        ],
    )
    def test_rejected_before_fetch(self, client, mock_s3_client, url, status, code) -> None:
        response = client.get(url)
        assert response.status_code == status
        assert response.json()["code"] == code
        assert response.json()["status"] == status
        mock_s3_client.get_object.assert_not_called()

    def test_signed_but_expired(self, client, mock_s3_client) -> None:
        response = client.get(signed_url("products/sku123.jpg", {"expires": "20000101T000000Z"}))
        assert response.status_code == 403
        assert response.json()["code"] == "RequestExpired"
        mock_s3_client.get_object.assert_not_called()

    def test_missing_key(self, client, mock_s3_client) -> None:
        path = transform_path("")
        response = client.get(f"{path}?signature={sign(path, '', SECRET)}")
        assert response.status_code == 400
        assert response.json()["code"] == "MissingKey"
        mock_s3_client.get_object.assert_not_called()

    def test_invalid_parameter(self, client, mock_s3_client) -> None:
        response = client.get(signed_url("products/sku123.jpg", {"fit": "zoom"}))
        assert response.status_code == 400
        assert response.json()["code"] == "InvalidParameter"
        mock_s3_client.get_object.assert_not_called()

    def test_object_not_found(self, client) -> None:
        response = client.get(signed_url("missing/nothing.jpg", {"w": "100"}))
        assert response.status_code == 404
        assert response.json()["code"] == "ObjectNotFound"

    def test_undecodable_source(self, client) -> None:
        response = client.get(signed_url("broken/not-an-image.jpg", {"w": "100"}))
        assert response.status_code == 500
        assert response.json()["code"] == "InternalError"

    def test_unexpected_error(self, test_settings, mock_s3_client) -> None:
        app = create_app(test_settings)
        broken = AsyncMock()
        broken.transform.side_effect = RuntimeError("boom")
        app.dependency_overrides[get_pipeline] = lambda: broken

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get(signed_url("products/sku123.jpg"))

        assert response.status_code == 500
        assert response.json() == {"status": 500, "code": "InternalError", "detail": "Unexpected error."}


    def test_busy_workers(self, test_settings) -> None:
        """워커 풀이 가득 차면 503 ServiceBusy."""
        app = create_app(test_settings)
        busy = AsyncMock()
        busy.transform.side_effect = TransformBusyError()
        app.dependency_overrides[get_pipeline] = lambda: busy

        with TestClient(app) as client:
            response = client.get(signed_url("products/sku123.jpg"))

        assert response.status_code == 503
        assert response.json()["code"] == "ServiceBusy"

class TestNegotiation:
    """AUTO_WEBP 설정과 Accept 헤더."""

    @pytest.fixture
    def webp_client(self, test_settings, mock_s3_client):
        settings = test_settings.model_copy(update={"auto_webp": True})
        with build_client(settings, mock_s3_client) as client:
            yield client

    def test_accept_webp(self, webp_client) -> None:
        response = webp_client.get(
            signed_url("products/sku123.jpg", {"w": "200"}),
            headers={"Accept": "image/webp,image/*,*/*;q=0.8"},
        )
        assert response.headers["content-type"] == "image/webp"

    def test_explicit_format_wins(self, webp_client) -> None:
        response = webp_client.get(
            signed_url("products/sku123.jpg", {"w": "200", "fmt": "png"}),
            headers={"Accept": "image/webp"},
        )
        assert response.headers["content-type"] == "image/png"

    def test_disabled_keeps_source(self, client) -> None:
        response = client.get(
            signed_url("products/sku123.jpg", {"w": "200"}),
            headers={"Accept": "image/webp"},
        )
        assert response.headers["content-type"] == "image/jpeg"


class TestUploadSigning:
    """POST /sign-upload."""

    def test_success(self, client, mock_s3_client) -> None:
        mock_s3_client.generate_presigned_post.return_value = {
            "url": "https://test-bucket.s3.amazonaws.com/",
            "fields": {"key": "uploads/new.jpg", "policy": "cG9saWN5"},
        }

        response = client.post("/sign-upload", json={"key": "uploads/new.jpg"})

        assert response.status_code == 200
        assert response.json()["fields"]["key"] == "uploads/new.jpg"
        kwargs = mock_s3_client.generate_presigned_post.call_args.kwargs
        assert kwargs["Bucket"] == "test-bucket"
        assert kwargs["Key"] == "uploads/new.jpg"
        assert kwargs["ExpiresIn"] == 900

    def test_missing_key(self, client, mock_s3_client) -> None:
        response = client.post("/sign-upload", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "MissingKey"
        mock_s3_client.generate_presigned_post.assert_not_called()

    def test_presign_failure(self, client, mock_s3_client) -> None:
        mock_s3_client.generate_presigned_post.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PostObject"
        )
        response = client.post("/sign-upload", json={"key": "uploads/new.jpg"})
        assert response.status_code == 500
        assert response.json()["code"] == "PresignError"


class TestOperational:
    """health/ready/root/metrics/CORS."""

    def test_health(self, client) -> None:
        assert client.get("/health").json() == {"status": "healthy", "service": "image-delivery"}

    def test_ready(self, client) -> None:
        assert client.get("/ready").json()["status"] == "ready"

    def test_root(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "Dynamic Image Service ready"

    def test_metrics(self, client) -> None:
        client.get("/img/products/sku123.jpg")
        response = client.get("/metrics/status")
        assert response.status_code == 200
        assert "image_auth_rejections_total" in response.text

    def test_cors_preflight(self, test_settings, mock_s3_client) -> None:
        settings = test_settings.model_copy(
            update={"cors_enabled": True, "cors_origin": "https://shop.example.com"}
        )
        with build_client(settings, mock_s3_client) as client:
            response = client.options(
                "/sign-upload",
                headers={
                    "Origin": "https://shop.example.com",
                    "Access-Control-Request-Method": "POST",
                },
            )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://shop.example.com"

    def test_cors_disabled_by_default(self, client) -> None:
        response = client.get("/health", headers={"Origin": "https://shop.example.com"})
        assert "access-control-allow-origin" not in response.headers

    def test_transform_executor_is_dedicated_and_stopped(self, test_settings, mock_s3_client) -> None:
        """변환 풀은 앱마다 생성되고 종료 시 정리됨."""
        app = create_app(test_settings)
        app.dependency_overrides[get_s3_client] = lambda: mock_s3_client
        executor = app.state.transform_executor

        with TestClient(app) as client:
            assert client.get(signed_url("products/sku123.jpg", {"w": "100"})).status_code == 200

        with pytest.raises(RuntimeError):
            executor.submit(lambda: None)
