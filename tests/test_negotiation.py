"""Accept 헤더 포맷 협상 테스트."""

from __future__ import annotations

import pytest

from image_delivery.schemas.image import ImageFormat
from image_delivery.services.negotiation import negotiate

BROWSER_ACCEPT = "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8"


class TestNegotiate:
    """negotiate 테스트."""

    def test_explicit_format_wins(self) -> None:
        """명시적 fmt 는 Accept 보다 우선."""
        assert negotiate(ImageFormat.png, True, "image/webp") is ImageFormat.png

    def test_explicit_format_without_negotiation(self) -> None:
        assert negotiate(ImageFormat.jpeg, False, None) is ImageFormat.jpeg

    def test_disabled_keeps_source(self) -> None:
        """협상 비활성화 시 원본 인코딩 유지."""
        assert negotiate(None, False, "image/webp") is None

    def test_missing_accept(self) -> None:
        assert negotiate(None, True, None) is None
        assert negotiate(None, True, "") is None

    def test_webp_preferred(self) -> None:
        """webp 와 avif 모두 허용되면 webp."""
        assert negotiate(None, True, BROWSER_ACCEPT) is ImageFormat.webp

    def test_avif_only(self) -> None:
        assert negotiate(None, True, "image/avif,image/*;q=0.8") is ImageFormat.avif

    def test_zero_quality_excluded(self) -> None:
        """q=0 은 허용하지 않음을 의미."""
        assert negotiate(None, True, "image/webp;q=0, image/png") is None

    def test_media_type_is_case_insensitive(self) -> None:
        assert negotiate(None, True, "Image/WebP") is ImageFormat.webp

    @pytest.mark.parametrize("accept", ["*/*", "image/*", "image/jpeg,image/png"])
    def test_wildcards_do_not_select(self, accept: str) -> None:
        """와일드카드는 최신 포맷을 선택하지 않음."""
        assert negotiate(None, True, accept) is None

    def test_malformed_quality_treated_as_excluded(self) -> None:
        assert negotiate(None, True, "image/webp;q=abc") is None
