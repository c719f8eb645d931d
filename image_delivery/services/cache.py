"""Cache-Control policy for content-addressed responses."""

from image_delivery.core.constants import CACHE_CONTROL_IMMUTABLE


def cache_headers() -> dict[str, str]:
    """Headers for successful transform and signed-URL responses.

    동일한 파라미터는 항상 동일한 서명 URL 과 동일한 바이트를 만들기 때문에
    1년 immutable 캐시를 허용합니다 (원본 오브젝트가 바뀌지 않는 한).
    """
    return {"Cache-Control": CACHE_CONTROL_IMMUTABLE}
