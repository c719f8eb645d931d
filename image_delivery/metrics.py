"""Image delivery Prometheus 메트릭"""

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

REGISTRY = CollectorRegistry(auto_describe=True)
METRICS_PATH = "/metrics/status"

AUTH_REJECTIONS = Counter(
    "image_auth_rejections_total",
    "Transform requests rejected by signature/expiry checks",
    labelnames=("code",),
    registry=REGISTRY,
)
TRANSFORMS = Counter(
    "image_transforms_total",
    "Transform pipelines by outcome (ok, aborted, failed, cancelled)",
    labelnames=("outcome",),
    registry=REGISTRY,
)
URLS_ISSUED = Counter(
    "image_urls_issued_total",
    "Signed transform URLs issued",
    registry=REGISTRY,
)


def register_metrics(app: FastAPI) -> None:
    """Prometheus /metrics 엔드포인트 등록"""

    @app.get(METRICS_PATH, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
