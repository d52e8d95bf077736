"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - explainer_latency_ms{outcome}, explainer_errors_total{reason}
    - cache_hits_total{namespace}, cache_misses_total{namespace}
    - clauses_retrieved{strategy}, retrieval_errors_total{strategy}
    """
    metrics_output = generate_latest()
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
