from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from stagewise.core.observability.metrics import snapshot_named, snapshot_requests

router = APIRouter()


@router.get("/api/v1/metrics/snapshot")
def metrics_snapshot():
    req = snapshot_requests()
    body = {"requests": req}
    body.update(snapshot_named())
    if "requests_total" in req:
        body["requests_total"] = req["requests_total"]
    return body


@router.get("/metrics")
def metrics_prometheus():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
