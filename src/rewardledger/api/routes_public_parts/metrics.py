from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from rewardledger.api.errors import ApiError
from rewardledger.runtime.metrics import format_prometheus, metrics_enabled, snapshot

router = APIRouter()


@router.get("/metrics")
def v1_metrics(request: Request):
    """JSON snapshot by default; Prometheus text with ?format=prometheus."""
    if not metrics_enabled():
        raise ApiError(404, "metrics_disabled", "set REWARDLEDGER_METRICS_ENABLED=1", {})

    fmt = (request.query_params.get("format") or "json").strip().lower()
    if fmt == "prometheus":
        return PlainTextResponse(format_prometheus(), media_type="text/plain; version=0.0.4")
    return {"ok": True, "metrics": snapshot()}
