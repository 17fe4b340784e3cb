from __future__ import annotations

from fastapi import APIRouter, Request

from rewardledger.api.routes_public_parts.common import _int_param, _ledger, _opt_limit

router = APIRouter()

_MAX_EVENTS_PAGE = 500


@router.get("/events")
def v1_events(request: Request):
    """Committed events with seq > `since`, oldest first.

    `next` is the cursor for the following page (the last returned seq, or
    `since` unchanged when nothing new has been committed).
    """
    q = request.query_params
    since = _int_param(q.get("since"), 0, name="since")
    limit = _opt_limit(q.get("limit"), cap=_MAX_EVENTS_PAGE) or _MAX_EVENTS_PAGE

    recs = _ledger(request).events(since_seq=since, limit=limit)
    nxt = recs[-1].seq if recs else since
    return {"ok": True, "events": [r.to_json() for r in recs], "next": nxt}
