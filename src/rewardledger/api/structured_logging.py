# src/rewardledger/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from rewardledger.ledger.ledger_logging import log_event

_HANDLER_NAME = "rewardledger-jsonl"


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Send JSONL log lines to stdout at the given level (REWARDLEDGER_LOG_LEVEL, default INFO).

    Repeated calls only adjust the level.
    """
    name = (level_name or os.environ.get("REWARDLEDGER_LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.handlers = [handler]


def mark_committed(request: Request, operation: str, seq: int) -> None:
    """Attach the committed ledger operation to the request log line."""
    request.state.ledger_operation = operation
    request.state.ledger_seq = int(seq)


def mark_rejected(request: Request, code: str) -> None:
    request.state.ledger_error = code


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One `http_request` line per request.

    Mutating routes add the ledger operation and the committed event seq;
    rejected calls add the ledger error code. The request id comes from
    `x-request-id` when the gateway sets one and is echoed on the response.
    Set REWARDLEDGER_LOG_REQUESTS=0 to turn the line off.
    """

    def __init__(self, app, *, caller_header: str = "x-caller-identity") -> None:
        super().__init__(app)
        raw = (os.environ.get("REWARDLEDGER_LOG_REQUESTS") or "1").strip().lower()
        self._enabled = raw not in {"0", "false", "no", "off"}
        self._caller_header = caller_header
        self._logger = logging.getLogger("rewardledger.http")

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = time.monotonic()

        response = await call_next(request)
        response.headers.setdefault("x-request-id", request_id)

        if self._enabled:
            st = request.state
            log_event(
                self._logger,
                "http_request",
                level=logging.WARNING if response.status_code >= 500 else logging.INFO,
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=int((time.monotonic() - started) * 1000),
                caller=request.headers.get(self._caller_header) or None,
                operation=getattr(st, "ledger_operation", None),
                seq=getattr(st, "ledger_seq", None),
                error=getattr(st, "ledger_error", None),
            )
        return response
