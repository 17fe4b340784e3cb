from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rewardledger.api.structured_logging import mark_rejected
from rewardledger.ledger.errors import LedgerError


@dataclass(slots=True, eq=False)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def unauthorized(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(401, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


_LEDGER_STATUS = {
    "invalid_amount": 400,
    "invalid_identity": 400,
    "unauthorized": 403,
    "insufficient_balance": 409,
    "wallet_already_registered": 409,
    "arithmetic_overflow": 409,
}


def _error_response(status_code: int, code: str, message: str, details: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=int(status_code),
        content={"ok": False, "error": {"code": code, "message": message, "details": details}},
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        mark_rejected(request, exc.code)
        return _error_response(exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(LedgerError)
    async def _ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        mark_rejected(request, exc.code)
        status = _LEDGER_STATUS.get(exc.code, 400)
        return _error_response(status, exc.code, exc.reason, dict(exc.details))
