from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from rewardledger.api.config import load_api_config
from rewardledger.api.errors import install_error_handlers
from rewardledger.api.routes_public import public_router
from rewardledger.api.structured_logging import RequestLogMiddleware
from rewardledger.runtime.executor import RewardLedger
from rewardledger.runtime.executor_boot import build_ledger as _build_ledger


def build_ledger() -> RewardLedger:
    """Build the RewardLedger for the API runtime.

    This wrapper exists so tests can monkeypatch `rewardledger.api.app.build_ledger`
    without reaching into runtime modules.
    """
    return _build_ledger()


def create_app(*, boot_runtime: bool = True, ledger: Optional[RewardLedger] = None) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): build the ledger from config and attach it
      - False: attach nothing (or the given `ledger`), for tests

    The ledger is closed on shutdown only when this app built it.
    """
    cfg = load_api_config()

    owned: Optional[RewardLedger] = None
    if ledger is None and boot_runtime:
        owned = build_ledger()
        ledger = owned

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        yield
        if owned is not None:
            owned.close()

    # Disable docs in production.
    if cfg.mode == "prod":
        app = FastAPI(title="Reward Ledger API", docs_url=None, redoc_url=None, openapi_url=None, lifespan=_lifespan)
    else:
        app = FastAPI(title="Reward Ledger API", lifespan=_lifespan)

    app.state.cfg = cfg
    app.state.ledger = ledger

    install_error_handlers(app)
    app.add_middleware(RequestLogMiddleware, caller_header=cfg.caller_header)
    app.include_router(public_router)

    return app
