# src/rewardledger/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from rewardledger.api.routes_public_parts.events import router as events_router
from rewardledger.api.routes_public_parts.health import router as health_router
from rewardledger.api.routes_public_parts.metrics import router as metrics_router
from rewardledger.api.routes_public_parts.rewards import router as rewards_router
from rewardledger.api.routes_public_parts.wallets import router as wallets_router

public_router = APIRouter()

# Health routes carry their own paths (/v1/health, /healthz, /readyz).
public_router.include_router(health_router, prefix="", tags=["health"])
public_router.include_router(rewards_router, prefix="/v1", tags=["rewards"])
public_router.include_router(wallets_router, prefix="/v1", tags=["wallets"])
public_router.include_router(events_router, prefix="/v1", tags=["events"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
