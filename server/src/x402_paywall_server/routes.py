# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from .config import ServerRuntimeConfig, get_server_cfg
from .gate import RouteConfig

logger = logging.getLogger(__name__)

router = APIRouter(tags=["paywall-demo"])

SERVICE_NAME = "x402-paywall-demo"
API_VERSION = "0.1.0"

PREMIUM_ROUTES: Dict[str, RouteConfig] = {
    "POST /api/premium": RouteConfig(
        description="Premium content unlocked with an x402 micropayment",
        mime_type="application/json",
    ),
}


@router.get("/")
async def info(cfg: ServerRuntimeConfig = Depends(get_server_cfg)) -> Dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": API_VERSION,
        "network": cfg.network,
        "payTo": cfg.pay_to,
        "price": {"amount": cfg.amount, "asset": cfg.asset_address(), "name": cfg.asset_name},
        "facilitator": cfg.facilitator_url,
        "endpoints": [
            {"method": "GET", "path": "/", "paid": False},
            {"method": "GET", "path": "/api/free", "paid": False},
            *[
                {"method": k.split(" ", 1)[0], "path": k.split(" ", 1)[1], "paid": True, "description": v.description}
                for k, v in PREMIUM_ROUTES.items()
            ],
        ],
    }


@router.get("/api/free")
async def free_content() -> Dict[str, Any]:
    return {
        "tier": "free",
        "message": "This endpoint is free. POST /api/premium to try a paid request.",
        "time": datetime.now(timezone.utc).isoformat(),
    }


async def _echo_body(request: Request) -> Any:
    # Any body is accepted: the payment has already settled when this runs.
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


@router.post("/api/premium")
async def premium_content(request: Request) -> Dict[str, Any]:
    # Set by PaymentGateMiddleware once the facilitator has settled.
    payment = request.state.payment
    settlement = payment.settlement
    logger.info(f"Serving premium content to {settlement.payer}")
    return {
        "tier": "premium",
        "message": "Payment settled. Here is your premium content.",
        "echo": await _echo_body(request),
        "payment": {
            "payer": settlement.payer or payment.verification.payer,
            "transaction": settlement.transaction,
            "network": settlement.network or payment.requirement.network,
            "amount": payment.requirement.maxAmountRequired,
        },
    }
