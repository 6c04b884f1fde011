# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from x402_paywall_client import FacilitatorClient

from .config import ServerRuntimeConfig, get_server_cfg
from .gate import RouteConfig
from .middleware import PaymentGateMiddleware
from .routes import API_VERSION, PREMIUM_ROUTES, router

logger = logging.getLogger(__name__)


def create_app(
    cfg: Optional[ServerRuntimeConfig] = None,
    facilitator: Optional[FacilitatorClient] = None,
    routes: Optional[Dict[str, RouteConfig]] = None,
) -> FastAPI:
    cfg = cfg or ServerRuntimeConfig()
    cfg.validate_settings()

    app = FastAPI(
        title="x402 Paywall Demo",
        description="Seller API gating premium routes behind x402 payments",
        version=API_VERSION,
    )
    app.dependency_overrides[get_server_cfg] = lambda: cfg

    # Added first so it runs inside CORS; preflight OPTIONS never reaches the gate.
    app.add_middleware(
        PaymentGateMiddleware,
        cfg=cfg,
        routes=routes if routes is not None else PREMIUM_ROUTES,
        facilitator=facilitator,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-PAYMENT-RESPONSE", "X-Request-ID"],
    )

    @app.get("/health")
    async def health(cfg: ServerRuntimeConfig = Depends(get_server_cfg)) -> dict:
        return {
            "status": "ok",
            "time": datetime.now(timezone.utc).isoformat(),
            "facilitator": cfg.facilitator_url,
        }

    app.include_router(router)

    logger.info(
        f"Paywall app initialized (network={cfg.network}, payTo={cfg.pay_to}, "
        f"amount={cfg.amount}, facilitator={cfg.facilitator_url})"
    )
    return app
