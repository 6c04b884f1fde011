# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Payment gate middleware for x402-protected routes."""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from x402_paywall_client import FacilitatorClient, PaymentRequired, safe_b64encode

from .config import ServerRuntimeConfig
from .gate import (
    PaymentAccepted,
    PaymentMissing,
    PaymentRejected,
    RouteConfig,
    build_requirements,
    evaluate_payment,
)

logger = logging.getLogger(__name__)


def _payment_required_response(outcome, error: str, req_id: str) -> JSONResponse:
    body = PaymentRequired(accepts=[outcome.requirement], error=error)
    return JSONResponse(
        status_code=402,
        content=body.model_dump(exclude_none=True),
        headers={"X-Request-ID": req_id},
    )


def _error_response(outcome: PaymentRejected, req_id: str) -> JSONResponse:
    if outcome.status_code == 402:
        return _payment_required_response(outcome, outcome.reason, req_id)
    return JSONResponse(
        status_code=outcome.status_code,
        content={"error": {"code": outcome.code, "message": outcome.reason}, "request_id": req_id},
        headers={"X-Request-ID": req_id},
    )


class PaymentGateMiddleware(BaseHTTPMiddleware):
    """Gate ``"<METHOD> <path>"`` routes behind a verified and settled payment."""

    def __init__(
        self,
        app,
        cfg: ServerRuntimeConfig,
        routes: Dict[str, RouteConfig],
        facilitator: Optional[FacilitatorClient] = None,
    ):
        super().__init__(app)
        self.cfg = cfg
        self.routes = {self._normalize(k): v for k, v in routes.items()}
        self.facilitator = facilitator or FacilitatorClient(
            cfg.facilitator_url, timeout_s=cfg.facilitator_timeout_s
        )

    @staticmethod
    def _normalize(key: str) -> str:
        # Paths match exactly; "/api/premium/" only redirects and must not be charged.
        method, _, path = key.strip().partition(" ")
        return f"{method.upper()} {path.strip()}"

    def _route_config(self, request: Request) -> Optional[RouteConfig]:
        return self.routes.get(self._normalize(f"{request.method} {request.url.path}"))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        route = self._route_config(request)
        if route is None:
            return await call_next(request)

        req_id = uuid.uuid4().hex
        requirement = build_requirements(self.cfg, route, str(request.url))
        outcome = await evaluate_payment(
            request.headers.get("X-PAYMENT"), requirement, self.facilitator, req_id=req_id
        )

        if isinstance(outcome, PaymentMissing):
            logger.info(f"[{req_id}] {request.method} {request.url.path} -> 402 challenge")
            return _payment_required_response(outcome, "X-PAYMENT header is required", req_id)
        if not isinstance(outcome, PaymentAccepted):
            logger.info(f"[{req_id}] {request.method} {request.url.path} -> {outcome.status_code} {outcome.code}")
            return _error_response(outcome, req_id)

        request.state.payment = outcome
        response = await call_next(request)
        response.headers["X-PAYMENT-RESPONSE"] = safe_b64encode(
            outcome.settlement.model_dump_json(exclude_none=True)
        )
        response.headers["X-Request-ID"] = req_id
        return response
