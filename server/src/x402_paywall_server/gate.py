# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Three-state payment gate for protected routes.

Each request ends in exactly one of:

- ``PaymentMissing``: no X-PAYMENT header, answer with a 402 challenge;
- ``PaymentAccepted``: the facilitator verified and settled the payment;
- ``PaymentRejected``: anything else, the protected handler must not run.

Nothing is kept between requests. Replayed assertions are rejected by the
facilitator, not here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from x402_paywall_client import (
    FacilitatorClient,
    FacilitatorHTTPError,
    FacilitatorRejected,
    FacilitatorUnavailable,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
    requirement_attributes,
    start_role_span,
)

from .config import ServerRuntimeConfig
from .headers import HeaderError, parse_x_payment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteConfig:
    description: str
    amount: Optional[str] = None
    mime_type: str = "application/json"
    max_timeout_seconds: Optional[int] = None


@dataclass(frozen=True)
class PaymentMissing:
    requirement: PaymentRequirements


@dataclass(frozen=True)
class PaymentAccepted:
    requirement: PaymentRequirements
    payload: PaymentPayload
    verification: VerifyResponse
    settlement: SettleResponse


@dataclass(frozen=True)
class PaymentRejected:
    requirement: PaymentRequirements
    status_code: int
    code: str
    reason: str


GateOutcome = Union[PaymentMissing, PaymentAccepted, PaymentRejected]


def build_requirements(cfg: ServerRuntimeConfig, route: RouteConfig, resource: str) -> PaymentRequirements:
    return PaymentRequirements(
        scheme="exact",
        network=cfg.network,
        maxAmountRequired=route.amount or cfg.amount,
        resource=resource,
        description=route.description,
        mimeType=route.mime_type,
        payTo=cfg.pay_to,
        maxTimeoutSeconds=route.max_timeout_seconds or cfg.payment_timeout_s,
        asset=cfg.asset_address(),
        extra={"name": cfg.asset_name, "version": cfg.asset_version},
    )


async def evaluate_payment(
    x_payment: Optional[str],
    requirement: PaymentRequirements,
    facilitator: FacilitatorClient,
    *,
    req_id: str = "-",
) -> GateOutcome:
    if not x_payment:
        return PaymentMissing(requirement)

    try:
        payload = parse_x_payment(x_payment)
    except HeaderError as e:
        logger.warning(f"[{req_id}] Malformed X-PAYMENT: {e}")
        return PaymentRejected(requirement, 400, "PAYMENT_HEADER_INVALID", str(e))

    if payload.scheme != requirement.scheme or payload.network != requirement.network:
        return PaymentRejected(
            requirement,
            402,
            "PAYMENT_MISMATCH",
            f"payment uses {payload.scheme}/{payload.network}, "
            f"expected {requirement.scheme}/{requirement.network}",
        )

    logger.info(f"[{req_id}] Forwarding payment to facilitator (X-PAYMENT={x_payment[:24]}...)")
    attrs = {**requirement_attributes(requirement), "x402.request_id": req_id}
    with start_role_span("seller", "seller.facilitator", attrs) as span:
        outcome = await _verify_then_settle(facilitator, requirement, payload, x_payment, req_id)
        if isinstance(outcome, PaymentAccepted):
            span.set_attribute("x402.outcome", "accepted")
            if outcome.settlement.transaction:
                span.set_attribute("x402.transaction", outcome.settlement.transaction)
        else:
            span.set_attribute("x402.outcome", outcome.code)
    return outcome


async def _verify_then_settle(
    facilitator: FacilitatorClient,
    requirement: PaymentRequirements,
    payload: PaymentPayload,
    x_payment: str,
    req_id: str,
) -> GateOutcome:
    pp = payload.model_dump()
    pr = requirement.model_dump(exclude_none=True)
    try:
        v, s = await facilitator.verify_then_settle(pp, pr, x_payment_b64=x_payment)
    except FacilitatorRejected as e:
        code = "PAYMENT_INVALID" if e.stage == "verify" else "SETTLEMENT_FAILED"
        logger.info(f"[{req_id}] Facilitator {e.stage} rejected payment: {e.reason}")
        return PaymentRejected(requirement, 402, code, e.reason)
    except FacilitatorHTTPError as e:
        logger.error(f"[{req_id}] Facilitator HTTP error {e.status_code}: {e.detail}")
        return PaymentRejected(requirement, e.status_code, "FACILITATOR_ERROR", e.detail)
    except FacilitatorUnavailable as e:
        return PaymentRejected(requirement, 502, "FACILITATOR_UNAVAILABLE", str(e))

    logger.info(f"[{req_id}] Payment settled payer={s.payer or v.payer} tx={s.transaction}")
    return PaymentAccepted(requirement, payload, v, s)
