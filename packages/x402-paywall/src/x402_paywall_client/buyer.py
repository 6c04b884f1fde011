# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .headers import build_payment_header, decode_payment_response, start_client_span
from .otel import requirement_attributes
from .types import PaymentRequirements

logger = logging.getLogger(__name__)


class PaymentError(RuntimeError):
    pass


class PaymentRequirementError(PaymentError):
    """The seller's 402 challenge could not be turned into a payment."""


class PaymentRejectedError(PaymentError):
    """The paid retry was refused; the seller's response is kept verbatim."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.status_code = response.status_code
        try:
            self.body: Any = response.json()
        except ValueError:
            self.body = response.text
        super().__init__(f"Paid request rejected with status {response.status_code}: {self.body}")


def _normalize_pr_keys(pr: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(pr)
    out["payTo"] = pr.get("payTo") or pr.get("pay_to")
    out["maxAmountRequired"] = pr.get("maxAmountRequired") or pr.get("max_amount_required")
    out["maxTimeoutSeconds"] = pr.get("maxTimeoutSeconds") or pr.get("max_timeout_seconds") or 60
    out["mimeType"] = pr.get("mimeType") or pr.get("mime_type") or "application/json"
    return out


def parse_payment_required(response: httpx.Response) -> PaymentRequirements:
    ctype = (response.headers.get("content-type") or "").split(";", 1)[0].strip().lower()
    if ctype != "application/json":
        raise PaymentRequirementError("seller 402 content-type must be application/json")
    try:
        body = response.json()
    except ValueError as e:
        raise PaymentRequirementError(f"seller 402 body is not JSON: {e}") from e
    accepts = body.get("accepts") if isinstance(body, dict) else None
    if not accepts or not isinstance(accepts, list) or not isinstance(accepts[0], dict):
        raise PaymentRequirementError("seller 402 missing 'accepts'")
    try:
        pr = PaymentRequirements(**_normalize_pr_keys(accepts[0]))
        int(pr.maxAmountRequired)
    except (ValidationError, ValueError, TypeError) as e:
        raise PaymentRequirementError(f"invalid payment requirement: {e}") from e
    return pr


@dataclass
class BuyerConfig:
    server_base_url: str
    network: str = "base-sepolia"
    buyer_private_key: Optional[str] = None
    timeout_s: float = 15.0
    transport: Optional[httpx.AsyncBaseTransport] = None


@dataclass
class PaidResponse:
    response: httpx.Response
    settlement: Optional[Dict[str, Any]] = None

    @property
    def paid(self) -> bool:
        return self.settlement is not None

    def json(self) -> Any:
        return self.response.json()


class BuyerClient:
    def __init__(self, cfg: BuyerConfig):
        if not cfg.server_base_url:
            raise ValueError("server_base_url is required")
        self.cfg = cfg
        self.http = httpx.AsyncClient(timeout=cfg.timeout_s, transport=cfg.transport)
        if cfg.buyer_private_key:
            from eth_account import Account

            self.address: Optional[str] = Account.from_key(cfg.buyer_private_key).address
        else:
            self.address = os.getenv("BUYER_ADDRESS")

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "BuyerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _url(self, endpoint: str) -> str:
        return f"{self.cfg.server_base_url.rstrip('/')}{endpoint}"

    def _sign(self, pr: PaymentRequirements) -> str:
        if not self.cfg.buyer_private_key:
            raise PaymentRequirementError("BUYER_PRIVATE_KEY required for signing X-PAYMENT")
        if pr.network != self.cfg.network:
            raise PaymentRequirementError(
                f"seller requires network {pr.network}, buyer is configured for {self.cfg.network}"
            )
        try:
            return build_payment_header(self.cfg.buyer_private_key, pr)
        except ValueError as e:
            raise PaymentRequirementError(str(e)) from e

    async def execute_paid_request(
        self,
        endpoint: str,
        *,
        method: str = "POST",
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> PaidResponse:
        """Call ``endpoint``; on a 402 challenge pay and retry exactly once."""
        url = self._url(endpoint)
        base_headers = dict(headers or {})

        # Attempt 1: unpaid.
        with start_client_span("buyer.first_attempt"):
            first = await self.http.request(method, url, json=json, params=params, headers=base_headers)
        if first.status_code != 402:
            logger.info(f"{method} {endpoint} answered {first.status_code} without payment")
            return PaidResponse(response=first)

        pr = parse_payment_required(first)
        logger.info(
            f"{method} {endpoint} requires {pr.maxAmountRequired} of {pr.asset} on {pr.network} to {pr.payTo}"
        )
        x_payment = self._sign(pr)

        # Attempt 2: paid. Never retried.
        paid_headers = {**base_headers, "X-PAYMENT": x_payment}
        with start_client_span("buyer.paid_attempt", requirement_attributes(pr)):
            final = await self.http.request(method, url, json=json, params=params, headers=paid_headers)
        if final.status_code >= 400:
            logger.warning(f"{method} {endpoint} rejected after payment with {final.status_code}")
            raise PaymentRejectedError(final)

        settlement = None
        raw = final.headers.get("X-PAYMENT-RESPONSE")
        if raw:
            try:
                settlement = decode_payment_response(raw)
            except ValueError as e:
                logger.warning(f"Undecodable X-PAYMENT-RESPONSE from {endpoint}: {e}")
        return PaidResponse(response=final, settlement=settlement)
