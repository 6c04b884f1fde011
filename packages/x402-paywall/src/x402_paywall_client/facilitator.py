# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import httpx
from pydantic import ValidationError

from .types import X402_VERSION, SettleResponse, VerifyResponse

logger = logging.getLogger(__name__)


class FacilitatorError(RuntimeError):
    pass


class FacilitatorHTTPError(FacilitatorError):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"facilitator returned {status_code}: {detail}")


class FacilitatorUnavailable(FacilitatorError):
    pass


class FacilitatorRejected(FacilitatorError):
    """Verification or settlement was refused by the facilitator."""

    def __init__(self, stage: str, reason: str, result: Any = None):
        self.stage = stage
        self.reason = reason
        self.result = result
        super().__init__(f"{stage} failed: {reason}")


class FacilitatorClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("base_url required")
        base = base_url.rstrip("/")
        self.base_url = base
        self.verify_url = f"{base}/verify"
        self.settle_url = f"{base}/settle"
        self.timeout_s = timeout_s
        self.transport = transport

    async def _post(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self.transport, follow_redirects=True
            ) as client:
                r = await client.post(url, json=body, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Facilitator unreachable at {url}: {e!r}")
            raise FacilitatorUnavailable(f"facilitator unreachable: {e}") from e
        if r.status_code >= 400:
            raise FacilitatorHTTPError(r.status_code, r.text)
        if (r.headers.get("content-type") or "").split(";", 1)[0].strip().lower() != "application/json":
            raise FacilitatorHTTPError(502, f"invalid content-type from {url}")
        try:
            data = r.json()
        except ValueError as e:
            raise FacilitatorHTTPError(502, f"invalid JSON from {url}: {e}") from e
        if not isinstance(data, dict):
            raise FacilitatorHTTPError(502, f"unexpected response shape from {url}")
        return data

    @staticmethod
    def _request(
        payment_payload: Dict[str, Any], payment_requirements: Dict[str, Any], x_payment_b64: str
    ) -> Tuple[Dict[str, Any], Dict[str, str]]:
        body = {
            "x402Version": X402_VERSION,
            "paymentPayload": payment_payload,
            "paymentRequirements": payment_requirements,
            "paymentHeader": x_payment_b64,
        }
        return body, {"X-PAYMENT": x_payment_b64}

    async def verify(
        self,
        payment_payload: Dict[str, Any],
        payment_requirements: Dict[str, Any],
        *,
        x_payment_b64: str,
    ) -> VerifyResponse:
        body, headers = self._request(payment_payload, payment_requirements, x_payment_b64)
        data = await self._post(self.verify_url, body, headers)
        try:
            return VerifyResponse(**data)
        except (ValidationError, TypeError) as e:
            raise FacilitatorHTTPError(502, f"invalid verify response: {e}") from e

    async def settle(
        self,
        payment_payload: Dict[str, Any],
        payment_requirements: Dict[str, Any],
        *,
        x_payment_b64: str,
    ) -> SettleResponse:
        body, headers = self._request(payment_payload, payment_requirements, x_payment_b64)
        data = await self._post(self.settle_url, body, headers)
        try:
            return SettleResponse(**data)
        except (ValidationError, TypeError) as e:
            raise FacilitatorHTTPError(502, f"invalid settle response: {e}") from e

    async def verify_then_settle(
        self,
        payment_payload: Dict[str, Any],
        payment_requirements: Dict[str, Any],
        *,
        x_payment_b64: str,
    ) -> Tuple[VerifyResponse, SettleResponse]:
        v = await self.verify(payment_payload, payment_requirements, x_payment_b64=x_payment_b64)
        if not v.isValid:
            raise FacilitatorRejected("verify", v.invalidReason or "verification failed", v)
        s = await self.settle(payment_payload, payment_requirements, x_payment_b64=x_payment_b64)
        if not s.success:
            raise FacilitatorRejected("settle", s.errorReason or "settlement failed", s)
        return v, s
