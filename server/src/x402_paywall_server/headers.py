# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
from typing import Any, Dict

from pydantic import ValidationError
from x402_paywall_client import PaymentPayload, safe_b64decode

MAX_X_PAYMENT_BYTES = 8192


class HeaderError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise HeaderError(msg)


def parse_x_payment(value: str) -> PaymentPayload:
    """Decode X-PAYMENT (base64 JSON payment payload). Fail fast on any deviation."""
    _require(len(value) <= MAX_X_PAYMENT_BYTES, "X-PAYMENT too large")
    try:
        decoded: Any = json.loads(safe_b64decode(value))
    except ValueError as e:
        raise HeaderError(f"X-PAYMENT is not base64 JSON: {e}") from e
    _require(isinstance(decoded, dict), "X-PAYMENT must encode a JSON object")
    try:
        payload = PaymentPayload(**decoded)
    except ValidationError as e:
        raise HeaderError(f"X-PAYMENT payload invalid: {e.errors()[0]['msg']}") from e
    inner: Dict[str, Any] = payload.payload
    _require(isinstance(inner.get("signature"), str), "X-PAYMENT signature required")
    _require(isinstance(inner.get("authorization"), dict), "X-PAYMENT authorization required")
    return payload
