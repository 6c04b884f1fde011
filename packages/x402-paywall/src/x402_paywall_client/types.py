# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Wire shapes exchanged between buyer, seller and facilitator (x402 version 1)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

X402_VERSION = 1


class PaymentRequirements(BaseModel):
    model_config = ConfigDict(extra="allow")

    scheme: str = "exact"
    network: str
    maxAmountRequired: str = Field(..., description="Amount in the asset's atomic units")
    resource: str
    description: str = ""
    mimeType: str = "application/json"
    payTo: str
    maxTimeoutSeconds: int = 60
    asset: str
    extra: Optional[Dict[str, Any]] = None


class PaymentRequired(BaseModel):
    x402Version: int = X402_VERSION
    accepts: List[PaymentRequirements]
    error: Optional[str] = None


class PaymentPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    x402Version: int = X402_VERSION
    scheme: str
    network: str
    payload: Dict[str, Any]


class VerifyResponse(BaseModel):
    isValid: bool
    payer: Optional[str] = None
    invalidReason: Optional[str] = None


class SettleResponse(BaseModel):
    success: bool
    payer: Optional[str] = None
    transaction: Optional[str] = None
    network: Optional[str] = None
    errorReason: Optional[str] = None
