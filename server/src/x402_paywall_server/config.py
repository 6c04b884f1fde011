# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import os
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# Circle USDC deployments; the facilitator settles in this asset unless overridden.
USDC_ADDRESSES: Dict[str, str] = {
    "base-sepolia": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
    "base": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    "avalanche-fuji": "0x5425890298aed601595a70AB815c96711a31Bc65",
    "avalanche": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
}


def _csv(value: str) -> List[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


class ServerRuntimeConfig(BaseModel):
    facilitator_url: str = Field(
        default_factory=lambda: os.getenv("FACILITATOR_URL", "https://x402.org/facilitator")
    )
    network: str = Field(default_factory=lambda: os.getenv("NETWORK", "base-sepolia"))
    pay_to: str = Field(default_factory=lambda: os.getenv("PAY_TO_ADDRESS", ""))
    # Atomic units of the asset (USDC has 6 decimals: 10000 == $0.01)
    amount: str = Field(default_factory=lambda: os.getenv("PAYMENT_AMOUNT", "10000"))
    asset: Optional[str] = Field(default_factory=lambda: os.getenv("ASSET_ADDRESS") or None)
    asset_name: str = Field(default_factory=lambda: os.getenv("ASSET_NAME", "USDC"))
    asset_version: str = Field(default_factory=lambda: os.getenv("ASSET_VERSION", "2"))
    facilitator_timeout_s: float = Field(
        default_factory=lambda: float(os.getenv("FACILITATOR_TIMEOUT_S", "15"))
    )
    payment_timeout_s: int = Field(default_factory=lambda: int(os.getenv("PAYMENT_TIMEOUT_S", "60")))
    cors_allow_origins: List[str] = Field(
        default_factory=lambda: _csv(os.getenv("CORS_ALLOW_ORIGINS", "*"))
    )

    def asset_address(self) -> str:
        if self.asset:
            return self.asset
        try:
            return USDC_ADDRESSES[self.network]
        except KeyError:
            raise ValueError(
                f"No default asset for network {self.network}; set ASSET_ADDRESS"
            ) from None

    def validate_settings(self) -> None:
        """Validate required configuration.

        Raises:
            ValueError: If required configuration is missing or invalid
        """
        if not self.facilitator_url:
            raise ValueError("FACILITATOR_URL is required")
        if not self.pay_to:
            raise ValueError("PAY_TO_ADDRESS environment variable is required")
        if not self.pay_to.startswith("0x") or len(self.pay_to) != 42:
            raise ValueError(f"PAY_TO_ADDRESS must be a valid EVM address: {self.pay_to}")
        if not self.amount.isdigit() or int(self.amount) <= 0:
            raise ValueError(f"PAYMENT_AMOUNT must be a positive integer, got {self.amount}")
        self.asset_address()


def get_server_cfg() -> ServerRuntimeConfig:
    return ServerRuntimeConfig()
