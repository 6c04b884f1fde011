# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Buyer example: call the free endpoint, then pay for the premium one.

Env:
- SERVER_BASE_URL (default http://localhost:4021)
- NETWORK (default base-sepolia)
- BUYER_PRIVATE_KEY (required; used locally for signing, never sent)
- OTEL_EXPORTER_OTLP_ENDPOINT / OTEL_CONSOLE_EXPORTER (optional; needs the otel extra)
"""

import asyncio
import json
import os

from dotenv import load_dotenv
from x402_paywall_client import (
    BuyerClient,
    BuyerConfig,
    PaymentError,
    PaymentRejectedError,
    setup_otel_from_env,
)

load_dotenv()


async def main() -> None:
    if os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or os.getenv("OTEL_CONSOLE_EXPORTER"):
        setup_otel_from_env(role="buyer")

    server = os.getenv("SERVER_BASE_URL", "http://localhost:4021")
    if not os.getenv("BUYER_PRIVATE_KEY"):
        raise RuntimeError("BUYER_PRIVATE_KEY is required for signing X-PAYMENT")

    async with BuyerClient(
        BuyerConfig(
            server_base_url=server,
            network=os.getenv("NETWORK", "base-sepolia"),
            buyer_private_key=os.getenv("BUYER_PRIVATE_KEY"),
        )
    ) as buyer:
        print(f"Buyer address: {buyer.address}")

        free = await buyer.execute_paid_request("/api/free", method="GET")
        print(f"GET /api/free -> {free.response.status_code}")
        print(json.dumps(free.json(), indent=2))

        try:
            res = await buyer.execute_paid_request("/api/premium", json={"note": "hello from the buyer"})
        except PaymentRejectedError as e:
            print(f"\n❌ Payment rejected ({e.status_code}):")
            print(json.dumps(e.body, indent=2) if isinstance(e.body, dict) else e.body)
            raise
        except PaymentError as e:
            print(f"\n❌ Could not pay: {e}")
            raise

        print(f"\n✅ POST /api/premium -> {res.response.status_code}")
        print(json.dumps(res.json(), indent=2))
        if res.settlement:
            print("\nSettlement:")
            print(f"   success:     {res.settlement.get('success')}")
            print(f"   transaction: {res.settlement.get('transaction')}")
            print(f"   network:     {res.settlement.get('network')}")
            print(f"   payer:       {res.settlement.get('payer')}")


if __name__ == "__main__":
    asyncio.run(main())
