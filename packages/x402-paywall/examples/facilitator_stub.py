# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Local facilitator stub: accepts every payment. Point FACILITATOR_URL here for offline demos.

    uvicorn facilitator_stub:app --port 8001
"""
from fastapi import FastAPI

app = FastAPI(title="Facilitator Stub")


@app.post("/verify")
async def verify(body: dict):
    auth = body.get("paymentPayload", {}).get("payload", {}).get("authorization", {})
    return {"isValid": True, "payer": auth.get("from", "0xabc")}


@app.post("/settle")
async def settle(body: dict):
    auth = body.get("paymentPayload", {}).get("payload", {}).get("authorization", {})
    network = body.get("paymentRequirements", {}).get("network")
    return {"success": True, "payer": auth.get("from", "0xabc"), "transaction": "0x" + "0" * 64, "network": network}
