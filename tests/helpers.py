# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Constants and small builders shared by the test modules."""
import json
from typing import Any, Dict

from x402_paywall_client import safe_b64encode

BUYER_KEY = "0x" + "a" * 64
PAY_TO = "0x" + "c" * 40
USDC_BASE_SEPOLIA = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
FACILITATOR_URL = "http://facilitator.test"


def encode_payload(payload: Dict[str, Any]) -> str:
    return safe_b64encode(json.dumps(payload, separators=(",", ":")))


def unsigned_payload(requirement: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
    """Syntactically valid X-PAYMENT payload carrying a placeholder signature."""
    payload = {
        "x402Version": 1,
        "scheme": requirement["scheme"],
        "network": requirement["network"],
        "payload": {
            "signature": "0x" + "d" * 130,
            "authorization": {
                "from": "0x" + "b" * 40,
                "to": requirement["payTo"],
                "value": requirement["maxAmountRequired"],
                "validAfter": "0",
                "validBefore": "9999999999",
                "nonce": "0x" + "1" * 64,
            },
        },
    }
    payload.update(overrides)
    return payload
