# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import base64
import json
import os
import secrets
import time
from typing import Any, Dict, Optional

from eth_account import Account

from .otel import start_role_span
from .types import X402_VERSION, PaymentRequirements

MAX_HEADER_BYTES = 8192

_DEFAULT_CHAIN_IDS = {
    "base": 8453,
    "base-sepolia": 84532,
    "avalanche": 43114,
    "avalanche-fuji": 43113,
}


def safe_b64encode(data: str) -> str:
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def safe_b64decode(data: str) -> str:
    """Decode standard or urlsafe base64, tolerating missing padding."""
    s = data.strip()
    s += "=" * (-len(s) % 4)
    if "-" in s or "_" in s:
        return base64.urlsafe_b64decode(s).decode("utf-8")
    return base64.b64decode(s, validate=True).decode("utf-8")


def network_chain_map() -> Dict[str, int]:
    """Parse X402_NETWORK_CHAIN_MAP env into a dict.

    Accepts either JSON (e.g., '{"base":8453,"base-sepolia":84532}') or
    a comma-separated list of pairs (e.g., 'base:8453,base-sepolia:84532').
    """
    raw = os.getenv("X402_NETWORK_CHAIN_MAP")
    if not raw:
        return dict(_DEFAULT_CHAIN_IDS)
    try:
        if raw.strip().startswith("{"):
            parsed = json.loads(raw)
            return {**_DEFAULT_CHAIN_IDS, **{str(k): int(v) for k, v in parsed.items()}}
        out: Dict[str, int] = dict(_DEFAULT_CHAIN_IDS)
        for part in raw.split(","):
            if not part.strip():
                continue
            k, v = part.split(":", 1)
            out[k.strip()] = int(v.strip())
        return out
    except ValueError:
        return dict(_DEFAULT_CHAIN_IDS)


def network_chain_id(network: str) -> Optional[int]:
    return network_chain_map().get(network)


def _transfer_typed_data(
    requirements: PaymentRequirements, authorization: Dict[str, Any], chain_id: int
) -> Dict[str, Any]:
    extra = requirements.extra or {}
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "TransferWithAuthorization": [
                {"name": "from", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "validAfter", "type": "uint256"},
                {"name": "validBefore", "type": "uint256"},
                {"name": "nonce", "type": "bytes32"},
            ],
        },
        "primaryType": "TransferWithAuthorization",
        "domain": {
            "name": extra.get("name", "USDC"),
            "version": str(extra.get("version", "2")),
            "chainId": chain_id,
            "verifyingContract": requirements.asset,
        },
        "message": {
            "from": authorization["from"],
            "to": authorization["to"],
            "value": int(authorization["value"]),
            "validAfter": int(authorization["validAfter"]),
            "validBefore": int(authorization["validBefore"]),
            "nonce": bytes.fromhex(authorization["nonce"][2:]),
        },
    }


def build_payment_header(
    private_key: str,
    requirements: PaymentRequirements,
    *,
    now: Optional[int] = None,
) -> str:
    """Sign an EIP-3009 transfer authorization and encode it for X-PAYMENT.

    Only the signature and the public authorization fields are encoded; the
    key itself stays in this process.
    """
    chain_id = network_chain_id(requirements.network)
    if chain_id is None:
        raise ValueError(f"Unsupported network: {requirements.network}")
    acct = Account.from_key(private_key)
    ts = int(time.time()) if now is None else now
    authorization = {
        "from": acct.address,
        "to": requirements.payTo,
        "value": str(int(requirements.maxAmountRequired)),
        "validAfter": str(ts - 60),
        "validBefore": str(ts + requirements.maxTimeoutSeconds),
        "nonce": "0x" + secrets.token_hex(32),
    }
    signed = acct.sign_typed_data(full_message=_transfer_typed_data(requirements, authorization, chain_id))
    payload = {
        "x402Version": X402_VERSION,
        "scheme": requirements.scheme,
        "network": requirements.network,
        "payload": {
            "signature": "0x" + bytes(signed.signature).hex(),
            "authorization": authorization,
        },
    }
    value = safe_b64encode(json.dumps(payload, separators=(",", ":")))
    if len(value) > MAX_HEADER_BYTES:
        raise RuntimeError(f"X-PAYMENT exceeds {MAX_HEADER_BYTES} bytes")
    return value


def decode_payment_response(value: str) -> Dict[str, Any]:
    """Decode the X-PAYMENT-RESPONSE header a seller attaches after settlement."""
    return json.loads(safe_b64decode(value))


def start_client_span(name: str, attributes: Optional[Dict[str, Any]] = None):
    return start_role_span("buyer", name, attributes)
