# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
import os
import sys

import httpx
import pytest


def _add_tests_dir_to_syspath() -> None:
    here = os.path.abspath(os.path.dirname(__file__))
    if here not in sys.path:
        sys.path.insert(0, here)


_add_tests_dir_to_syspath()


from x402_paywall_client import FacilitatorClient
from x402_paywall_server import ServerRuntimeConfig, create_app

# Import after adding to syspath
from helpers import BUYER_KEY, FACILITATOR_URL, PAY_TO, USDC_BASE_SEPOLIA
from mock_facilitator import FacilitatorState, build_mock_facilitator


@pytest.fixture
def test_env(monkeypatch) -> None:
    """Set up test environment variables."""
    monkeypatch.setenv("FACILITATOR_URL", FACILITATOR_URL)
    monkeypatch.setenv("NETWORK", "base-sepolia")
    monkeypatch.setenv("PAY_TO_ADDRESS", PAY_TO)
    monkeypatch.setenv("PAYMENT_AMOUNT", "10000")
    monkeypatch.delenv("ASSET_ADDRESS", raising=False)
    monkeypatch.delenv("X402_NETWORK_CHAIN_MAP", raising=False)
    monkeypatch.setenv("BUYER_PRIVATE_KEY", BUYER_KEY)


@pytest.fixture
def server_cfg(test_env) -> ServerRuntimeConfig:
    return ServerRuntimeConfig()


@pytest.fixture
def facilitator_state() -> FacilitatorState:
    return FacilitatorState()


@pytest.fixture
def facilitator(facilitator_state: FacilitatorState) -> FacilitatorClient:
    """Facilitator client wired in-process to the mock facilitator app."""
    transport = httpx.ASGITransport(app=build_mock_facilitator(facilitator_state))
    return FacilitatorClient(FACILITATOR_URL, transport=transport)


@pytest.fixture
def paywall_app(server_cfg: ServerRuntimeConfig, facilitator: FacilitatorClient):
    return create_app(server_cfg, facilitator=facilitator)


@pytest.fixture
def sample_requirement() -> dict:
    """Payment requirement as a seller advertises it in a 402 body."""
    return {
        "scheme": "exact",
        "network": "base-sepolia",
        "maxAmountRequired": "10000",
        "resource": "http://testserver/api/premium",
        "description": "Premium content",
        "mimeType": "application/json",
        "payTo": PAY_TO,
        "maxTimeoutSeconds": 60,
        "asset": USDC_BASE_SEPOLIA,
        "extra": {"name": "USDC", "version": "2"},
    }
