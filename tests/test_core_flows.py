# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Test the seller's payment gate: 402 challenge, facilitator verification and
settlement, and every rejection path.
"""

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient
from x402_paywall_client import (
    FacilitatorClient,
    PaymentRequirements,
    build_payment_header,
    decode_payment_response,
)
from x402_paywall_server import ServerRuntimeConfig, create_app

from helpers import BUYER_KEY, PAY_TO, USDC_BASE_SEPOLIA, encode_payload, unsigned_payload
from mock_facilitator import ZERO_SIGNATURE


@pytest.fixture
def client(paywall_app) -> TestClient:
    return TestClient(paywall_app)


def _challenge(client: TestClient) -> dict:
    r = client.post("/api/premium")
    assert r.status_code == 402
    return r.json()["accepts"][0]


class TestOpenEndpoints:
    def test_info_lists_configuration(self, client: TestClient):
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["payTo"] == PAY_TO
        assert data["network"] == "base-sepolia"
        assert data["price"] == {"amount": "10000", "asset": USDC_BASE_SEPOLIA, "name": "USDC"}
        paid = {e["path"]: e["paid"] for e in data["endpoints"]}
        assert paid == {"/": False, "/api/free": False, "/api/premium": True}

    def test_free_endpoint_needs_no_payment(self, client: TestClient, facilitator_state):
        r = client.get("/api/free")
        assert r.status_code == 200
        assert r.json()["tier"] == "free"
        assert "X-PAYMENT-RESPONSE" not in r.headers
        assert facilitator_state.verify_calls == 0

    def test_health(self, client: TestClient):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

    def test_gate_only_covers_post(self, client: TestClient):
        # GET on the premium path is not a configured paid route
        r = client.get("/api/premium")
        assert r.status_code == 405


class TestPaymentChallenge:
    def test_missing_header_returns_402_with_configured_requirement(self, client: TestClient):
        r = client.post("/api/premium")

        assert r.status_code == 402
        assert r.headers["content-type"].startswith("application/json")
        assert r.headers.get("X-Request-ID")
        body = r.json()
        assert body["x402Version"] == 1
        assert body["error"] == "X-PAYMENT header is required"
        pr = body["accepts"][0]
        assert pr["payTo"] == PAY_TO
        assert pr["maxAmountRequired"] == "10000"
        assert pr["network"] == "base-sepolia"
        assert pr["scheme"] == "exact"
        assert pr["asset"] == USDC_BASE_SEPOLIA
        assert pr["resource"] == "http://testserver/api/premium"
        assert pr["extra"] == {"name": "USDC", "version": "2"}

    def test_requirement_follows_environment(self, monkeypatch, test_env, facilitator):
        monkeypatch.setenv("PAYMENT_AMOUNT", "250000")
        monkeypatch.setenv("PAY_TO_ADDRESS", "0x" + "e" * 40)
        app = create_app(ServerRuntimeConfig(), facilitator=facilitator)

        pr = _challenge(TestClient(app))

        assert pr["maxAmountRequired"] == "250000"
        assert pr["payTo"] == "0x" + "e" * 40

    def test_cors_preflight_is_not_gated(self, client: TestClient):
        r = client.options(
            "/api/premium",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
        )
        assert r.status_code == 200


class TestPaidRequest:
    def test_valid_payment_unlocks_premium_and_attaches_settlement(
        self, client: TestClient, facilitator_state
    ):
        pr = PaymentRequirements(**_challenge(client))
        x_payment = build_payment_header(BUYER_KEY, pr)

        r = client.post("/api/premium", json={"note": "hi"}, headers={"X-PAYMENT": x_payment})

        assert r.status_code == 200
        data = r.json()
        assert data["tier"] == "premium"
        assert data["echo"] == {"note": "hi"}
        assert data["payment"]["transaction"] == "0x" + "f" * 64
        settlement = decode_payment_response(r.headers["X-PAYMENT-RESPONSE"])
        assert settlement["success"] is True
        assert settlement["network"] == "base-sepolia"
        assert settlement["payer"] == data["payment"]["payer"]
        assert facilitator_state.verify_calls == 1
        assert facilitator_state.settle_calls == 1

    def test_facilitator_receives_payload_and_requirement(self, client: TestClient, facilitator_state):
        pr = PaymentRequirements(**_challenge(client))
        x_payment = build_payment_header(BUYER_KEY, pr)

        client.post("/api/premium", headers={"X-PAYMENT": x_payment})

        sent = facilitator_state.last_verify
        assert sent["x402Version"] == 1
        assert sent["paymentHeader"] == x_payment
        assert sent["x_payment"] == x_payment
        assert sent["paymentRequirements"]["payTo"] == PAY_TO
        assert sent["paymentPayload"]["payload"]["authorization"]["to"] == PAY_TO

    def test_non_object_body_is_still_served_after_settlement(self, client: TestClient, facilitator_state):
        pr = PaymentRequirements(**_challenge(client))

        r = client.post("/api/premium", json=[1, 2], headers={"X-PAYMENT": build_payment_header(BUYER_KEY, pr)})

        assert r.status_code == 200
        assert r.json()["echo"] == [1, 2]
        assert "X-PAYMENT-RESPONSE" in r.headers
        assert facilitator_state.settle_calls == 1

    def test_invalid_json_body_is_echoed_as_text(self, client: TestClient, facilitator_state):
        pr = PaymentRequirements(**_challenge(client))

        r = client.post(
            "/api/premium",
            content=b"{not json",
            headers={"X-PAYMENT": build_payment_header(BUYER_KEY, pr), "Content-Type": "application/json"},
        )

        assert r.status_code == 200
        assert r.json()["echo"] == "{not json"
        assert facilitator_state.settle_calls == 1

    def test_trailing_slash_is_never_charged(self, client: TestClient, facilitator_state):
        pr = PaymentRequirements(**_challenge(client))

        r = client.post(
            "/api/premium/",
            headers={"X-PAYMENT": build_payment_header(BUYER_KEY, pr)},
            follow_redirects=False,
        )

        assert r.status_code == 307
        assert "X-PAYMENT-RESPONSE" not in r.headers
        assert facilitator_state.verify_calls == 0
        assert facilitator_state.settle_calls == 0


class TestRejectedPayment:
    def test_verify_rejection_never_reaches_handler(self, client: TestClient, facilitator_state):
        pr = _challenge(client)
        bad = unsigned_payload(pr)
        bad["payload"]["signature"] = ZERO_SIGNATURE

        with patch("x402_paywall_server.routes.logger") as handler_log:
            r = client.post("/api/premium", headers={"X-PAYMENT": encode_payload(bad)})

        assert r.status_code == 402
        body = r.json()
        assert body["error"] == "invalid_exact_evm_payload_signature"
        assert "tier" not in body
        assert "X-PAYMENT-RESPONSE" not in r.headers
        assert body["accepts"][0]["payTo"] == PAY_TO
        handler_log.info.assert_not_called()
        assert facilitator_state.verify_calls == 1
        assert facilitator_state.settle_calls == 0

    def test_underpayment_is_rejected(self, client: TestClient, facilitator_state):
        pr = _challenge(client)
        cheap = unsigned_payload(pr)
        cheap["payload"]["authorization"]["value"] = "1"

        r = client.post("/api/premium", headers={"X-PAYMENT": encode_payload(cheap)})

        assert r.status_code == 402
        assert r.json()["error"] == "invalid_exact_evm_payload_authorization_value"
        assert facilitator_state.settle_calls == 0

    def test_settlement_failure_withholds_content(self, client: TestClient, facilitator_state):
        facilitator_state.settle_success = False
        pr = _challenge(client)

        r = client.post("/api/premium", headers={"X-PAYMENT": encode_payload(unsigned_payload(pr))})

        assert r.status_code == 402
        assert r.json()["error"] == "Mock settlement failure for testing"
        assert "tier" not in r.json()
        assert "X-PAYMENT-RESPONSE" not in r.headers
        assert facilitator_state.settle_calls == 1

    def test_malformed_header_is_rejected_before_facilitator(self, client: TestClient, facilitator_state):
        r = client.post("/api/premium", headers={"X-PAYMENT": "not base64 json!"})

        assert r.status_code == 400
        body = r.json()
        assert body["error"]["code"] == "PAYMENT_HEADER_INVALID"
        assert body["request_id"] == r.headers["X-Request-ID"]
        assert facilitator_state.verify_calls == 0

    def test_non_ascii_header_is_malformed(self, client: TestClient, facilitator_state):
        r = client.post("/api/premium", headers={"X-PAYMENT": "éabc".encode("latin-1")})

        assert r.status_code == 400
        assert r.json()["error"]["code"] == "PAYMENT_HEADER_INVALID"
        assert facilitator_state.verify_calls == 0

    def test_payload_without_authorization_is_malformed(self, client: TestClient, facilitator_state):
        pr = _challenge(client)
        payload = unsigned_payload(pr, payload={"signature": "0x" + "d" * 130})

        r = client.post("/api/premium", headers={"X-PAYMENT": encode_payload(payload)})

        assert r.status_code == 400
        assert "authorization" in r.json()["error"]["message"]
        assert facilitator_state.verify_calls == 0

    def test_network_mismatch_is_rejected_before_facilitator(self, client: TestClient, facilitator_state):
        pr = _challenge(client)
        payload = unsigned_payload(pr, network="base")

        r = client.post("/api/premium", headers={"X-PAYMENT": encode_payload(payload)})

        assert r.status_code == 402
        assert "base-sepolia" in r.json()["error"]
        assert facilitator_state.verify_calls == 0

    def test_facilitator_error_status_is_surfaced(self, client: TestClient, facilitator_state):
        facilitator_state.status_code = 500
        pr = _challenge(client)

        r = client.post("/api/premium", headers={"X-PAYMENT": encode_payload(unsigned_payload(pr))})

        assert r.status_code == 500
        body = r.json()
        assert body["error"]["code"] == "FACILITATOR_ERROR"
        assert "facilitator exploded" in body["error"]["message"]
        assert facilitator_state.settle_calls == 0

    def test_unreachable_facilitator_is_a_gateway_error(self, server_cfg, sample_requirement):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        down = FacilitatorClient("http://facilitator.test", transport=httpx.MockTransport(refuse))
        client = TestClient(create_app(server_cfg, facilitator=down))

        r = client.post(
            "/api/premium", headers={"X-PAYMENT": encode_payload(unsigned_payload(sample_requirement))}
        )

        assert r.status_code == 502
        assert r.json()["error"]["code"] == "FACILITATOR_UNAVAILABLE"


class TestServerConfig:
    def test_missing_recipient_is_rejected(self, test_env, monkeypatch):
        monkeypatch.setenv("PAY_TO_ADDRESS", "")
        with pytest.raises(ValueError, match="PAY_TO_ADDRESS"):
            create_app(ServerRuntimeConfig())

    def test_bad_amount_is_rejected(self, test_env):
        with pytest.raises(ValueError, match="PAYMENT_AMOUNT"):
            create_app(ServerRuntimeConfig(amount="0.01"))

    def test_unknown_network_needs_explicit_asset(self, test_env):
        with pytest.raises(ValueError, match="ASSET_ADDRESS"):
            ServerRuntimeConfig(network="polygon").validate_settings()
        ServerRuntimeConfig(network="polygon", asset="0x" + "1" * 40).validate_settings()
