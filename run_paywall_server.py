#!/usr/bin/env python3
# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""
Standalone runner for the x402 paywall demo server.

Env:
  - SERVER_HOST (default: 0.0.0.0)
  - SERVER_PORT (default: 4021)
  - FACILITATOR_URL (default: https://x402.org/facilitator)
  - NETWORK (default: base-sepolia)
  - PAY_TO_ADDRESS (required)
  - PAYMENT_AMOUNT (default: 10000, atomic units)
  - LOG_LEVEL (default: INFO)
  - OTEL_EXPORTER_OTLP_ENDPOINT / OTEL_CONSOLE_EXPORTER (optional; needs the otel extra)
"""

import logging
import os

# Load .env BEFORE building the app so the runtime config sees it
from dotenv import load_dotenv  # type: ignore
load_dotenv()

from x402_paywall_client import setup_otel_from_env
from x402_paywall_server import create_app


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("paywall_server")

if os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or os.getenv("OTEL_CONSOLE_EXPORTER"):
    setup_otel_from_env(role="seller")

app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("SERVER_HOST", "0.0.0.0")
    port = int(os.getenv("SERVER_PORT", "4021"))
    logger.info(f"Starting paywall server on {host}:{port}")
    uvicorn.run("run_paywall_server:app", host=host, port=port, log_level="info")
