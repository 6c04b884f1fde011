# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""x402 Paywall Server

FastAPI seller that answers 402 challenges on protected routes and delegates
verification and settlement to an x402 facilitator.

Usage:
    from x402_paywall_server import create_app

    app = create_app()
"""

from .app import create_app
from .config import USDC_ADDRESSES, ServerRuntimeConfig, get_server_cfg
from .gate import (
    GateOutcome,
    PaymentAccepted,
    PaymentMissing,
    PaymentRejected,
    RouteConfig,
    build_requirements,
    evaluate_payment,
)
from .headers import HeaderError, parse_x_payment
from .middleware import PaymentGateMiddleware
from .routes import PREMIUM_ROUTES, router

__version__ = "0.1.0"

__all__ = [
    "create_app",
    "router",
    "PREMIUM_ROUTES",
    "ServerRuntimeConfig",
    "get_server_cfg",
    "USDC_ADDRESSES",
    "RouteConfig",
    "GateOutcome",
    "PaymentMissing",
    "PaymentAccepted",
    "PaymentRejected",
    "build_requirements",
    "evaluate_payment",
    "PaymentGateMiddleware",
    "HeaderError",
    "parse_x_payment",
]
