# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
"""Tracing for both sides of a paid request.

The buyer records ``buyer.first_attempt`` / ``buyer.paid_attempt``; the seller
records ``seller.facilitator`` around verify and settle. Spans are tagged with
the payment requirement so a buyer trace and a seller trace can be lined up
by network, recipient and amount.
"""
from __future__ import annotations

import os
from typing import Any, Dict, Iterable, Optional

from opentelemetry import trace

ROLES = ("buyer", "seller")


def requirement_attributes(requirement: Any) -> Dict[str, Any]:
    attrs = {
        "x402.scheme": requirement.scheme,
        "x402.network": requirement.network,
        "x402.pay_to": requirement.payTo,
        "x402.amount": requirement.maxAmountRequired,
        "x402.asset": requirement.asset,
    }
    return {k: v for k, v in attrs.items() if v is not None}


def start_role_span(role: str, name: str, attributes: Optional[Dict[str, Any]] = None):
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}, expected one of {ROLES}")
    tracer = trace.get_tracer(f"x402_paywall.{role}")
    return tracer.start_as_current_span(name, attributes=attributes)


def build_tracer_provider(
    role: str,
    *,
    endpoint: Optional[str] = None,
    use_console: bool = False,
    exporters: Iterable[Any] = (),
):
    """Build an SDK ``TracerProvider`` for ``role`` without installing it globally.

    ``exporters`` are attached with a ``SimpleSpanProcessor`` (useful for an
    in-memory exporter); ``endpoint`` adds batched OTLP/HTTP export.
    """
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}, expected one of {ROLES}")
    try:
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as e:  # pragma: no cover - import error path
        raise RuntimeError(
            "OpenTelemetry SDK not installed. Install extras: pip install x402-paywall-demo[otel]"
        ) from e

    service_name = os.getenv("OTEL_SERVICE_NAME") or f"x402-paywall-{role}"
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name, "x402.role": role}))

    if endpoint:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    if use_console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    for exporter in exporters:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider


def setup_otel_from_env(role: str = "buyer", use_console: bool = False):
    """Install a global tracer provider for ``role`` from environment variables.

    Env vars:
    - OTEL_EXPORTER_OTLP_ENDPOINT (unset: no OTLP export)
    - OTEL_SERVICE_NAME (default x402-paywall-<role>)
    - OTEL_CONSOLE_EXPORTER=1 to print spans to stdout
    """
    console = use_console or os.getenv("OTEL_CONSOLE_EXPORTER", "0").lower() in {"1", "true", "yes"}
    provider = build_tracer_provider(
        role, endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"), use_console=console
    )
    trace.set_tracer_provider(provider)
    return provider
