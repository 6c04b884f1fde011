# Copyright 2025 t54 labs
# SPDX-License-Identifier: Apache-2.0
from .buyer import (
    BuyerClient,
    BuyerConfig,
    PaidResponse,
    PaymentError,
    PaymentRejectedError,
    PaymentRequirementError,
    parse_payment_required,
)
from .facilitator import (
    FacilitatorClient,
    FacilitatorError,
    FacilitatorHTTPError,
    FacilitatorRejected,
    FacilitatorUnavailable,
)
from .headers import (
    build_payment_header,
    decode_payment_response,
    network_chain_id,
    safe_b64decode,
    safe_b64encode,
    start_client_span,
)
from .otel import (
    build_tracer_provider,
    requirement_attributes,
    setup_otel_from_env,
    start_role_span,
)
from .types import (
    X402_VERSION,
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)

__all__ = [
    "BuyerConfig",
    "BuyerClient",
    "PaidResponse",
    "PaymentError",
    "PaymentRequirementError",
    "PaymentRejectedError",
    "parse_payment_required",
    "FacilitatorClient",
    "FacilitatorError",
    "FacilitatorHTTPError",
    "FacilitatorRejected",
    "FacilitatorUnavailable",
    "build_payment_header",
    "decode_payment_response",
    "network_chain_id",
    "safe_b64encode",
    "safe_b64decode",
    "start_client_span",
    "setup_otel_from_env",
    "build_tracer_provider",
    "requirement_attributes",
    "start_role_span",
    "X402_VERSION",
    "PaymentRequirements",
    "PaymentRequired",
    "PaymentPayload",
    "VerifyResponse",
    "SettleResponse",
]
