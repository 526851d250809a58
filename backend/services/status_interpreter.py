# services/status_interpreter.py
# ============================================================================
# PAYMENT RETURN RECONCILER — STATUS INTERPRETER
# ============================================================================
# Maps raw backend status strings onto succeeded / pending / failed.
# Pure and total: safe to call from rendering code.
# ============================================================================

from typing import Any

from schemas.payment_definitions import PaymentOutcome

SUCCESS_STATUSES = frozenset({"SUCCEEDED", "SUCCESS", "PAID", "COMPLETED", "CAPTURED"})

FAILURE_STATUSES = frozenset({
    "FAILED",
    "CANCELLED",
    "CANCELED",
    "EXPIRED",
    "DECLINED",
    "REFUNDED",
    "ERROR",
})


def normalize_status(raw_status: Any) -> str:
    if not isinstance(raw_status, str):
        return ""
    return raw_status.strip().upper()


def classify(raw_status: Any, settled: bool = False) -> PaymentOutcome:
    """
    Classify a raw backend status.

    Args:
        raw_status: Status string from the backend (may be missing)
        settled: True once a fetch has definitively returned; an unknown
            or missing status then counts as failed instead of pending

    Returns:
        PaymentOutcome
    """
    token = normalize_status(raw_status)

    if token in SUCCESS_STATUSES:
        return PaymentOutcome.SUCCEEDED
    if token in FAILURE_STATUSES:
        return PaymentOutcome.FAILED
    return PaymentOutcome.FAILED if settled else PaymentOutcome.PENDING


def is_success(raw_status: Any) -> bool:
    return classify(raw_status) is PaymentOutcome.SUCCEEDED
