# schemas/__init__.py
# ============================================================================
# PAYMENT RETURN RECONCILER — SCHEMAS MODULE
# ============================================================================

from schemas.payment_definitions import (
    PaymentIntentRecord,
    PaymentOutcome,
    PaymentStatusSnapshot,
    ReconciliationPhase,
    ReconciliationState,
    TERMINAL_PHASES,
)

__all__ = [
    "PaymentIntentRecord",
    "PaymentOutcome",
    "PaymentStatusSnapshot",
    "ReconciliationPhase",
    "ReconciliationState",
    "TERMINAL_PHASES",
]
