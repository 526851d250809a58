# Pipeline - Payment Return Reconciliation
# ========================================

from .reconciliation import (
    CancellationToken,
    PAYMENT_ID_PARAM,
    ReconciliationController,
    ReconciliationSession,
    UNCONFIRMED_MESSAGE,
    parse_payment_id,
)

__all__ = [
    "CancellationToken",
    "PAYMENT_ID_PARAM",
    "ReconciliationController",
    "ReconciliationSession",
    "UNCONFIRMED_MESSAGE",
    "parse_payment_id",
]
