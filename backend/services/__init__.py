# services/__init__.py
# ============================================================================
# PAYMENT RETURN RECONCILER — SERVICES MODULE
# ============================================================================
# Payment backend client and status interpretation
# ============================================================================

from services.payment_api import (
    IPaymentBackend,
    NETWORK_ERROR_MESSAGE,
    PaymentApiClient,
    PaymentApiConfig,
    PaymentApiError,
)

from services.status_interpreter import (
    FAILURE_STATUSES,
    SUCCESS_STATUSES,
    classify,
    is_success,
)

__all__ = [
    # Payment backend
    "IPaymentBackend",
    "NETWORK_ERROR_MESSAGE",
    "PaymentApiClient",
    "PaymentApiConfig",
    "PaymentApiError",
    # Status interpretation
    "FAILURE_STATUSES",
    "SUCCESS_STATUSES",
    "classify",
    "is_success",
]
