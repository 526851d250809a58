# api/presenter.py
# ============================================================================
# PAYMENT RETURN RECONCILER — VIEW MODEL
# ============================================================================
# Turns a reconciliation state into what the payment-return page renders.
# Navigation links are always present so a failed confirmation never
# traps the buyer.
# ============================================================================

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel, Field

from schemas.payment_definitions import (
    PaymentOutcome,
    ReconciliationPhase,
    ReconciliationState,
    utcnow,
)
from services.status_interpreter import classify

VERIFYING_MESSAGE = "Verifying your payment..."
CONFIRMED_MESSAGE = "Your order has been confirmed and will be processed soon."


def format_price(amount: Optional[str]) -> Optional[str]:
    """Format a VND amount the way the storefront does, e.g. '₫150,000'."""
    if amount is None:
        return None
    try:
        value = Decimal(str(amount).strip())
        if not value.is_finite():
            return amount
        whole = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return amount

    sign = "-" if whole < 0 else ""
    return f"{sign}₫{abs(int(whole)):,}"


class NavigationLinks(BaseModel):
    continue_shopping: str
    order_history: str
    order_detail: Optional[str] = None


class ReconciliationView(BaseModel):
    """Payload for the payment-return page."""
    phase: ReconciliationPhase
    outcome: Optional[PaymentOutcome] = None
    payment_id: Optional[int] = None
    order_id: Optional[int] = None
    amount: Optional[str] = None
    amount_display: Optional[str] = None
    paid_at: Optional[datetime] = None
    message: Optional[str] = None
    sync_error: Optional[str] = None
    links: NavigationLinks
    generated_at: datetime = Field(default_factory=utcnow)


def build_links(frontend_url: str, order_id: Optional[int]) -> NavigationLinks:
    base = frontend_url.rstrip("/")
    return NavigationLinks(
        continue_shopping=f"{base}/products",
        order_history=f"{base}/profile?tab=orders",
        order_detail=f"{base}/orders/{order_id}" if order_id is not None else None,
    )


def present(state: ReconciliationState, frontend_url: str) -> ReconciliationView:
    snapshot = state.snapshot
    outcome = None
    message = state.error_message

    if state.phase == ReconciliationPhase.SYNCING:
        message = VERIFYING_MESSAGE
    elif state.phase == ReconciliationPhase.CONFIRMED:
        outcome = PaymentOutcome.SUCCEEDED
        message = CONFIRMED_MESSAGE
    elif state.phase == ReconciliationPhase.UNCONFIRMED:
        outcome = classify(snapshot.raw_status, settled=True) if snapshot else PaymentOutcome.FAILED

    return ReconciliationView(
        phase=state.phase,
        outcome=outcome,
        payment_id=state.payment_id,
        order_id=state.order_id,
        amount=snapshot.amount if snapshot else None,
        amount_display=format_price(snapshot.amount) if snapshot else None,
        paid_at=snapshot.paid_at if snapshot else None,
        message=message,
        sync_error=state.sync_error,
        links=build_links(frontend_url, state.order_id),
    )
