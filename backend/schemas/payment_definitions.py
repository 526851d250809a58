# schemas/payment_definitions.py
# ============================================================================
# PAYMENT RETURN RECONCILER — PAYMENT SCHEMAS
# ============================================================================
# Purpose: Type-safe payment intent, backend snapshot and reconciliation state
#
# - PaymentIntentRecord: persisted at checkout, read on redirect return
# - PaymentStatusSnapshot: the backend's canonical payment record
# - ReconciliationState: tagged state owned by one reconciliation session
# ============================================================================

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# SECTION 1: ENUMS
# ============================================================================

class PaymentOutcome(str, Enum):
    """Canonical classification of a raw backend status."""
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"


class ReconciliationPhase(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"


TERMINAL_PHASES = frozenset({ReconciliationPhase.CONFIRMED, ReconciliationPhase.UNCONFIRMED})


# ============================================================================
# SECTION 2: PERSISTED INTENT
# ============================================================================

class PaymentIntentRecord(BaseModel):
    """Pending payment attempt recorded when the buyer is sent to the gateway."""
    model_config = ConfigDict(populate_by_name=True)

    payment_id: int = Field(alias="paymentId", gt=0)
    order_id: Optional[int] = Field(default=None, alias="orderId")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    @field_validator("payment_id", mode="before")
    @classmethod
    def _reject_non_integer_id(cls, value: Any) -> Any:
        # bool is an int subclass and strings would be coerced; neither is a real id
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("paymentId must be an integer")
        return value

    def age(self, now: Optional[datetime] = None) -> timedelta:
        return _as_utc(now or utcnow()) - _as_utc(self.created_at)

    def is_expired(self, max_age: Optional[timedelta], now: Optional[datetime] = None) -> bool:
        if max_age is None:
            return False
        return self.age(now) > max_age


# ============================================================================
# SECTION 3: BACKEND SNAPSHOT
# ============================================================================

class PaymentStatusSnapshot(BaseModel):
    """Response body of GET /payment/{paymentId}."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    payment_id: int = Field(alias="id")
    order_id: Optional[int] = Field(default=None, alias="orderId")
    raw_status: Optional[str] = Field(default=None, alias="status")
    amount: str = "0"
    result_code: Optional[int] = Field(default=None, alias="resultCode")
    result_message: Optional[str] = Field(default=None, alias="resultMessage")
    paid_at: Optional[datetime] = Field(default=None, alias="paidAt")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_string(cls, value: Any) -> Any:
        if value is None:
            return "0"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


# ============================================================================
# SECTION 4: RECONCILIATION STATE
# ============================================================================

class ReconciliationState(BaseModel):
    """
    Tagged reconciliation state: Idle, Syncing, Confirmed(snapshot) or
    Unconfirmed(snapshot?, error_message).

    sync_error keeps the push-phase failure as context; it never decides
    the outcome on its own.
    """
    model_config = ConfigDict(frozen=True)

    phase: ReconciliationPhase = ReconciliationPhase.IDLE
    payment_id: Optional[int] = None
    snapshot: Optional[PaymentStatusSnapshot] = None
    error_message: Optional[str] = None
    sync_error: Optional[str] = None
    fallback_order_id: Optional[int] = Field(default=None, exclude=True)

    @classmethod
    def idle(cls) -> "ReconciliationState":
        return cls()

    @classmethod
    def syncing(cls, payment_id: int, order_id: Optional[int] = None) -> "ReconciliationState":
        return cls(
            phase=ReconciliationPhase.SYNCING,
            payment_id=payment_id,
            fallback_order_id=order_id,
        )

    def confirmed(self, snapshot: PaymentStatusSnapshot) -> "ReconciliationState":
        return self.model_copy(update={
            "phase": ReconciliationPhase.CONFIRMED,
            "snapshot": snapshot,
            "error_message": None,
            "sync_error": None,
        })

    def unconfirmed(
        self,
        message: str,
        snapshot: Optional[PaymentStatusSnapshot] = None,
    ) -> "ReconciliationState":
        return self.model_copy(update={
            "phase": ReconciliationPhase.UNCONFIRMED,
            "snapshot": snapshot,
            "error_message": message,
        })

    def with_sync_error(self, message: str) -> "ReconciliationState":
        return self.model_copy(update={"sync_error": message})

    @computed_field
    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @computed_field
    @property
    def order_id(self) -> Optional[int]:
        """Order to deep-link into order history, when known."""
        if self.snapshot is not None and self.snapshot.order_id is not None:
            return self.snapshot.order_id
        return self.fallback_order_id
