"""
Payment Return Reconciliation
=============================
Confirms a gateway payment against the authoritative backend when the
buyer is redirected back from the gateway.

Flow per redirect visit:
    resolve paymentId (query param, then Intent Store)
    -> guard -> Syncing
    -> push: POST /payment/{id}/sync   (best effort)
    -> pull: GET /payment/{id}         (source of truth)
    -> Confirmed | Unconfirmed
    -> Intent Store cleared (always)

One ReconciliationSession per mounted consumer. The session runs at most
once; tearing it down suppresses every later state transition.

pip install pydantic structlog httpx
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Mapping, Optional, Tuple

import structlog

from schemas.payment_definitions import (
    PaymentOutcome,
    ReconciliationState,
)
from services.payment_api import IPaymentBackend, NETWORK_ERROR_MESSAGE, PaymentApiError
from services.status_interpreter import classify
from storage.intent_store import IIntentStore

logger = structlog.get_logger().bind(component="reconciliation")

PAYMENT_ID_PARAM = "paymentId"
UNCONFIRMED_MESSAGE = "Payment not confirmed"
MAX_PAYMENT_ID_DIGITS = 19

StateListener = Callable[[ReconciliationState], None]


# =============================================================================
# HELPERS
# =============================================================================

def parse_payment_id(value: Any) -> Optional[int]:
    """Positive integer id from a query value, else None."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        # ascii only: isdigit also accepts superscripts and other unicode digits
        if text.isascii() and text.isdigit() and len(text) <= MAX_PAYMENT_ID_DIGITS:
            parsed = int(text)
            return parsed if parsed > 0 else None
    return None


def describe_failure(error: Exception, fallback: str) -> str:
    if isinstance(error, PaymentApiError):
        return error.message or fallback
    return str(error) or fallback


class CancellationToken:
    """Liveness flag shared between a session and its async chain."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


# =============================================================================
# SESSION
# =============================================================================

class ReconciliationSession:
    """
    One mounted reconciliation session.

    The started flag is set before any awaiting happens, so repeated or
    concurrent activate() calls on the same session never issue a second
    push/pull pair. A new session starts with a fresh flag.
    """

    def __init__(
        self,
        store: IIntentStore,
        backend: IPaymentBackend,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._store = store
        self._backend = backend
        self._token = CancellationToken()
        self._started = False
        self._state = ReconciliationState.idle()
        self._listeners: list[StateListener] = []
        self._log = logger.bind(session_id=self.session_id)

    @property
    def state(self) -> ReconciliationState:
        return self._state

    @property
    def started(self) -> bool:
        return self._started

    @property
    def active(self) -> bool:
        return not self._token.cancelled

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register an update handler; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def teardown(self) -> None:
        """The consumer is gone: no further transitions for this session."""
        if self._token.cancelled:
            return
        self._token.cancel()
        self._listeners.clear()
        self._log.debug("session_torn_down", phase=self._state.phase.value)

    def _transition(self, new_state: ReconciliationState) -> bool:
        if self._token.cancelled:
            self._log.debug("transition_skipped", phase=new_state.phase.value)
            return False

        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                self._log.error(
                    "state_listener_failed",
                    phase=new_state.phase.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return True

    def _resolve(self, query_params: Optional[Mapping[str, Any]]) -> Tuple[Optional[int], Optional[int], str]:
        """Returns (payment_id, order_id, source)."""
        query_id = parse_payment_id((query_params or {}).get(PAYMENT_ID_PARAM))
        intent = self._store.load()

        if query_id is not None:
            order_id = intent.order_id if intent and intent.payment_id == query_id else None
            return query_id, order_id, "query"
        if intent is not None:
            return intent.payment_id, intent.order_id, "intent_store"
        return None, None, "none"

    async def activate(self, query_params: Optional[Mapping[str, Any]] = None) -> ReconciliationState:
        """Run the reconciliation once; later calls return the current state."""
        if self._started:
            self._log.debug("activation_ignored", phase=self._state.phase.value)
            return self._state
        self._started = True

        try:
            payment_id, order_id, source = self._resolve(query_params)
            if payment_id is None:
                self._log.info("nothing_to_reconcile")
                return self._state

            await self._reconcile(payment_id, order_id, source)
            return self._state
        finally:
            self._store.clear()

    async def _reconcile(self, payment_id: int, order_id: Optional[int], source: str) -> None:
        log = self._log.bind(payment_id=payment_id)
        log.info("reconciliation_started", source=source)

        state = ReconciliationState.syncing(payment_id, order_id)
        self._transition(state)

        # Push: best effort, the pull below decides the outcome
        try:
            await self._backend.sync_payment(payment_id)
        except Exception as e:
            message = describe_failure(e, NETWORK_ERROR_MESSAGE)
            log.warning("payment_sync_failed", error=message)
            state = state.with_sync_error(message)
            self._transition(state)

        if self._token.cancelled:
            log.info("reconciliation_abandoned", phase="sync")
            return

        # Pull
        try:
            snapshot = await self._backend.get_payment(payment_id)
        except Exception as e:
            message = describe_failure(e, NETWORK_ERROR_MESSAGE)
            log.warning("payment_fetch_failed", error=message, sync_error=state.sync_error)
            self._transition(state.unconfirmed(message))
            return

        outcome = classify(snapshot.raw_status, settled=True)
        if outcome is PaymentOutcome.SUCCEEDED:
            applied = self._transition(state.confirmed(snapshot))
            log.info(
                "payment_confirmed",
                order_id=snapshot.order_id,
                amount=snapshot.amount,
                applied=applied,
            )
            return

        message = snapshot.result_message or UNCONFIRMED_MESSAGE
        applied = self._transition(state.unconfirmed(message, snapshot))
        log.info(
            "payment_unconfirmed",
            raw_status=snapshot.raw_status,
            outcome=outcome.value,
            result_code=snapshot.result_code,
            applied=applied,
        )


# =============================================================================
# CONTROLLER
# =============================================================================

class ReconciliationController:
    """
    Creates reconciliation sessions bound to one Intent Store and backend.

    Example:
        controller = ReconciliationController(store, api)
        async with controller.mounted() as session:
            state = await session.activate({"paymentId": "7"})
    """

    def __init__(self, store: IIntentStore, backend: IPaymentBackend):
        self.store = store
        self.backend = backend

    def mount(self) -> ReconciliationSession:
        return ReconciliationSession(self.store, self.backend)

    @asynccontextmanager
    async def mounted(self) -> AsyncIterator[ReconciliationSession]:
        session = self.mount()
        try:
            yield session
        finally:
            session.teardown()

    async def reconcile(self, query_params: Optional[Mapping[str, Any]] = None) -> ReconciliationState:
        """Mount, activate and tear down a session for one redirect visit."""
        async with self.mounted() as session:
            return await session.activate(query_params)
