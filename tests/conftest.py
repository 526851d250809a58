import asyncio
from typing import Optional

import pytest

from pipeline.reconciliation import ReconciliationController
from schemas.payment_definitions import PaymentStatusSnapshot
from services.payment_api import IPaymentBackend
from storage.intent_store import InMemoryIntentStore


def make_snapshot(**overrides) -> PaymentStatusSnapshot:
    body = {
        "id": 7,
        "orderId": 31,
        "status": "SUCCEEDED",
        "amount": "150000",
        "paidAt": "2024-01-01T10:00:00Z",
    }
    body.update(overrides)
    return PaymentStatusSnapshot.model_validate(body)


class FakeBackend(IPaymentBackend):
    """Records calls; optional gates hold a phase open until released."""

    def __init__(
        self,
        snapshot: Optional[PaymentStatusSnapshot] = None,
        sync_error: Optional[Exception] = None,
        fetch_error: Optional[Exception] = None,
    ):
        self.snapshot = snapshot or make_snapshot()
        self.sync_error = sync_error
        self.fetch_error = fetch_error
        self.calls = []
        self.sync_gate: Optional[asyncio.Event] = None
        self.fetch_gate: Optional[asyncio.Event] = None
        self.sync_started = asyncio.Event()
        self.fetch_started = asyncio.Event()

    async def sync_payment(self, payment_id: int) -> None:
        self.calls.append(("sync", payment_id))
        self.sync_started.set()
        if self.sync_gate is not None:
            await self.sync_gate.wait()
        if self.sync_error is not None:
            raise self.sync_error

    async def get_payment(self, payment_id: int) -> PaymentStatusSnapshot:
        self.calls.append(("get", payment_id))
        self.fetch_started.set()
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.snapshot.model_copy(update={"payment_id": payment_id})


@pytest.fixture
def store():
    return InMemoryIntentStore()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def controller(store, backend):
    return ReconciliationController(store, backend)
