# storage/intent_store.py
# ============================================================================
# PAYMENT RETURN RECONCILER — INTENT STORE
# ============================================================================
# One slot per client for the pending payment intent created at checkout.
# Survives a reload until the reconciliation flow clears it.
#
# FAILURE HANDLING:
# - Write/clear failures are logged and swallowed
# - Corrupted or expired records load as None, never raise
# ============================================================================

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from schemas.payment_definitions import PaymentIntentRecord, utcnow

logger = structlog.get_logger().bind(component="intent_store")

STORAGE_KEY = "checkout:last-payment-attempt"


# =============================================================================
# INTERFACE
# =============================================================================

class IIntentStore(ABC):
    """
    Key-scoped store holding at most one PaymentIntentRecord.

    Writes are last-write-wins. Subclasses implement the raw slot access;
    validation and expiry live here so every medium behaves the same.
    """

    def __init__(self, key: str = STORAGE_KEY, max_age: Optional[timedelta] = None):
        self.key = key
        self.max_age = max_age

    def scoped(self, client_id: str) -> "IIntentStore":
        """Same medium, slot keyed to one client."""
        scoped = copy.copy(self)
        scoped.key = f"{self.key}:{client_id}"
        return scoped

    @abstractmethod
    def _write(self, payload: str) -> None:
        pass

    @abstractmethod
    def _read(self) -> Optional[str]:
        pass

    @abstractmethod
    def _delete(self) -> None:
        pass

    def save(self, record: PaymentIntentRecord) -> None:
        try:
            self._write(record.model_dump_json(by_alias=True))
        except Exception as e:
            logger.warning("intent_store_write_failed", key=self.key, error=str(e))
            return
        logger.debug("intent_saved", key=self.key, payment_id=record.payment_id)

    def load(self) -> Optional[PaymentIntentRecord]:
        try:
            raw = self._read()
        except Exception as e:
            logger.warning("intent_store_read_failed", key=self.key, error=str(e))
            return None

        if not raw:
            return None

        try:
            record = PaymentIntentRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("intent_store_corrupted", key=self.key, errors=e.error_count())
            return None

        if record.is_expired(self.max_age):
            logger.info(
                "intent_expired",
                key=self.key,
                payment_id=record.payment_id,
                age_seconds=int(record.age().total_seconds()),
            )
            return None

        return record

    def clear(self) -> None:
        try:
            self._delete()
        except Exception as e:
            logger.warning("intent_store_clear_failed", key=self.key, error=str(e))
            return
        logger.debug("intent_cleared", key=self.key)

    def record_checkout(self, payment_id: Any, order_id: Optional[int] = None) -> Optional[PaymentIntentRecord]:
        """Persist the attempt the buyer is about to pay on the gateway."""
        if not payment_id:
            return None

        try:
            record = PaymentIntentRecord(
                payment_id=payment_id,
                order_id=order_id,
                created_at=utcnow(),
            )
        except ValidationError as e:
            logger.warning("intent_rejected", key=self.key, errors=e.error_count())
            return None

        self.save(record)
        return record


# =============================================================================
# IMPLEMENTATIONS
# =============================================================================

class InMemoryIntentStore(IIntentStore):
    """Process-wide in-memory slot. Lost on restart."""

    def __init__(self, key: str = STORAGE_KEY, max_age: Optional[timedelta] = None):
        super().__init__(key, max_age)
        self._slots: dict[str, str] = {}

    def _write(self, payload: str) -> None:
        self._slots[self.key] = payload

    def _read(self) -> Optional[str]:
        return self._slots.get(self.key)

    def _delete(self) -> None:
        self._slots.pop(self.key, None)


class JsonFileIntentStore(IIntentStore):
    """
    Durable slot backed by a JSON file.

    The file holds {key: record}; writes go through a temp file and
    os.replace so a reader never sees a half-written document.
    """

    def __init__(
        self,
        path: Union[str, Path],
        key: str = STORAGE_KEY,
        max_age: Optional[timedelta] = None,
    ):
        super().__init__(key, max_age)
        self.path = Path(path)

    def _load_document(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("intent_file_unreadable", path=str(self.path))
            return {}
        return document if isinstance(document, dict) else {}

    def _dump_document(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".intent-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _write(self, payload: str) -> None:
        document = self._load_document()
        document[self.key] = json.loads(payload)
        self._dump_document(document)

    def _read(self) -> Optional[str]:
        entry = self._load_document().get(self.key)
        if entry is None:
            return None
        return json.dumps(entry)

    def _delete(self) -> None:
        document = self._load_document()
        if self.key not in document:
            return
        del document[self.key]
        self._dump_document(document)


# =============================================================================
# FACTORY
# =============================================================================

def build_intent_store(config) -> IIntentStore:
    """Create the store selected by configuration."""
    max_age = (
        timedelta(minutes=config.intent_max_age_minutes)
        if config.intent_max_age_minutes > 0
        else None
    )
    if config.intent_store_backend == "memory":
        return InMemoryIntentStore(max_age=max_age)
    return JsonFileIntentStore(config.intent_store_path, max_age=max_age)
