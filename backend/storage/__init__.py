# storage/__init__.py
# ============================================================================
# PAYMENT RETURN RECONCILER — STORAGE MODULE
# ============================================================================
# Pending payment intent persistence
# ============================================================================

from storage.intent_store import (
    IIntentStore,
    InMemoryIntentStore,
    JsonFileIntentStore,
    STORAGE_KEY,
    build_intent_store,
)

__all__ = [
    "IIntentStore",
    "InMemoryIntentStore",
    "JsonFileIntentStore",
    "STORAGE_KEY",
    "build_intent_store",
]
