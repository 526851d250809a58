# api/__init__.py
from api.presenter import (
    NavigationLinks,
    ReconciliationView,
    format_price,
    present,
)

__all__ = [
    "NavigationLinks",
    "ReconciliationView",
    "format_price",
    "present",
]
