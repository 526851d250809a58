# config.py
# ============================================================================
# PAYMENT RETURN RECONCILER — CONFIGURATION
# ============================================================================
# Environment-driven settings and structured logging setup
# ============================================================================

import logging
import os
from dataclasses import dataclass, field
from typing import List

import structlog


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass
class ReconcilerConfig:
    """Configuration for the reconciliation service."""
    payment_api_url: str = "http://localhost:8080"
    payment_api_token: str = ""
    payment_api_timeout: float = 10.0

    intent_store_backend: str = "file"  # "file" | "memory"
    intent_store_path: str = ".checkout/last-payment-attempt.json"
    intent_max_age_minutes: int = 30  # 0 disables expiry

    frontend_url: str = "http://localhost:3000"

    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "development"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def debug(self) -> bool:
        return self.env == "development"

    @classmethod
    def from_env(cls) -> "ReconcilerConfig":
        backend = os.getenv("INTENT_STORE_BACKEND", "file").strip().lower()
        if backend not in ("file", "memory"):
            raise ValueError(f"Unsupported INTENT_STORE_BACKEND: {backend}")

        max_age = int(os.getenv("INTENT_MAX_AGE_MINUTES", "30"))
        if max_age < 0:
            raise ValueError("INTENT_MAX_AGE_MINUTES must not be negative")

        return cls(
            payment_api_url=os.getenv("PAYMENT_API_URL", "http://localhost:8080"),
            payment_api_token=os.getenv("PAYMENT_API_TOKEN", ""),
            payment_api_timeout=float(os.getenv("PAYMENT_API_TIMEOUT", "10.0")),
            intent_store_backend=backend,
            intent_store_path=os.getenv(
                "INTENT_STORE_PATH", ".checkout/last-payment-attempt.json"
            ),
            intent_max_age_minutes=max_age,
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            env=os.getenv("ENV", "development"),
            cors_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

def configure_logging(config: ReconcilerConfig) -> None:
    """Configure structlog: console output in development, JSON elsewhere."""
    level = logging.getLevelName(config.log_level)
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.dev.ConsoleRenderer(colors=True)
        if config.debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
