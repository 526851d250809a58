# api/server.py
# ============================================================================
# PAYMENT RETURN RECONCILER — FASTAPI SERVER
# ============================================================================
# Exposes the payment-return reconciliation to the presentation layer:
# - POST /api/checkout/intent   record the pending attempt at checkout
# - GET  /payment/return        reconcile one redirect visit
# - GET  /health, /ready, /live
#
# Intents are kept per client (X-Client-Id header or checkout_client cookie).
# ============================================================================

import re
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
import structlog
import uvicorn

from api.presenter import ReconciliationView, present
from config import ReconcilerConfig, configure_logging
from pipeline.reconciliation import ReconciliationController
from schemas.payment_definitions import utcnow
from services.payment_api import IPaymentBackend, PaymentApiClient, PaymentApiConfig
from storage.intent_store import IIntentStore, build_intent_store

VERSION = "1.0.0"

config = ReconcilerConfig.from_env()
configure_logging(config)

logger = structlog.get_logger().bind(component="server")


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("server_starting", version=VERSION, env=config.env)

    store = build_intent_store(config)
    api = PaymentApiClient(PaymentApiConfig.from_settings(config))
    await api.initialize()

    app.state.intent_store = store
    app.state.payment_api = api

    yield

    logger.info("server_shutting_down")
    await api.close()


# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="Payment Return Reconciler",
    description="Confirms gateway payments against the payment backend after redirect",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

START_TIME = utcnow()


# ============================================================================
# DEPENDENCIES
# ============================================================================

CLIENT_ID_HEADER = "X-Client-Id"
CLIENT_COOKIE = "checkout_client"
CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


def get_client_id(request: Request, response: Response) -> str:
    """
    Identify the buyer whose intent slot this request touches.

    An explicit header wins over the cookie; a missing or malformed id gets
    a fresh one, returned to the browser as a cookie.
    """
    for candidate in (
        request.headers.get(CLIENT_ID_HEADER),
        request.cookies.get(CLIENT_COOKIE),
    ):
        if candidate and CLIENT_ID_PATTERN.match(candidate):
            return candidate

    client_id = uuid4().hex
    response.set_cookie(CLIENT_COOKIE, client_id, httponly=True, samesite="lax")
    return client_id


def get_base_intent_store(request: Request) -> IIntentStore:
    return request.app.state.intent_store


def get_payment_backend(request: Request) -> IPaymentBackend:
    return request.app.state.payment_api


def get_intent_store(
    base: IIntentStore = Depends(get_base_intent_store),
    client_id: str = Depends(get_client_id),
) -> IIntentStore:
    return base.scoped(client_id)


def get_controller(
    store: IIntentStore = Depends(get_intent_store),
    backend: IPaymentBackend = Depends(get_payment_backend),
) -> ReconciliationController:
    return ReconciliationController(store, backend)


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class IntentRequest(BaseModel):
    """Pending attempt recorded when the buyer is sent to the gateway."""
    model_config = ConfigDict(populate_by_name=True)

    payment_id: int = Field(..., alias="paymentId", gt=0)
    order_id: Optional[int] = Field(default=None, alias="orderId", gt=0)


class IntentResponse(BaseModel):
    payment_id: int
    order_id: Optional[int] = None
    created_at: datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    intent_store: str


# ============================================================================
# MIDDLEWARE
# ============================================================================

@app.middleware("http")
async def add_timing_header(request: Request, call_next):
    """Add response timing and request ID headers"""
    request_id = str(uuid4())[:8]
    start = time.perf_counter()

    with structlog.contextvars.bound_contextvars(request_id=request_id):
        response = await call_next(request)

    duration = (time.perf_counter() - start) * 1000
    response.headers["X-Response-Time-Ms"] = f"{duration:.2f}"
    response.headers["X-Request-ID"] = request_id

    return response


# ============================================================================
# HEALTH ENDPOINTS
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    uptime = (utcnow() - START_TIME).total_seconds()
    return HealthResponse(
        status="healthy",
        version=VERSION,
        uptime_seconds=uptime,
        intent_store=config.intent_store_backend,
    )


@app.get("/ready")
async def readiness_check():
    return {"ready": True}


@app.get("/live")
async def liveness_check():
    return {"live": True}


# ============================================================================
# CHECKOUT + PAYMENT RETURN
# ============================================================================

@app.post("/api/checkout/intent", response_model=IntentResponse, status_code=201)
async def record_intent(
    request: IntentRequest,
    store: IIntentStore = Depends(get_intent_store),
):
    """Record the payment attempt before redirecting to the gateway."""
    record = store.record_checkout(request.payment_id, request.order_id)
    if record is None:
        raise HTTPException(status_code=400, detail="Invalid payment attempt")

    logger.info("intent_recorded", payment_id=record.payment_id, order_id=record.order_id)
    return IntentResponse(
        payment_id=record.payment_id,
        order_id=record.order_id,
        created_at=record.created_at,
    )


@app.get("/payment/return", response_model=ReconciliationView)
async def payment_return(
    payment_id: Optional[str] = Query(default=None, alias="paymentId"),
    controller: ReconciliationController = Depends(get_controller),
):
    """
    Reconcile one gateway redirect.

    Every outcome is a 200 with a view model; an unconfirmed payment still
    carries navigation links.
    """
    state = await controller.reconcile({"paymentId": payment_id})
    return present(state, config.frontend_url)


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "api.server:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="info",
    )
