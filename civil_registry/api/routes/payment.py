"""
Routes under /payment: checkout sessions, status polling and the processor webhook.
"""

from fastapi import APIRouter, Body, Depends, Header, Query

from civil_registry.api.dependencies import (
    get_cache, get_payment_gateway, get_store, invalidate_views, raw_body, require,
)
from civil_registry.api.schemas.responses import CheckoutSessionResponse, ok
from civil_registry.config.settings import get_settings
from civil_registry.core.entities.principal import Principal
from civil_registry.core.use_cases.payments import (
    CheckPaymentStatusUseCase, CreatePaymentSessionUseCase, HandlePaymentWebhookUseCase,
)

router = APIRouter(prefix="/payment")


@router.post("/create-session")
def create_session(
    principal: Principal = Depends(require("payment", "create")),
    payload: dict | None = Body(default=None),
    store=Depends(get_store),
    gateway=Depends(get_payment_gateway),
):
    """Open a checkout session for one of the caller's requests."""
    settings = get_settings()
    use_case = CreatePaymentSessionUseCase(
        store, gateway, currency=settings.payment_currency, default_amount=settings.declaration_fee,
    )
    payment, session = use_case.execute(principal.user_id, payload or {})
    return ok(CheckoutSessionResponse(session_id=session.session_id, url=session.url, payment_id=payment.id))


@router.get("/status")
def payment_status(
    principal: Principal = Depends(require("payment", "read")),
    session_id: str | None = Query(default=None),
    store=Depends(get_store),
    gateway=Depends(get_payment_gateway),
    cache=Depends(get_cache),
):
    """Poll a checkout session. Reconciles the local payment once the processor reports it paid."""
    result = CheckPaymentStatusUseCase(store, gateway).execute(principal.user_id, session_id)
    if result["status"] == "completed":
        invalidate_views(store, cache)
    return ok({"status": result["status"]}, message=result["message"])


@router.post("/webhook")
def payment_webhook(
    payload: bytes = Depends(raw_body),
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    store=Depends(get_store),
    gateway=Depends(get_payment_gateway),
    cache=Depends(get_cache),
):
    """Processor push. Authenticated by its signature header, not by a session."""
    result = HandlePaymentWebhookUseCase(store, gateway).execute(payload, stripe_signature)
    if result["updated"]:
        invalidate_views(store, cache)
    return ok(result)
