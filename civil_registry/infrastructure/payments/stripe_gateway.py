"""
Adapter: Stripe Payment Gateway

Concrete IPaymentGateway over the Stripe SDK: hosted Checkout sessions
and verification of `Stripe-Signature` webhook headers.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from civil_registry.core.errors import PaymentGatewayError
from civil_registry.core.interfaces.payment_gateway import (
    CheckoutSession, CheckoutStatus, IPaymentGateway, PaymentEvent,
)

logger = logging.getLogger(__name__)

# Currencies Stripe expects in major units (no x100).
ZERO_DECIMAL_CURRENCIES = frozenset({
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
})


def to_minor_units(amount: float, currency: str) -> int:
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return int(round(amount))
    return int(round(amount * 100))


def _plain(metadata: Any) -> dict[str, str]:
    """Stripe metadata (StripeObject or dict) as a plain str -> str dict."""
    if not metadata:
        return {}
    if hasattr(metadata, "to_dict"):
        metadata = metadata.to_dict()
    return {str(k): str(v) for k, v in dict(metadata).items()}


class StripePaymentGateway(IPaymentGateway):
    """Card checkout through Stripe-hosted pages."""

    def __init__(
        self,
        secret_key: str,
        app_url: str,
        *,
        webhook_secret: str = "",
        webhook_tolerance_seconds: int = 300,
    ) -> None:
        if not secret_key:
            raise ValueError("Stripe secret key is not configured")
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._tolerance = webhook_tolerance_seconds
        self._success_url = f"{app_url.rstrip('/')}/citizen/payment/success?session_id={{CHECKOUT_SESSION_ID}}"
        self._cancel_url = f"{app_url.rstrip('/')}/citizen/payment/cancel"

    def create_checkout_session(
        self,
        amount: float,
        currency: str,
        description: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "quantity": 1,
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": to_minor_units(amount, currency),
                        "product_data": {"name": description},
                    },
                }],
                metadata={key: str(value) for key, value in metadata.items()},
                success_url=self._success_url,
                cancel_url=self._cancel_url,
            )
        except stripe.StripeError as exc:
            logger.error(f"Stripe checkout session creation failed: {exc}")
            raise PaymentGatewayError() from exc

        logger.info(f"Stripe checkout session {session.id} created")
        return CheckoutSession(session_id=session.id, url=session.url)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutStatus:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self._secret_key)
        except stripe.StripeError as exc:
            logger.error(f"Stripe checkout session {session_id} lookup failed: {exc}")
            raise PaymentGatewayError() from exc

        return CheckoutStatus(
            session_id=session.id,
            paid=session.payment_status == "paid",
            amount_total=session.amount_total,
            metadata=_plain(session.metadata),
        )

    def parse_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        """Verify the `Stripe-Signature` header, then decode the event. Raises ValueError when it does not verify."""
        if not self._webhook_secret:
            raise ValueError("Webhook secret is not configured")
        if not signature:
            raise ValueError("Missing Stripe-Signature header")

        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(body, signature, self._webhook_secret, self._tolerance)
        except stripe.SignatureVerificationError as exc:
            raise ValueError(str(exc)) from exc

        # Decoded as plain JSON so metadata stays a dict.
        try:
            event = json.loads(body)
        except ValueError as exc:
            raise ValueError("Webhook payload is not valid JSON") from exc

        obj = (event.get("data") or {}).get("object") or {}
        return PaymentEvent(
            event_type=event.get("type", ""),
            session_id=obj.get("id"),
            paid=obj.get("payment_status") == "paid",
            metadata=_plain(obj.get("metadata")),
        )
