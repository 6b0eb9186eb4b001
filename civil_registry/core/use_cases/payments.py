"""
Use Case: Payments

  - create a checkout session for one of the caller's requests
  - poll a session (client-initiated reconciliation)
  - receive the processor webhook (push reconciliation)

Both reconciliation paths go through `reconcile_paid`, which is
idempotent: replaying a completed session changes nothing.
"""

import logging

from civil_registry.core.entities.status import (
    DocumentRequestStatus, PaymentStatus, parse_payment_status,
)
from civil_registry.core.errors import NotFound, PaymentGatewayError, ValidationError
from civil_registry.core.interfaces.payment_gateway import IPaymentGateway
from civil_registry.core.validation import require_fields

logger = logging.getLogger(__name__)

COMPLETED_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
FAILED_EVENTS = ("checkout.session.expired", "checkout.session.async_payment_failed")


def reconcile_paid(payment) -> bool:
    """Mark a payment COMPLETED. Returns False when it already was."""
    if parse_payment_status(payment.status) == PaymentStatus.COMPLETED:
        return False
    payment.status = PaymentStatus.COMPLETED.value
    if payment.document_request is not None:
        payment.document_request.status = DocumentRequestStatus.PAID.value
    logger.info(f"Payment {payment.id} completed (session {payment.external_session_id})")
    return True


def reconcile_failed(payment) -> bool:
    if parse_payment_status(payment.status) != PaymentStatus.PENDING:
        return False
    payment.status = PaymentStatus.FAILED.value
    logger.info(f"Payment {payment.id} failed (session {payment.external_session_id})")
    return True


class CreatePaymentSessionUseCase:
    """
    Use Case: open a checkout session for a request owned by the caller.

    The local Payment row is created (or re-pointed to the new session)
    with status PENDING.
    """

    def __init__(self, store, gateway: IPaymentGateway, currency: str, default_amount: float):
        self._store = store
        self._gateway = gateway
        self._currency = currency
        self._default_amount = default_amount

    def execute(self, citizen_id: str, payload: dict):
        require_fields(payload, ("requestId",))
        request_id = payload["requestId"]
        owner_kind, owner = self._find_owned_request(citizen_id, request_id)

        payment = owner.payment
        if payment is not None and parse_payment_status(payment.status) == PaymentStatus.COMPLETED:
            raise ValidationError("requestId", message="Cette demande a déjà été payée")

        amount = self._resolve_amount(payload.get("amount"), owner_kind, owner)
        description = {
            "birth_declaration": "Déclaration de naissance",
            "birth_certificate": "Acte de naissance",
        }.get(owner_kind) or f"Demande de document : {owner.type}"

        metadata = {"requestId": request_id, "userId": citizen_id, "requestType": owner_kind}
        try:
            session = self._gateway.create_checkout_session(
                amount=amount,
                currency=self._currency,
                description=description,
                metadata=metadata,
            )
        except PaymentGatewayError:
            raise
        except Exception as e:
            logger.exception(f"Checkout session creation failed for request {request_id}")
            raise PaymentGatewayError() from e

        if payment is None:
            payment = self._store.payments.add(
                amount=amount,
                status=PaymentStatus.PENDING.value,
                payment_method=payload.get("paymentMethod"),
                external_session_id=session.session_id,
                **{f"{owner_kind}_id": owner.id},
            )
        else:
            payment.amount = amount
            payment.status = PaymentStatus.PENDING.value
            payment.payment_method = payload.get("paymentMethod") or payment.payment_method
            payment.external_session_id = session.session_id
            self._store.flush()

        logger.info(f"Checkout session {session.session_id} opened for {owner_kind} {request_id}")
        return payment, session

    def _find_owned_request(self, citizen_id: str, request_id: str):
        for kind, repo in (
            ("birth_declaration", self._store.declarations),
            ("birth_certificate", self._store.certificates),
            ("document_request", self._store.document_requests),
        ):
            record = repo.get(request_id)
            if record is not None:
                if record.citizen_id != citizen_id:
                    break
                return kind, record
        raise NotFound("Demande non trouvée")

    def _resolve_amount(self, requested, owner_kind: str, owner) -> float:
        if requested not in (None, ""):
            try:
                amount = float(requested)
            except (TypeError, ValueError) as exc:
                raise ValidationError("amount", message="Le champ amount doit être un nombre") from exc
        elif owner.payment is not None:
            amount = owner.payment.amount
        elif owner_kind == "document_request":
            amount = owner.amount
        else:
            amount = self._default_amount
        if not amount or amount <= 0:
            raise ValidationError("amount", message="Le montant doit être positif")
        return amount


class CheckPaymentStatusUseCase:
    """Use Case: client polls a checkout session. Pending sessions cause no write."""

    def __init__(self, store, gateway: IPaymentGateway):
        self._store = store
        self._gateway = gateway

    def execute(self, citizen_id: str, session_id: str | None) -> dict:
        if not session_id:
            raise ValidationError("session_id", message="Session ID manquant")

        payment = self._store.payments.get_by_session(session_id)
        owner = payment.owner if payment is not None else None
        if owner is None or owner.citizen_id != citizen_id:
            raise NotFound("Paiement non trouvé")

        if parse_payment_status(payment.status) == PaymentStatus.COMPLETED:
            return {"status": "completed", "message": "Paiement traité avec succès"}

        try:
            remote = self._gateway.retrieve_checkout_session(session_id)
        except PaymentGatewayError:
            raise
        except Exception as e:
            logger.exception(f"Could not retrieve checkout session {session_id}")
            raise PaymentGatewayError() from e

        if remote.paid:
            reconcile_paid(payment)
            self._store.flush()
            return {"status": "completed", "message": "Paiement traité avec succès"}
        return {"status": "pending", "message": "Paiement en cours de traitement"}


class HandlePaymentWebhookUseCase:
    """Use Case: verified processor push. Safe to receive the same event many times."""

    def __init__(self, store, gateway: IPaymentGateway):
        self._store = store
        self._gateway = gateway

    def execute(self, payload: bytes, signature: str | None) -> dict:
        try:
            event = self._gateway.parse_event(payload, signature)
        except ValueError as e:
            logger.warning(f"Rejected webhook delivery: {e}")
            raise ValidationError("signature", message="Signature invalide") from e

        if event.event_type not in COMPLETED_EVENTS + FAILED_EVENTS or not event.session_id:
            logger.debug(f"Ignoring webhook event {event.event_type}")
            return {"received": True, "updated": False}

        payment = self._store.payments.get_by_session(event.session_id)
        if payment is None:
            logger.warning(f"Webhook for unknown session {event.session_id}")
            return {"received": True, "updated": False}

        if event.event_type in COMPLETED_EVENTS and event.paid:
            updated = reconcile_paid(payment)
        elif event.event_type in FAILED_EVENTS:
            updated = reconcile_failed(payment)
        else:
            updated = False
        self._store.flush()
        return {"received": True, "updated": updated}
