"""
Use Case: Approve Declaration

A paid, pending birth declaration becomes a registered birth:

  1. a COMPLETED birth certificate is issued (new record number,
     new tracking number, declaration documents copied as files)
  2. the declaration moves to COMPLETED, stamped with the agent
  3. the citizen gets two notifications

All of it happens in the caller's transaction.
"""

import logging
from dataclasses import dataclass

from civil_registry.core.entities.status import (
    PaymentStatus, RequestStatus, parse_payment_status, parse_request_status,
)
from civil_registry.core.errors import NotFound, ValidationError
from civil_registry.core.identifiers import acte_number
from civil_registry.core.use_cases.submit_request import allocate_tracking_number
from civil_registry.core.use_cases.notifications import Notifier
from civil_registry.core.use_cases.transition_status import (
    CERTIFICATE_NOTIFICATION, DECLARATION_NOTIFICATION,
)

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    declaration: object
    birth_certificate: object


class ApproveDeclarationUseCase:
    """Use Case: agent approval of a birth declaration."""

    def __init__(self, store):
        self._store = store
        self._notifier = Notifier(store)

    def execute(self, declaration_id: str, agent_id: str) -> ApprovalResult:
        declaration = self._store.declarations.get(declaration_id)
        if declaration is None:
            raise NotFound("Déclaration non trouvée")
        if parse_request_status(declaration.status) != RequestStatus.PENDING:
            raise ValidationError("status", message="Cette déclaration a déjà été traitée")
        payment = declaration.payment
        if payment is None or parse_payment_status(payment.status) != PaymentStatus.COMPLETED:
            raise ValidationError("payment", message="Le paiement n'a pas été effectué")

        number = acte_number()
        child = declaration.child_name
        certificate = self._store.certificates.add(
            files=[{"type": doc.type, "url": doc.url, "public_id": doc.public_id} for doc in declaration.documents],
            citizen_id=declaration.citizen_id,
            full_name=child,
            birth_date=declaration.birth_date,
            birth_place=declaration.birth_place,
            father_full_name=f"{declaration.father_first_name} {declaration.father_last_name or ''}".strip(),
            mother_full_name=f"{declaration.mother_first_name} {declaration.mother_last_name or ''}".strip(),
            acte_number=number,
            tracking_number=allocate_tracking_number(self._store),
            status=RequestStatus.COMPLETED.value,
            agent_id=agent_id,
        )

        declaration.status = RequestStatus.COMPLETED.value
        declaration.agent_id = agent_id

        self._notifier.notify(
            citizen_id=declaration.citizen_id,
            title="Votre déclaration de naissance a été approuvée",
            content=(
                f"Votre déclaration de naissance pour {child} a été approuvée. "
                f"Votre acte de naissance ({number}) est maintenant disponible."
            ),
            type=DECLARATION_NOTIFICATION,
            reference_id=declaration.id,
        )
        self._notifier.notify(
            citizen_id=declaration.citizen_id,
            title="Votre acte de naissance est disponible",
            content=f"Votre acte de naissance ({number}) pour {child} est maintenant disponible.",
            type=CERTIFICATE_NOTIFICATION,
            reference_id=certificate.id,
        )
        self._store.flush()
        logger.info(f"Declaration {declaration.id} approved by agent {agent_id}: certificate {certificate.id} ({number})")
        return ApprovalResult(declaration=declaration, birth_certificate=certificate)
