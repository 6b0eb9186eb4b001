"""
Use Case: Submit Request

Citizen-side creation of birth declarations, birth certificate requests
and generic document requests. Validation runs before anything is
written; nested rows (documents, payment) go in through the same store
and therefore the same transaction.

No idempotency key: two identical submissions create two records.
"""

import logging

from civil_registry.core.entities.status import DocumentRequestStatus, RequestStatus
from civil_registry.core.errors import ValidationError
from civil_registry.core.identifiers import tracking_number
from civil_registry.core.validation import is_blank, parse_date, require_fields, split_full_name

logger = logging.getLogger(__name__)

DECLARATION_REQUIRED_FIELDS = (
    "childName",
    "birthDate",
    "birthTime",
    "birthPlace",
    "gender",
    "fatherName",
    "motherName",
    "receptionMode",
)

CERTIFICATE_REQUIRED_FIELDS = (
    "fullName",
    "birthDate",
    "birthPlace",
    "fatherName",
    "motherName",
    "reason",
)

DOCUMENT_REQUEST_REQUIRED_FIELDS = ("type", "deliveryMode")

DEFAULT_DOCUMENT_TYPE = "DOCUMENT"
MAX_TRACKING_ATTEMPTS = 5


def allocate_tracking_number(store) -> str:
    """A tracking number no certificate uses yet."""
    for _ in range(MAX_TRACKING_ATTEMPTS):
        candidate = tracking_number()
        if not store.certificates.tracking_number_exists(candidate):
            return candidate
    raise RuntimeError("Could not allocate a unique tracking number")


def _nested_documents(raw) -> list[dict]:
    """Normalise the optional `documents[]` list of {type, url} descriptors."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("documents", message="Le champ documents doit être une liste")
    documents = []
    for item in raw:
        if not isinstance(item, dict) or is_blank(item.get("url")):
            raise ValidationError("documents", message="Chaque document doit avoir une url")
        documents.append({
            "type": item.get("type") or DEFAULT_DOCUMENT_TYPE,
            "url": item["url"],
            "public_id": item.get("publicId"),
        })
    return documents


class SubmitBirthDeclarationUseCase:
    """
    Use Case: a citizen declares a birth.

    Creates the declaration (PENDING), its attached documents and a
    PENDING payment for the declaration fee.
    """

    def __init__(self, store, declaration_fee: float):
        self._store = store
        self._fee = declaration_fee

    def execute(self, citizen_id: str, payload: dict):
        require_fields(payload, DECLARATION_REQUIRED_FIELDS)
        birth_date = parse_date(payload["birthDate"], "birthDate")
        documents = _nested_documents(payload.get("documents"))

        child_first, child_last = split_full_name(payload["childName"])
        father_first, father_last = split_full_name(payload["fatherName"])
        mother_first, mother_last = split_full_name(payload["motherName"])

        declaration = self._store.declarations.add(
            documents=documents,
            payment_amount=self._fee,
            citizen_id=citizen_id,
            child_first_name=child_first,
            child_last_name=child_last,
            child_gender=payload["gender"],
            birth_date=birth_date,
            birth_time=str(payload["birthTime"]),
            birth_place=payload["birthPlace"],
            father_first_name=father_first,
            father_last_name=father_last,
            mother_first_name=mother_first,
            mother_last_name=mother_last,
            reception_mode=payload["receptionMode"],
            delivery_address=payload.get("deliveryAddress"),
            status=RequestStatus.PENDING.value,
        )
        logger.info(
            f"Birth declaration {declaration.id} submitted by citizen {citizen_id} "
            f"({len(documents)} document(s))"
        )
        return declaration


class SubmitBirthCertificateUseCase:
    """Use Case: a citizen asks for a copy of an existing birth record."""

    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str, payload: dict):
        require_fields(payload, CERTIFICATE_REQUIRED_FIELDS)
        birth_date = parse_date(payload["birthDate"], "birthDate")

        certificate = self._store.certificates.add(
            citizen_id=citizen_id,
            full_name=payload["fullName"],
            birth_date=birth_date,
            birth_place=payload["birthPlace"],
            father_full_name=payload["fatherName"],
            mother_full_name=payload["motherName"],
            acte_number=payload.get("acteNumber") or None,
            tracking_number=allocate_tracking_number(self._store),
            comment=payload["reason"],
            status=RequestStatus.PENDING.value,
        )
        logger.info(f"Birth certificate request {certificate.id} submitted by citizen {citizen_id}")
        return certificate


class CreateDocumentRequestUseCase:
    """Use Case: generic paid document request (type, delivery mode, amount)."""

    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str, payload: dict):
        require_fields(payload, DOCUMENT_REQUEST_REQUIRED_FIELDS)
        amount = payload.get("amount", 0)
        try:
            amount = float(amount or 0)
        except (TypeError, ValueError) as exc:
            raise ValidationError("amount", message="Le champ amount doit être un nombre") from exc
        if amount < 0:
            raise ValidationError("amount", message="Le champ amount doit être positif")

        request = self._store.document_requests.add(
            citizen_id=citizen_id,
            type=payload["type"],
            delivery_mode=payload["deliveryMode"],
            delivery_address=payload.get("deliveryAddress"),
            amount=amount,
            status=DocumentRequestStatus.PENDING.value,
        )
        logger.info(f"Document request {request.id} ({request.type}) created by citizen {citizen_id}")
        return request
