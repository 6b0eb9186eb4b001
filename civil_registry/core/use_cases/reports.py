"""
Use Case: Reports

Read-only views over the store: merged request lists, dashboard
counters and the payments ledger (list + CSV export). Nothing here
writes. Legacy status literals are normalised on the way out.
"""

import csv
import io
import logging

from civil_registry.core.clock import days_ago, months_ago, start_of_day, utcnow
from civil_registry.core.entities.status import (
    AccountStatus, PaymentStatus, RequestStatus, Role, normalize_payment_status,
    normalize_request_status, parse_payment_status, parse_request_status,
)
from civil_registry.core.errors import InvalidStatus, ValidationError

logger = logging.getLogger(__name__)

BIRTH_DECLARATION = "birth_declaration"
BIRTH_CERTIFICATE = "birth_certificate"

DATE_RANGES = ("today", "week", "month", "year", "all")

CSV_FIELDS = (
    "ID",
    "Nom du citoyen",
    "Email du citoyen",
    "Type de document",
    "Nom du document",
    "Montant",
    "Statut",
    "Date de création",
)

PAYMENT_STATUS_LABELS = {
    PaymentStatus.COMPLETED: "Payé",
    PaymentStatus.PENDING: "En attente",
    PaymentStatus.FAILED: "Échoué",
}


def citizen_summary(citizen) -> dict:
    if citizen is None:
        return {"name": "N/A", "email": None}
    return {"name": citizen.name or "N/A", "email": citizen.email}


def declaration_row(declaration) -> dict:
    return {
        "id": declaration.id,
        "type": BIRTH_DECLARATION,
        "childFirstName": declaration.child_first_name,
        "childLastName": declaration.child_last_name,
        "birthDate": declaration.birth_date,
        "birthPlace": declaration.birth_place,
        "status": normalize_request_status(declaration.status),
        "createdAt": declaration.created_at,
        "citizen": citizen_summary(declaration.citizen),
    }


def certificate_row(certificate) -> dict:
    return {
        "id": certificate.id,
        "type": BIRTH_CERTIFICATE,
        "fullName": certificate.full_name,
        "birthDate": certificate.birth_date,
        "birthPlace": certificate.birth_place,
        "trackingNumber": certificate.tracking_number,
        "status": normalize_request_status(certificate.status),
        "createdAt": certificate.created_at,
        "citizen": citizen_summary(certificate.citizen),
    }


def _newest_first(rows: list[dict]) -> list[dict]:
    return sorted(rows, key=lambda row: row["createdAt"], reverse=True)


def range_start(date_range: str | None):
    """Lower bound for a `today|week|month|year|all` filter (None = no bound)."""
    if not date_range or date_range == "all":
        return None
    now = utcnow()
    if date_range == "today":
        return start_of_day(now)
    if date_range == "week":
        return days_ago(now, 7)
    if date_range == "month":
        return months_ago(now, 1)
    if date_range == "year":
        return months_ago(now, 12)
    raise ValidationError("dateRange", message=f"Période invalide : {date_range}")


class AgentRequestListUseCase:
    """Declarations and certificates in one list, newest first. REJECTED and DELETED are hidden."""

    def __init__(self, store):
        self._store = store

    def execute(self) -> list[dict]:
        rows = [declaration_row(d) for d in self._store.declarations.list_all()]
        rows += [certificate_row(c) for c in self._store.certificates.list_all()]
        return _newest_first(rows)


class CitizenRequestListUseCase:
    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str) -> list[dict]:
        rows = [declaration_row(d) for d in self._store.declarations.for_citizen(citizen_id)]
        rows += [certificate_row(c) for c in self._store.certificates.for_citizen(citizen_id)]
        return _newest_first(rows)


class CitizenStatsUseCase:
    """Dashboard counters for one citizen."""

    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str) -> dict:
        certificates = self._store.certificates.for_citizen(citizen_id)
        declarations = self._store.declarations.for_citizen(citizen_id)
        requests = (
            [(BIRTH_CERTIFICATE, c) for c in certificates]
            + [(BIRTH_DECLARATION, d) for d in declarations]
        )
        last_month = start_of_day(months_ago(utcnow(), 1))
        statuses = [parse_request_status(record.status) for _, record in requests]

        recent = sorted(requests, key=lambda item: item[1].created_at, reverse=True)[:5]
        return {
            "totalRequests": len(requests),
            "lastMonthRequests": sum(1 for _, r in requests if r.created_at >= last_month),
            "pendingRequests": statuses.count(RequestStatus.PENDING),
            "validatedRequests": statuses.count(RequestStatus.COMPLETED),
            "rejectedRequests": statuses.count(RequestStatus.REJECTED),
            "recentRequests": [
                {
                    "id": record.id,
                    "documentType": kind,
                    "status": normalize_request_status(record.status),
                    "createdAt": record.created_at,
                    "trackingNumber": getattr(record, "tracking_number", None),
                    "files": [
                        {"type": f.type, "url": f.url}
                        for f in (record.files if kind == BIRTH_CERTIFICATE else record.documents)
                    ],
                }
                for kind, record in recent
            ],
        }


class AgentStatsUseCase:
    """Certificate workload counters, five most recent, daily volume over the last week."""

    def __init__(self, store):
        self._store = store

    def execute(self) -> dict:
        certificates = self._store.certificates
        now = utcnow()
        total = certificates.count()
        pending = certificates.count(RequestStatus.PENDING)
        validated = certificates.count(RequestStatus.COMPLETED)
        rejected = certificates.count(RequestStatus.REJECTED)
        return {
            "totalRequests": total,
            "lastMonthRequests": certificates.count(since=start_of_day(months_ago(now, 1))),
            "pendingRequests": pending,
            "inProgressRequests": certificates.count(RequestStatus.IN_PROGRESS),
            "validatedRequests": validated,
            "rejectedRequests": rejected,
            "pendingDeclarations": self._store.declarations.count(RequestStatus.PENDING),
            "recentRequests": [
                {
                    "id": c.id,
                    "documentType": BIRTH_CERTIFICATE,
                    "status": normalize_request_status(c.status),
                    "createdAt": c.created_at,
                    "citizenEmail": c.citizen.email if c.citizen else None,
                }
                for c in certificates.recent(5)
            ],
            "statsByDay": [
                {"date": day, "count": count}
                for day, count in certificates.counts_per_day(days_ago(now, 7)).items()
            ],
            "statsByType": [
                {
                    "type": BIRTH_CERTIFICATE,
                    "count": total,
                    "pending": pending,
                    "validated": validated,
                    "rejected": rejected,
                }
            ],
        }


class AdminStatsUseCase:
    """Headcounts, request volume by status and collected revenue."""

    def __init__(self, store):
        self._store = store

    def execute(self) -> dict:
        users = self._store.users
        thirty_days_ago = days_ago(utcnow(), 30)
        by_status = {}
        for status in RequestStatus:
            by_status[status.value] = (
                self._store.declarations.count(status) + self._store.certificates.count(status)
            )
        return {
            "totalCitizens": self._store.citizens.count(),
            "activeCitizens": self._store.citizens.count(status=AccountStatus.ACTIVE.value),
            "totalAgents": users.count(role=Role.AGENT.value),
            "activeAgents": users.count(role=Role.AGENT.value, status=AccountStatus.ACTIVE.value),
            "inactiveAgents": users.count(role=Role.AGENT.value, status=AccountStatus.INACTIVE.value),
            "newAgents": users.count(role=Role.AGENT.value, since=thirty_days_ago),
            "totalRequests": sum(by_status.values()) - by_status[RequestStatus.DELETED.value],
            "requestsByStatus": by_status,
            "revenue": self._store.payments.revenue(),
        }


def _payment_owner_fields(payment) -> tuple[str, str, str | None, str | None]:
    """(document type label, document name, citizen name, citizen email)."""
    if payment.birth_declaration is not None:
        d = payment.birth_declaration
        label, name, citizen = "Déclaration de naissance", d.child_name, d.citizen
    elif payment.birth_certificate is not None:
        c = payment.birth_certificate
        label, name, citizen = "Acte de naissance", c.full_name, c.citizen
    elif payment.document_request is not None:
        r = payment.document_request
        label, name, citizen = "Demande de document", r.type, r.citizen
    else:
        return "", "", None, None
    return label, name, citizen.name if citizen else None, citizen.email if citizen else None


def _parse_payment_filter(status: str | None) -> PaymentStatus | None:
    if not status or status == "all":
        return None
    parsed = parse_payment_status(status)
    if parsed is None:
        raise InvalidStatus(status)
    return parsed


class ListPaymentsUseCase:
    """Admin payments ledger, filtered by status and creation date range."""

    def __init__(self, store):
        self._store = store

    def payments(self, status: str | None = None, date_range: str | None = None):
        return self._store.payments.list_all(
            status=_parse_payment_filter(status),
            since=range_start(date_range),
        )

    def execute(self, status: str | None = None, date_range: str | None = None) -> list[dict]:
        rows = []
        for payment in self.payments(status, date_range):
            label, name, citizen_name, citizen_email = _payment_owner_fields(payment)
            rows.append({
                "id": payment.id,
                "amount": payment.amount,
                "status": normalize_payment_status(payment.status),
                "paymentMethod": payment.payment_method,
                "externalSessionId": payment.external_session_id,
                "createdAt": payment.created_at,
                "documentType": label,
                "documentName": name,
                "citizen": {"name": citizen_name, "email": citizen_email},
            })
        return rows


class ExportPaymentsUseCase(ListPaymentsUseCase):
    """Same filters as the ledger, rendered as CSV with French headers."""

    def execute(self, status: str | None = None, date_range: str | None = None, currency: str = "XOF") -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS)
        writer.writeheader()
        count = 0
        for payment in self.payments(status, date_range):
            label, name, citizen_name, citizen_email = _payment_owner_fields(payment)
            parsed = parse_payment_status(payment.status)
            writer.writerow({
                "ID": payment.id,
                "Nom du citoyen": citizen_name or "",
                "Email du citoyen": citizen_email or "",
                "Type de document": label,
                "Nom du document": name,
                "Montant": f"{payment.amount:g} {currency.upper()}",
                "Statut": PAYMENT_STATUS_LABELS.get(parsed, payment.status),
                "Date de création": payment.created_at.strftime("%d/%m/%Y %H:%M:%S") if payment.created_at else "",
            })
            count += 1
        logger.info(f"Exported {count} payment(s) (status={status or 'all'}, range={date_range or 'all'})")
        return buffer.getvalue()
